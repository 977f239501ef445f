#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest

from ecs_patterns.acm import Certificate, DnsValidatedCertificate
from ecs_patterns.common.stack import App, Stack
from ecs_patterns.ecs import (
    AwsLogDriver,
    Cluster,
    ContainerImage,
    FargateTaskDefinition,
    LogDriver,
    PortMapping,
)
from ecs_patterns.ecs.ecs_params import DEFAULT_CLUSTER_ID
from ecs_patterns.elbv2 import ApplicationProtocol
from ecs_patterns.exceptions import IncompatibleOptions, MissingOptions
from ecs_patterns.patterns import (
    ApplicationListenerProps,
    ApplicationLoadBalancedEc2Service,
    ApplicationLoadBalancedFargateService,
    ApplicationLoadBalancedTaskImageOptions,
    ApplicationLoadBalancerProps,
    ApplicationMultipleTargetGroupsFargateService,
    ApplicationTargetProps,
)
from ecs_patterns.route53 import HostedZone
from ecs_patterns.vpc import Vpc

ZONE_ID = "Z0123456789ABCDEFGHIJ"


@pytest.fixture
def stack():
    return Stack(App(), "patterns")


@pytest.fixture
def image_options():
    return ApplicationLoadBalancedTaskImageOptions(
        image=ContainerImage.from_registry("nginx")
    )


@pytest.fixture
def zone(stack):
    return HostedZone.from_hosted_zone_attributes(stack, "Zone", ZONE_ID, "example.com")


def resources_of_type(stack: Stack, resource_type: str) -> dict:
    return {
        title: resource
        for title, resource in stack.template.to_dict()["Resources"].items()
        if resource["Type"] == resource_type
    }


def output_value(stack: Stack, pattern, output_id: str):
    output = pattern.try_find_child(output_id)
    assert output is not None
    return stack.template.to_dict()["Outputs"][output.output.title]["Value"]


def test_fargate_service_defaults(stack, image_options):
    pattern = ApplicationLoadBalancedFargateService(
        stack, "Web", task_image_options=image_options
    )
    assert stack.try_find_child(DEFAULT_CLUSTER_ID) is pattern.cluster
    assert pattern.listener.port == 80
    assert pattern.certificate is None
    assert pattern.target_group.target_type == "ip"
    assert pattern.task_definition.default_container.container_name == "web"
    service_props = pattern.service.cfn_resource.to_dict()["Properties"]
    assert service_props["HealthCheckGracePeriodSeconds"] == 60
    assert service_props["DesiredCount"] == 1
    assert service_props["LoadBalancers"][0]["ContainerPort"] == 80
    task_props = pattern.task_definition.cfn_resource.to_dict()["Properties"]
    assert (task_props["Cpu"], task_props["Memory"]) == ("256", "512")
    assert output_value(stack, pattern, "LoadBalancerDNS") == {
        "Fn::GetAtt": [pattern.load_balancer.cfn_resource.title, "DNSName"]
    }
    assert output_value(stack, pattern, "ServiceURL") == {
        "Fn::Join": [
            "",
            [
                "http://",
                {"Fn::GetAtt": [pattern.load_balancer.cfn_resource.title, "DNSName"]},
            ],
        ]
    }
    stack.synthesize()


def test_default_cluster_is_shared(stack, image_options):
    first = ApplicationLoadBalancedFargateService(
        stack, "First", task_image_options=image_options
    )
    second = ApplicationLoadBalancedFargateService(
        stack, "Second", task_image_options=image_options
    )
    assert first.cluster is second.cluster
    assert len(resources_of_type(stack, "AWS::ECS::Cluster")) == 1
    vpc = Vpc(stack, "Vpc")
    third = ApplicationLoadBalancedFargateService(
        stack, "Third", vpc=vpc, task_image_options=image_options
    )
    assert third.cluster is not first.cluster
    assert third.cluster.vpc is vpc


def test_incompatible_options(stack, image_options, zone):
    vpc = Vpc(stack, "Vpc")
    cluster = Cluster(stack, "Cluster", vpc=vpc)
    with pytest.raises(IncompatibleOptions) as error:
        ApplicationLoadBalancedFargateService(
            stack, "Both", cluster=cluster, vpc=vpc, task_image_options=image_options
        )
    assert error.value.args[0] == (
        "You can only specify either vpc or cluster. Alternatively, you can leave both blank"
    )
    certificate = Certificate.from_certificate_arn(
        stack, "Certificate", "arn:aws:acm:eu-west-1:012345678912:certificate/abcd"
    )
    with pytest.raises(IncompatibleOptions) as error:
        ApplicationLoadBalancedFargateService(
            stack,
            "HttpWithCertificate",
            cluster=cluster,
            task_image_options=image_options,
            certificate=certificate,
            protocol=ApplicationProtocol.HTTP,
        )
    assert error.value.args[0] == (
        "The HTTPS protocol must be used when a certificate is given"
    )
    with pytest.raises(IncompatibleOptions) as error:
        ApplicationLoadBalancedFargateService(
            stack,
            "TaskAndImage",
            cluster=cluster,
            task_image_options=image_options,
            task_definition=FargateTaskDefinition(stack, "TaskDef"),
        )
    assert error.value.args[0] == (
        "You must specify either a taskDefinition or taskImageOptions, not both."
    )


def test_missing_options(stack, image_options, zone):
    cluster = Cluster(stack, "Cluster", vpc=Vpc(stack, "Vpc"))
    with pytest.raises(MissingOptions) as error:
        ApplicationLoadBalancedFargateService(stack, "NoImage", cluster=cluster)
    assert error.value.args[0] == "You must specify one of: taskDefinition or image"
    with pytest.raises(MissingOptions) as error:
        ApplicationLoadBalancedFargateService(
            stack,
            "HttpsNoDomain",
            cluster=cluster,
            task_image_options=image_options,
            protocol=ApplicationProtocol.HTTPS,
        )
    assert error.value.args[0] == (
        "A domain name and zone is required when using the HTTPS protocol"
    )
    with pytest.raises(MissingOptions) as error:
        ApplicationLoadBalancedFargateService(
            stack,
            "DomainNoZone",
            cluster=cluster,
            task_image_options=image_options,
            domain_name="api.example.com",
        )
    assert error.value.args[0] == (
        "A Route53 hosted domain zone name is required to configure the specified domain name"
    )
    with pytest.raises(ValueError):
        ApplicationLoadBalancedTaskImageOptions(image=None)


def test_https_service_with_domain(stack, image_options, zone):
    pattern = ApplicationLoadBalancedFargateService(
        stack,
        "Secure",
        task_image_options=image_options,
        protocol=ApplicationProtocol.HTTPS,
        domain_name="api.example.com",
        domain_zone=zone,
        public_load_balancer=False,
    )
    assert pattern.listener.port == 443
    assert isinstance(pattern.certificate, DnsValidatedCertificate)
    lb_props = pattern.load_balancer.cfn_resource.to_dict()["Properties"]
    assert lb_props["Scheme"] == "internal"
    records = resources_of_type(stack, "AWS::Route53::RecordSet")
    assert len(records) == 1
    assert list(records.values())[0]["Properties"]["Name"] == "api.example.com."
    url = output_value(stack, pattern, "ServiceURL")
    assert url["Fn::Join"][1][0] == "https://"
    assert len(resources_of_type(stack, "AWS::CertificateManager::Certificate")) == 1
    stack.synthesize()


def test_certificate_implies_https(stack, image_options, zone):
    certificate = Certificate.from_certificate_arn(
        stack, "Imported", "arn:aws:acm:eu-west-1:012345678912:certificate/abcd"
    )
    pattern = ApplicationLoadBalancedFargateService(
        stack,
        "Secure",
        task_image_options=image_options,
        certificate=certificate,
        domain_name="api.example.com",
        domain_zone=zone,
    )
    assert pattern.listener.protocol == ApplicationProtocol.HTTPS
    assert pattern.certificate is certificate
    assert not resources_of_type(stack, "AWS::CertificateManager::Certificate")


def test_fargate_service_target_groups(stack, image_options):
    pattern = ApplicationLoadBalancedFargateService(
        stack,
        "Web",
        task_image_options=image_options,
        target_groups=[
            ApplicationTargetProps(80),
            ApplicationTargetProps(8080, priority=10, path_pattern="/admin/*"),
        ],
    )
    container = pattern.task_definition.default_container
    assert [mapping.container_port for mapping in container.port_mappings] == [
        80,
        8080,
    ]
    assert pattern.target_group.node_id == "ECSTargetGroupweb80Group"
    rules = resources_of_type(stack, "AWS::ElasticLoadBalancingV2::ListenerRule")
    assert len(rules) == 1
    service_props = pattern.service.cfn_resource.to_dict()["Properties"]
    assert [lb["ContainerPort"] for lb in service_props["LoadBalancers"]] == [80, 8080]


def test_ec2_service_with_capacity(stack, image_options):
    cluster = Cluster(stack, "Cluster", vpc=Vpc(stack, "Vpc"))
    cluster.add_capacity("DefaultAutoScalingGroup", "t3.small")
    pattern = ApplicationLoadBalancedEc2Service(
        stack,
        "Ec2",
        cluster=cluster,
        task_image_options=image_options,
        memory_limit_mib=512,
        desired_count=2,
    )
    assert pattern.target_group.target_type == "instance"
    service_props = pattern.service.cfn_resource.to_dict()["Properties"]
    assert service_props["LaunchType"] == "EC2"
    assert service_props["DesiredCount"] == 2
    assert "NetworkConfiguration" not in service_props
    definition = pattern.task_definition.cfn_resource.to_dict()["Properties"][
        "ContainerDefinitions"
    ][0]
    assert definition["Memory"] == 512
    assert definition["LogConfiguration"]["Options"]["awslogs-stream-prefix"] == "Ec2"
    stack.synthesize()


def test_ec2_service_without_capacity(stack, image_options):
    ApplicationLoadBalancedEc2Service(
        stack, "Ec2", task_image_options=image_options, memory_limit_mib=512
    )
    with pytest.raises(ValueError):
        stack.synthesize()


def test_multiple_target_groups(stack, image_options, zone):
    pattern = ApplicationMultipleTargetGroupsFargateService(
        stack,
        "Multi",
        vpc=Vpc(stack, "Vpc"),
        task_image_options=image_options,
        load_balancers=[
            ApplicationLoadBalancerProps(
                name="Public",
                listeners=[ApplicationListenerProps("web")],
                domain_name="www.example.com",
                domain_zone=zone,
            ),
            ApplicationLoadBalancerProps(
                name="Internal",
                public_load_balancer=False,
                listeners=[ApplicationListenerProps("api")],
            ),
        ],
        target_groups=[
            ApplicationTargetProps(80, listener="web"),
            ApplicationTargetProps(8080, listener="api"),
        ],
    )
    assert [option.name for option in pattern.listeners] == ["web", "api"]
    assert pattern.load_balancer.node_id == "Public"
    assert pattern.find_listener("api").load_balancer.node_id == "Internal"
    assert len(pattern.target_groups) == 2
    assert pattern.target_groups[1].node_id == "ECSTargetGroupweb8080Group"
    assert output_value(stack, pattern, "LoadBalancerDNSInternal") == {
        "Fn::GetAtt": [
            pattern.find_listener("api").load_balancer.cfn_resource.title,
            "DNSName",
        ]
    }
    public_url = output_value(stack, pattern, "ServiceURLPublic")
    assert public_url["Fn::Join"][1][0] == "http://"
    assert "Ref" in public_url["Fn::Join"][1][1]
    assert pattern.try_find_child("DNSPublic") is not None
    with pytest.raises(LookupError):
        pattern.find_listener("nope")
    stack.synthesize()


def test_multiple_target_groups_unknown_listener(stack, image_options):
    with pytest.raises(LookupError):
        ApplicationMultipleTargetGroupsFargateService(
            stack,
            "Multi",
            task_image_options=image_options,
            target_groups=[ApplicationTargetProps(8080, listener="missing")],
        )


def test_multiple_target_groups_https_listener(stack, image_options, zone):
    pattern = ApplicationMultipleTargetGroupsFargateService(
        stack,
        "Multi",
        task_image_options=image_options,
        load_balancers=[
            ApplicationLoadBalancerProps(
                name="LB",
                protocol=ApplicationProtocol.HTTPS,
                listeners=[ApplicationListenerProps("secure")],
                domain_name="app.example.com",
                domain_zone=zone,
            )
        ],
    )
    assert pattern.listener.port == 443
    assert pattern.try_find_child("Certificatesecure") is not None
    assert output_value(stack, pattern, "ServiceURLLB")["Fn::Join"][1][0] == "https://"
    with pytest.raises(MissingOptions):
        ApplicationMultipleTargetGroupsFargateService(
            stack,
            "NoListener",
            task_image_options=image_options,
            load_balancers=[ApplicationLoadBalancerProps(name="LB")],
        )


def test_cluster_error_reported_first(stack, image_options):
    vpc = Vpc(stack, "Vpc")
    cluster = Cluster(stack, "Cluster", vpc=vpc)
    certificate = Certificate.from_certificate_arn(
        stack, "Certificate", "arn:aws:acm:eu-west-1:012345678912:certificate/abcd"
    )
    with pytest.raises(IncompatibleOptions) as error:
        ApplicationLoadBalancedFargateService(
            stack,
            "Both",
            cluster=cluster,
            vpc=vpc,
            task_image_options=image_options,
            certificate=certificate,
            protocol=ApplicationProtocol.HTTP,
        )
    assert error.value.args[0] == (
        "You can only specify either vpc or cluster. Alternatively, you can leave both blank"
    )


def test_missing_load_balancers_options(stack, image_options):
    cluster = Cluster(stack, "Cluster", vpc=Vpc(stack, "Vpc"))
    with pytest.raises(MissingOptions) as error:
        ApplicationMultipleTargetGroupsFargateService(
            stack,
            "NoLoadBalancer",
            cluster=cluster,
            task_image_options=image_options,
            load_balancers=[],
        )
    assert error.value.args[0] == "At least one load balancer should be specified"
    with pytest.raises(MissingOptions) as error:
        ApplicationMultipleTargetGroupsFargateService(
            stack,
            "NoListener",
            cluster=cluster,
            task_image_options=image_options,
            load_balancers=[ApplicationLoadBalancerProps(name="LB")],
        )
    assert error.value.args[0] == "At least one listener should be specified"
    with pytest.raises(MissingOptions) as error:
        ApplicationMultipleTargetGroupsFargateService(
            stack,
            "NoLoadBalancerName",
            cluster=cluster,
            task_image_options=image_options,
            load_balancers=[
                ApplicationLoadBalancerProps(listeners=[ApplicationListenerProps("web")])
            ],
        )
    assert error.value.args[0] == "Name of the new load balancer is required."
    with pytest.raises(MissingOptions) as error:
        ApplicationMultipleTargetGroupsFargateService(
            stack,
            "NoTargetGroup",
            cluster=cluster,
            task_image_options=image_options,
            target_groups=[],
        )
    assert error.value.args[0] == "At least one target group should be specified."


def test_fargate_service_with_task_definition(stack):
    task_definition = FargateTaskDefinition(stack, "TaskDef", cpu=512, memory_mib=1024)
    task_definition.add_container("app", ContainerImage("nginx")).add_port_mappings(
        PortMapping(8080)
    )
    pattern = ApplicationLoadBalancedFargateService(
        stack, "Web", task_definition=task_definition
    )
    assert pattern.task_definition is task_definition
    assert pattern.try_find_child("TaskDef") is None
    assert not resources_of_type(stack, "AWS::Logs::LogGroup")
    service_props = pattern.service.cfn_resource.to_dict()["Properties"]
    assert service_props["LoadBalancers"][0]["ContainerName"] == "app"
    assert service_props["LoadBalancers"][0]["ContainerPort"] == 8080
    assert service_props["TaskDefinition"] == {
        "Ref": task_definition.cfn_resource.title
    }
    stack.synthesize()


def test_task_image_options_log_driver(stack):
    log_driver = LogDriver.aws_logs("custom", log_group="existing", log_retention=10)
    assert isinstance(log_driver, AwsLogDriver)
    assert log_driver.log_retention == 7
    pattern = ApplicationLoadBalancedFargateService(
        stack,
        "Web",
        task_image_options=ApplicationLoadBalancedTaskImageOptions(
            image=ContainerImage.from_registry("nginx"), log_driver=log_driver
        ),
    )
    definition = pattern.task_definition.cfn_resource.to_dict()["Properties"][
        "ContainerDefinitions"
    ][0]
    assert definition["LogConfiguration"]["Options"]["awslogs-group"] == "existing"
    assert definition["LogConfiguration"]["Options"]["awslogs-stream-prefix"] == "custom"
    assert not resources_of_type(stack, "AWS::Logs::LogGroup")
