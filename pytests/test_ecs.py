#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere import Ref

from ecs_patterns.common.duration import Duration
from ecs_patterns.common.stack import App, Stack
from ecs_patterns.ecs import (
    AwsLogDriver,
    CloudMapOptions,
    Cluster,
    ContainerImage,
    Ec2Service,
    Ec2TaskDefinition,
    FargateService,
    FargateTaskDefinition,
    NetworkMode,
    PortMapping,
    Secret,
)
from ecs_patterns.ecs.log_driver import get_closest_valid_log_retention_period
from ecs_patterns.vpc import Vpc


@pytest.fixture
def stack():
    return Stack(App(), "ecs")


@pytest.fixture
def cluster(stack):
    return Cluster(stack, "Cluster", vpc=Vpc(stack, "Vpc"))


def resources_of_type(stack: Stack, resource_type: str) -> dict:
    return {
        title: resource
        for title, resource in stack.template.to_dict()["Resources"].items()
        if resource["Type"] == resource_type
    }


def single_resource(stack: Stack, resource_type: str) -> dict:
    resources = resources_of_type(stack, resource_type)
    assert len(resources) == 1
    return list(resources.values())[0]["Properties"]


def test_cluster_creates_vpc(stack):
    cluster = Cluster(stack, "Cluster")
    assert isinstance(cluster.vpc, Vpc)
    assert cluster.has_ec2_capacity is False
    assert resources_of_type(stack, "AWS::ECS::Cluster")


def test_cluster_capacity(cluster, stack):
    capacity = cluster.add_capacity("DefaultAutoScalingGroup", "t3.micro", desired_capacity=2)
    assert cluster.has_ec2_capacity
    assert cluster.connections == [capacity.security_group]
    asg = single_resource(stack, "AWS::AutoScaling::AutoScalingGroup")
    assert asg["DesiredCapacity"] == "2"
    assert asg["MinSize"] == "1"
    assert asg["MaxSize"] == "2"
    assert "SsmParameterValueEcsOptimizedAmi" in stack.template.parameters
    with pytest.raises(ValueError):
        cluster.add_capacity("Invalid", "t3.micro", desired_capacity=1, min_capacity=2)


def test_cluster_namespace(cluster):
    cluster.add_default_cloud_map_namespace("local")
    with pytest.raises(ValueError):
        cluster.add_default_cloud_map_namespace("other")


def test_imported_cluster(stack):
    vpc = Vpc.from_attributes(stack, "Vpc", "vpc-123", ["eu-west-1a"], ["subnet-a"])
    cluster = Cluster.from_attributes(
        stack, "Cluster", "existing", vpc, security_groups=["sg-123"]
    )
    assert cluster.cluster_name == "existing"
    assert cluster.has_ec2_capacity
    assert cluster.connections[0].security_group_id == "sg-123"
    assert not stack.template.resources


def test_fargate_task_definition(stack):
    task_def = FargateTaskDefinition(stack, "TaskDef")
    assert task_def.network_mode == NetworkMode.AWS_VPC
    props = single_resource(stack, "AWS::ECS::TaskDefinition")
    assert props["Cpu"] == "256"
    assert props["Memory"] == "512"
    assert props["RequiresCompatibilities"] == ["FARGATE"]
    with pytest.raises(ValueError):
        FargateTaskDefinition(stack, "Invalid", cpu=256, memory_mib=4096)
    with pytest.raises(ValueError):
        FargateTaskDefinition(stack, "InvalidCpu", cpu=300)


def test_task_definition_validation(stack):
    task_def = Ec2TaskDefinition(stack, "TaskDef")
    assert task_def.validate() == ["Task definition must have at least one container"]
    task_def.add_container("app", ContainerImage.from_registry("nginx"))
    assert task_def.validate() == [
        "Container app must have at least one of memory_limit_mib or memory_reservation_mib specified"
    ]
    with pytest.raises(ValueError):
        Ec2TaskDefinition(stack, "Invalid", network_mode="overlay")


def test_container_definition(stack):
    task_def = FargateTaskDefinition(stack, "TaskDef")
    container = task_def.add_container(
        "app",
        ContainerImage.from_registry("nginx"),
        environment={"PORT": 8080},
        secrets={"DB_PASSWORD": Secret.from_ssm_parameter("arn:aws:ssm:::parameter/db")},
        logging=AwsLogDriver(stream_prefix="app", log_retention=10),
    )
    container.add_port_mappings(PortMapping(8080))
    assert container.port_mappings[0].host_port == 8080
    assert container.ingress_port() == 8080
    with pytest.raises(ValueError):
        container.add_port_mappings(PortMapping(80, host_port=8080))
    props = single_resource(stack, "AWS::ECS::TaskDefinition")
    definition = props["ContainerDefinitions"][0]
    assert definition["Environment"] == [{"Name": "PORT", "Value": "8080"}]
    assert definition["Secrets"] == [
        {"Name": "DB_PASSWORD", "ValueFrom": "arn:aws:ssm:::parameter/db"}
    ]
    assert definition["LogConfiguration"]["LogDriver"] == "awslogs"
    assert "ExecutionRoleArn" in props
    log_group = single_resource(stack, "AWS::Logs::LogGroup")
    assert log_group["RetentionInDays"] == 7
    with pytest.raises(TypeError):
        task_def.add_container("invalid", "nginx")
    with pytest.raises(ValueError):
        task_def.add_container(
            "memory",
            ContainerImage("nginx"),
            memory_limit_mib=128,
            memory_reservation_mib=256,
        )


def test_log_retention():
    assert get_closest_valid_log_retention_period(10) == 7
    assert get_closest_valid_log_retention_period(30) == 30
    with pytest.raises(ValueError):
        AwsLogDriver(stream_prefix="")


def test_bridge_ingress_port(stack):
    task_def = Ec2TaskDefinition(stack, "TaskDef")
    container = task_def.add_container(
        "app", ContainerImage("nginx"), memory_limit_mib=256
    )
    container.add_port_mappings(PortMapping(80))
    assert container.ingress_port() == 0
    container.add_port_mappings(PortMapping(8080, host_port=8081))
    assert container.ingress_port(container.port_mappings[1]) == 8081


def test_service_compatibility(stack, cluster):
    fargate_task = FargateTaskDefinition(stack, "FargateTask")
    with pytest.raises(ValueError) as error:
        Ec2Service(stack, "Service", cluster, fargate_task)
    assert "Supplied TaskDefinition is not configured for compatibility with EC2" in str(
        error.value
    )
    with pytest.raises(TypeError):
        FargateService(stack, "NotATask", cluster, "task")
    ec2_task = Ec2TaskDefinition(stack, "Ec2Task")
    with pytest.raises(ValueError):
        Ec2Service(stack, "Platform", cluster, ec2_task, platform_version="1.4.0")
    with pytest.raises(ValueError):
        FargateService(stack, "Tags", cluster, fargate_task, propagate_tags="CLUSTER")


def test_fargate_service(stack, cluster):
    task_def = FargateTaskDefinition(stack, "TaskDef")
    task_def.add_container("app", ContainerImage("nginx")).add_port_mappings(
        PortMapping(80)
    )
    service = FargateService(
        stack,
        "Service",
        cluster,
        task_def,
        propagate_tags="NONE",
        platform_version="1.4.0",
    )
    props = single_resource(stack, "AWS::ECS::Service")
    assert props["LaunchType"] == "FARGATE"
    assert props["DesiredCount"] == 1
    assert props["PlatformVersion"] == "1.4.0"
    assert props["PropagateTags"] == Ref("AWS::NoValue").to_dict()
    assert props["DeploymentConfiguration"] == {
        "MaximumPercent": 200,
        "MinimumHealthyPercent": 50,
    }
    awsvpc = props["NetworkConfiguration"]["AwsvpcConfiguration"]
    assert awsvpc["AssignPublicIp"] == "DISABLED"
    assert service.connections == [service.security_group]
    assert service.validate() == []


def test_service_load_balancer_target(stack, cluster):
    task_def = FargateTaskDefinition(stack, "TaskDef")
    task_def.add_container("app", ContainerImage("nginx")).add_port_mappings(
        PortMapping(80)
    )
    service = FargateService(stack, "Service", cluster, task_def)
    target = service.load_balancer_target("app", 80)
    assert target.target_type == "ip"
    assert repr(target.ingress_port) == "80"
    with pytest.raises(LookupError):
        service.load_balancer_target("nope", 80)
    with pytest.raises(LookupError):
        service.load_balancer_target("app", 8080)
    with pytest.raises(LookupError):
        service.load_balancer_target("app", 80, "udp")


def test_grace_period_without_load_balancer(stack, cluster):
    task_def = FargateTaskDefinition(stack, "TaskDef")
    task_def.add_container("app", ContainerImage("nginx"))
    service = FargateService(
        stack,
        "Service",
        cluster,
        task_def,
        health_check_grace_period=Duration.minutes(2),
    )
    assert service.validate() == [
        "Health check grace period is only valid for services with load balancers"
    ]
    props = single_resource(stack, "AWS::ECS::Service")
    assert props["HealthCheckGracePeriodSeconds"] == 120


def test_ec2_service_without_capacity(stack, cluster):
    task_def = Ec2TaskDefinition(stack, "TaskDef")
    task_def.add_container("app", ContainerImage("nginx"), memory_limit_mib=256)
    service = Ec2Service(stack, "Service", cluster, task_def)
    assert service.connections == []
    assert service.validate() == [
        "Cluster for this service needs Ec2 capacity. Call add_capacity() on the cluster."
    ]
    with pytest.raises(ValueError):
        stack.synthesize()


def test_cloud_map(stack, cluster):
    task_def = Ec2TaskDefinition(stack, "TaskDef")
    task_def.add_container(
        "app", ContainerImage("nginx"), memory_limit_mib=256
    ).add_port_mappings(PortMapping(80))
    service = Ec2Service(stack, "NoNamespace", cluster, task_def)
    with pytest.raises(ValueError):
        service.enable_cloud_map(CloudMapOptions(name="app"))
    cluster.add_default_cloud_map_namespace("local")
    with pytest.raises(ValueError):
        service.enable_cloud_map(CloudMapOptions(dns_record_type="A"))
    service.enable_cloud_map(CloudMapOptions(name="app"))
    registries = service.cfn_resource.to_dict()["Properties"]["ServiceRegistries"]
    assert registries[0]["ContainerName"] == "app"
    assert registries[0]["ContainerPort"] == 80
    discovery = single_resource(stack, "AWS::ServiceDiscovery::Service")
    assert discovery["DnsConfig"]["DnsRecords"] == [{"TTL": 60, "Type": "SRV"}]
    with pytest.raises(ValueError):
        CloudMapOptions(dns_record_type="CNAME")


def test_cloud_map_awsvpc(stack, cluster):
    cluster.add_default_cloud_map_namespace("local")
    task_def = FargateTaskDefinition(stack, "TaskDef")
    task_def.add_container("app", ContainerImage("nginx"))
    service = FargateService(
        stack,
        "Service",
        cluster,
        task_def,
        cloud_map_options=CloudMapOptions(name="app", dns_ttl=Duration.seconds(10)),
    )
    registries = service.cfn_resource.to_dict()["Properties"]["ServiceRegistries"]
    assert "ContainerName" not in registries[0]
    discovery = single_resource(stack, "AWS::ServiceDiscovery::Service")
    assert discovery["DnsConfig"]["DnsRecords"] == [{"TTL": 10, "Type": "A"}]
