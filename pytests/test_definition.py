#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from os import path

import boto3
import placebo
import pytest

from ecs_patterns.common.settings import PatternsSettings
from ecs_patterns.common.stack import App, Stack
from ecs_patterns.definition import (
    DEFAULT_STACK_NAME,
    define_cluster,
    define_vpc,
    generate_app,
    get_certificate,
    get_zone,
)
from ecs_patterns.ecs import ImportedCluster
from ecs_patterns.exceptions import MissingOptions
from ecs_patterns.patterns import ApplicationLoadBalancedFargateService
from ecs_patterns.vpc import Vpc

HERE = path.abspath(path.dirname(__file__))


@pytest.fixture
def stack():
    return Stack(App(), "definition")


def resources_of_type(stack: Stack, resource_type: str) -> dict:
    return {
        title: resource
        for title, resource in stack.template.to_dict()["Resources"].items()
        if resource["Type"] == resource_type
    }


def simple_service(**service_props) -> dict:
    service = {
        "Type": "ApplicationLoadBalancedFargateService",
        "TaskImageOptions": {"Image": "nginx"},
    }
    service.update(service_props)
    return {"Services": {"web-app": service}}


def test_generate_simple_app():
    settings = PatternsSettings(
        content=simple_service(DesiredCount=0), RegionName="eu-west-1"
    )
    app = generate_app(settings)
    assert len(app.stacks) == 1
    stack = app.stacks[0]
    assert stack.stack_name == DEFAULT_STACK_NAME
    pattern = stack.try_find_child("webapp")
    assert isinstance(pattern, ApplicationLoadBalancedFargateService)
    assert pattern.service.cfn_resource.to_dict()["Properties"]["DesiredCount"] == 1
    stack.synthesize()


def test_generate_full_app():
    settings = PatternsSettings(
        DefinitionFile=[f"{HERE}/definitions/full.yml"],
        Name="apps",
        RegionName="eu-west-1",
    )
    stack = generate_app(settings).stacks[0]
    assert stack.stack_name == "apps"
    template = stack.synthesize().to_dict()
    assert template["Description"] == "Web and API services sharing an EC2 cluster"
    assert len(resources_of_type(stack, "AWS::ECS::Cluster")) == 1
    assert len(resources_of_type(stack, "AWS::EC2::NatGateway")) == 1
    assert len(resources_of_type(stack, "AWS::ECS::Service")) == 3
    assert len(resources_of_type(stack, "AWS::CertificateManager::Certificate")) == 1
    assert len(resources_of_type(stack, "AWS::Route53::RecordSet")) == 2
    assert len(resources_of_type(stack, "AWS::ServiceDiscovery::Service")) == 1

    frontend = stack.try_find_child("frontend")
    assert frontend.listener.port == 443
    assert frontend.certificate is stack.try_find_child("wildcard")
    container = frontend.task_definition.default_container
    log_group = stack.template.resources[container.logical_id("LogGroup")]
    assert log_group.to_dict()["Properties"]["RetentionInDays"] == 14

    backend = stack.try_find_child("backend")
    assert backend.target_group.target_type == "instance"
    backend_service = backend.service.cfn_resource.to_dict()["Properties"]
    assert backend_service["HealthCheckGracePeriodSeconds"] == 120
    backend_task = backend.task_definition.cfn_resource.to_dict()["Properties"]
    assert backend_task["TaskRoleArn"] == "arn:aws:iam::012345678912:role/backend"
    port_mapping = backend_task["ContainerDefinitions"][0]["PortMappings"][0]
    assert port_mapping["ContainerPort"] == 8080
    assert port_mapping["HostPort"] == {"Ref": "AWS::NoValue"}

    api = stack.try_find_child("api")
    assert api.find_listener("public").port == 80
    assert api.find_listener("secure").port == 443
    assert [target_group.node_id for target_group in api.target_groups] == [
        "ECSTargetGroupapi80Group",
        "ECSTargetGroupapi8080Group",
        "ECSTargetGroupapi8443Group",
    ]
    secure = api.find_listener("secure")
    assert secure.validate() == []
    secure_actions = secure.cfn_resource.to_dict()["Properties"]["DefaultActions"]
    assert len(secure_actions) == 1
    assert len(resources_of_type(stack, "AWS::ElasticLoadBalancingV2::ListenerRule")) == 1


def test_define_vpc(stack):
    settings = PatternsSettings(RegionName="eu-west-1")
    vpc = define_vpc(
        stack,
        {
            "Use": {
                "VpcId": "vpc-123",
                "AvailabilityZones": ["eu-west-1a"],
                "PrivateSubnets": ["subnet-a"],
            }
        },
        settings,
    )
    assert vpc.vpc_id == "vpc-123"
    assert vpc.select_subnets() == ["subnet-a"]
    other = Stack(App(), "other")
    assert isinstance(define_vpc(other, {}, settings), Vpc)


def test_define_vpc_lookup(stack):
    session = boto3.session.Session(region_name="eu-west-1")
    pill = placebo.attach(session, data_path=f"{HERE}/vpc_lookup")
    pill.playback()
    settings = PatternsSettings(session=session)
    vpc = define_vpc(stack, {"Lookup": {"Tags": {"Name": "shared"}}}, settings)
    assert vpc.vpc_id == "vpc-0a1b2c3d4e5f60718"


def test_define_existing_cluster(stack):
    with pytest.raises(MissingOptions):
        define_cluster(stack, {"Use": True})
    with pytest.raises(MissingOptions):
        define_cluster(stack, {"Use": True, "ClusterName": "existing"})
    vpc = Vpc.from_attributes(
        stack, "Vpc", "vpc-123", ["eu-west-1a"], private_subnet_ids=["subnet-a"]
    )
    cluster = define_cluster(
        stack,
        {"Use": True, "ClusterName": "existing", "SecurityGroups": ["sg-123"]},
        vpc,
    )
    assert isinstance(cluster, ImportedCluster)
    assert cluster.has_ec2_capacity


def test_references_lookup():
    assert get_zone({}) is None
    with pytest.raises(LookupError):
        get_zone({"public": None}, "private")
    assert get_certificate({}) is None
    with pytest.raises(LookupError):
        get_certificate({}, "wildcard")


def test_generate_app_errors():
    with pytest.raises(MissingOptions):
        generate_app(PatternsSettings(RegionName="eu-west-1"))
    settings = PatternsSettings(
        content=simple_service(DomainName="www.example.com", DomainZone="public"),
        RegionName="eu-west-1",
    )
    with pytest.raises(LookupError):
        generate_app(settings)
