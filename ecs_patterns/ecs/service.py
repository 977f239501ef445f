#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS Services, on EC2 or Fargate, and their registration into load balancers target groups
and Cloud Map.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.ecs.cluster import BaseCluster
    from ecs_patterns.elbv2 import ApplicationListener, ApplicationTargetGroup

from troposphere import AWS_NO_VALUE, AWSObject, GetAtt, Ref
from troposphere.ecs import (
    AwsvpcConfiguration,
    DeploymentConfiguration,
    NetworkConfiguration,
)
from troposphere.ecs import LoadBalancer as EcsLoadBalancer
from troposphere.ecs import Service as CfnService
from troposphere.ecs import ServiceRegistry
from troposphere.servicediscovery import (
    DnsConfig,
    DnsRecord,
    HealthCheckCustomConfig,
)
from troposphere.servicediscovery import Service as SdService

from ecs_patterns.common.construct import Construct, add_dependency
from ecs_patterns.common.duration import Duration, to_duration
from ecs_patterns.common.logging import LOG
from ecs_patterns.ecs.cloudmap import CloudMapOptions
from ecs_patterns.ecs.container import ContainerDefinition, PortMapping
from ecs_patterns.ecs.ecs_params import (
    DEFAULT_DESIRED_COUNT,
    DEFAULT_HEALTH_CHECK_GRACE_PERIOD,
    EPHEMERAL_PORT_RANGE,
    Compatibility,
    NetworkMode,
    PropagatedTagSource,
    Protocol,
)
from ecs_patterns.ecs.task_definition import TaskDefinition
from ecs_patterns.vpc import BaseSecurityGroup, Port, SecurityGroup

INSTANCE_TARGET = "instance"
IP_TARGET = "ip"


class LoadBalancerTarget(object):
    """
    A container port of a service, registered into a target group
    """

    def __init__(
        self,
        service: BaseService,
        container: ContainerDefinition,
        port_mapping: PortMapping,
    ):
        self.service = service
        self.container = container
        self.port_mapping = port_mapping

    def __repr__(self):
        return f"{self.service}:{self.container.container_name}:{self.port_mapping}"

    @property
    def target_type(self) -> str:
        if self.service.task_definition.network_mode == NetworkMode.AWS_VPC:
            return IP_TARGET
        return INSTANCE_TARGET

    @property
    def ingress_port(self) -> Port:
        port = self.container.ingress_port(self.port_mapping)
        if port == 0:
            return Port.tcp_range(*EPHEMERAL_PORT_RANGE)
        return Port.tcp(port)

    def attach_to_application_target_group(
        self, target_group: ApplicationTargetGroup
    ) -> str:
        """
        Adds the target group to the LoadBalancers of the service

        :return: the target type of the service, ip or instance
        """
        self.service.add_load_balancer(
            EcsLoadBalancer(
                ContainerName=self.container.container_name,
                ContainerPort=self.port_mapping.container_port,
                TargetGroupArn=target_group.target_group_arn,
            )
        )
        return self.target_type

    def connect_listener(self, listener: ApplicationListener, dependable: AWSObject):
        """
        Makes the service wait for the listener (or listener rule) and allows traffic from the
        load balancer to the tasks.
        """
        add_dependency(self.service.cfn_resource, dependable)
        load_balancer_sg = listener.load_balancer.security_group
        for security_group in self.service.connections:
            security_group.add_ingress_rule(
                load_balancer_sg,
                self.ingress_port,
                f"Load balancer to target {self.ingress_port}",
            )


class BaseService(Construct):
    """
    ECS Service, common to EC2 and Fargate launch types

    :ivar BaseCluster cluster:
    :ivar TaskDefinition task_definition:
    :ivar list connections: security groups to open for ingress to the tasks
    :ivar list load_balancers: the LoadBalancers entries of the service
    """

    compatibility = None

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        cluster: BaseCluster,
        task_definition: TaskDefinition,
        desired_count: int = None,
        service_name: str = None,
        health_check_grace_period: Duration = None,
        propagate_tags: str = None,
        enable_ecs_managed_tags: bool = False,
        cloud_map_options: CloudMapOptions = None,
        assign_public_ip: bool = False,
        min_healthy_percent: int = None,
        max_healthy_percent: int = None,
        security_group: BaseSecurityGroup = None,
        platform_version: str = None,
    ):
        super().__init__(scope, construct_id)
        if not isinstance(task_definition, TaskDefinition):
            raise TypeError(
                f"{self} - task_definition must be",
                TaskDefinition,
                "Got",
                type(task_definition),
            )
        if task_definition.compatibility != self.compatibility:
            raise ValueError(
                f"{self} - Supplied TaskDefinition is not configured for compatibility with "
                f"{self.compatibility}. Got {task_definition.compatibility}"
            )
        if propagate_tags and propagate_tags not in PropagatedTagSource.allowed:
            raise ValueError(
                f"{self} - propagate_tags {propagate_tags} is not valid. Must be one of",
                PropagatedTagSource.allowed,
            )
        self.cluster = cluster
        self.task_definition = task_definition
        self.desired_count = (
            desired_count if desired_count is not None else DEFAULT_DESIRED_COUNT
        )
        self.health_check_grace_period = to_duration(health_check_grace_period)
        self.user_grace_period = self.health_check_grace_period is not None
        self.assign_public_ip = assign_public_ip
        self.load_balancers = []
        self.cloud_map_service = None
        self.security_group = None

        service_props = {
            "Cluster": cluster.cluster_name,
            "TaskDefinition": task_definition.task_definition_arn,
            "DesiredCount": self.desired_count,
            "LaunchType": self.compatibility,
            "ServiceName": service_name if service_name else Ref(AWS_NO_VALUE),
            "EnableECSManagedTags": enable_ecs_managed_tags,
            "PropagateTags": propagate_tags
            if propagate_tags and propagate_tags != PropagatedTagSource.NONE
            else Ref(AWS_NO_VALUE),
            "HealthCheckGracePeriodSeconds": self.health_check_grace_period.to_seconds()
            if self.health_check_grace_period
            else Ref(AWS_NO_VALUE),
            "DeploymentConfiguration": DeploymentConfiguration(
                MaximumPercent=max_healthy_percent
                if max_healthy_percent is not None
                else 200,
                MinimumHealthyPercent=min_healthy_percent
                if min_healthy_percent is not None
                else 50,
            ),
            "LoadBalancers": [],
            "PlatformVersion": platform_version
            if platform_version
            else Ref(AWS_NO_VALUE),
        }
        if task_definition.network_mode == NetworkMode.AWS_VPC:
            self.security_group = (
                security_group
                if security_group
                else SecurityGroup(self, "SecurityGroup", cluster.vpc)
            )
            service_props["NetworkConfiguration"] = NetworkConfiguration(
                AwsvpcConfiguration=AwsvpcConfiguration(
                    AssignPublicIp="ENABLED" if assign_public_ip else "DISABLED",
                    SecurityGroups=[self.security_group.security_group_id],
                    Subnets=cluster.vpc.select_subnets(public=assign_public_ip),
                )
            )
        elif security_group is not None:
            LOG.warning(
                f"{self} - security_group is only used in {NetworkMode.AWS_VPC} mode. Ignoring"
            )
        self.cfn_resource = self.add_cfn_resource(CfnService, "Service", **service_props)
        self.service_name = GetAtt(self.cfn_resource, "Name")
        self.service_arn = Ref(self.cfn_resource)
        if cloud_map_options is not None:
            self.enable_cloud_map(cloud_map_options)

    @property
    def connections(self) -> list:
        """
        Security groups the load balancers must be allowed into
        """
        if self.security_group is not None:
            return [self.security_group]
        return self.cluster.connections

    def add_load_balancer(self, load_balancer: EcsLoadBalancer) -> None:
        self.load_balancers.append(load_balancer)
        self.cfn_resource.LoadBalancers.append(load_balancer)
        if self.health_check_grace_period is None:
            LOG.debug(
                f"{self} - Health check grace period set to {DEFAULT_HEALTH_CHECK_GRACE_PERIOD}s"
            )
            self.health_check_grace_period = Duration.seconds(
                DEFAULT_HEALTH_CHECK_GRACE_PERIOD
            )
            self.cfn_resource.HealthCheckGracePeriodSeconds = (
                self.health_check_grace_period.to_seconds()
            )

    def load_balancer_target(
        self, container_name: str, container_port: int, protocol: str = None
    ) -> LoadBalancerTarget:
        """
        Returns the target for a specific container and port of the service

        :raises: LookupError when the container or its port mapping does not exist
        """
        protocol = protocol if protocol else Protocol.TCP
        container = self.task_definition.find_container(container_name)
        if container is None:
            raise LookupError(
                f"{self} - No container named '{container_name}'. Did you call add_container()?"
            )
        port_mapping = container.find_port_mapping(container_port, protocol)
        if port_mapping is None:
            raise LookupError(
                f"{self} - Container '{container_name}' has no mapping for port {container_port} "
                f"and protocol {protocol}. Did you call container.add_port_mappings()?"
            )
        return LoadBalancerTarget(self, container, port_mapping)

    def default_load_balancer_target(self) -> LoadBalancerTarget:
        container = self.task_definition.default_container
        if container is None:
            raise ValueError(f"{self} - The task definition has no essential container")
        return self.load_balancer_target(
            container.container_name,
            container.container_port,
            container.port_mappings[0].protocol,
        )

    def attach_to_application_target_group(
        self, target_group: ApplicationTargetGroup
    ) -> str:
        return self.default_load_balancer_target().attach_to_application_target_group(
            target_group
        )

    def connect_listener(self, listener: ApplicationListener, dependable: AWSObject):
        self.default_load_balancer_target().connect_listener(listener, dependable)

    def enable_cloud_map(self, options: CloudMapOptions) -> SdService:
        """
        Registers the tasks of the service into the default namespace of the cluster.
        A records are only supported in awsvpc mode, SRV records point at the default container.
        """
        namespace = self.cluster.default_namespace
        if namespace is None:
            raise ValueError(
                f"{self} - Cannot enable service discovery if a Cloudmap Namespace "
                "has not been created in the cluster."
            )
        awsvpc = self.task_definition.network_mode == NetworkMode.AWS_VPC
        dns_record_type = options.dns_record_type
        if dns_record_type is None:
            dns_record_type = "A" if awsvpc else "SRV"
        if dns_record_type == "A" and not awsvpc:
            raise ValueError(
                f"{self} - A records are only supported for {NetworkMode.AWS_VPC} network mode. "
                f"Got {self.task_definition.network_mode}"
            )
        namespace_id = (
            GetAtt(namespace, "Id") if isinstance(namespace, AWSObject) else namespace
        )
        self.cloud_map_service = self.add_cfn_resource(
            SdService,
            "CloudmapService",
            Name=options.name if options.name else Ref(AWS_NO_VALUE),
            NamespaceId=namespace_id,
            DnsConfig=DnsConfig(
                RoutingPolicy="MULTIVALUE",
                NamespaceId=namespace_id,
                DnsRecords=[
                    DnsRecord(TTL=options.dns_ttl.to_seconds(), Type=dns_record_type)
                ],
            ),
            HealthCheckCustomConfig=HealthCheckCustomConfig(
                FailureThreshold=options.failure_threshold
            ),
        )
        registry_props = {"RegistryArn": GetAtt(self.cloud_map_service, "Arn")}
        if dns_record_type == "SRV":
            container = self.task_definition.default_container
            if container is None or not container.port_mappings:
                raise ValueError(
                    f"{self} - SRV records require the default container to have a port mapping"
                )
            registry_props["ContainerName"] = container.container_name
            registry_props["ContainerPort"] = container.container_port
        self.cfn_resource.ServiceRegistries = [ServiceRegistry(**registry_props)]
        LOG.info(f"{self} - Registered into Cloud Map with {dns_record_type} records")
        return self.cloud_map_service

    def validate(self) -> list:
        errors = []
        if self.user_grace_period and not self.load_balancers:
            errors.append(
                "Health check grace period is only valid for services with load balancers"
            )
        return errors


class Ec2Service(BaseService):
    """
    Service running its tasks on the EC2 capacity of the cluster
    """

    compatibility = Compatibility.EC2

    def __init__(self, scope: Construct, construct_id: str, cluster, task_definition, **props):
        if "platform_version" in props and props["platform_version"]:
            raise ValueError("platform_version is only valid for Fargate services")
        super().__init__(scope, construct_id, cluster, task_definition, **props)

    def validate(self) -> list:
        errors = super().validate()
        if not self.cluster.has_ec2_capacity:
            errors.append(
                "Cluster for this service needs Ec2 capacity. Call add_capacity() on the cluster."
            )
        return errors


class FargateService(BaseService):
    """
    Service running its tasks on Fargate
    """

    compatibility = Compatibility.FARGATE
