#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to build the App and its stack from the definition files content.

The definition sections are processed in order: Vpc, Cluster, HostedZones, Certificates and Services,
so that the services can refer to the zones and certificates by name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.common.settings import PatternsSettings

from compose_x_common.compose_x_common import keyisset, set_else_none

from ecs_patterns.acm import Certificate, DnsValidatedCertificate
from ecs_patterns.common import NONALPHANUM
from ecs_patterns.common.logging import LOG
from ecs_patterns.common.stack import App, Stack
from ecs_patterns.ecs import (
    AwsLogDriver,
    BaseCluster,
    CloudMapOptions,
    Cluster,
    ContainerImage,
    Secret,
)
from ecs_patterns.exceptions import MissingOptions
from ecs_patterns.iam import Role
from ecs_patterns.patterns import (
    ApplicationListenerProps,
    ApplicationLoadBalancedEc2Service,
    ApplicationLoadBalancedFargateService,
    ApplicationLoadBalancedTaskImageOptions,
    ApplicationLoadBalancerProps,
    ApplicationMultipleTargetGroupsEc2Service,
    ApplicationMultipleTargetGroupsFargateService,
    ApplicationTargetProps,
)
from ecs_patterns.route53 import HostedZone, PublicHostedZone
from ecs_patterns.vpc import BaseVpc, Vpc

DEFAULT_STACK_NAME = "ecs-patterns"
VPC_ID = "Vpc"
CLUSTER_ID = "Cluster"

PATTERNS = {
    "ApplicationLoadBalancedEc2Service": ApplicationLoadBalancedEc2Service,
    "ApplicationLoadBalancedFargateService": ApplicationLoadBalancedFargateService,
    "ApplicationMultipleTargetGroupsEc2Service": ApplicationMultipleTargetGroupsEc2Service,
    "ApplicationMultipleTargetGroupsFargateService": ApplicationMultipleTargetGroupsFargateService,
}
EC2_PATTERNS = [
    ApplicationLoadBalancedEc2Service,
    ApplicationMultipleTargetGroupsEc2Service,
]
MULTIPLE_TARGET_GROUPS_PATTERNS = [
    ApplicationMultipleTargetGroupsEc2Service,
    ApplicationMultipleTargetGroupsFargateService,
]


def define_vpc(stack: Stack, vpc_def: dict, settings: PatternsSettings) -> BaseVpc:
    """
    Creates, looks up or imports the VPC

    :param Stack stack:
    :param dict vpc_def: the Vpc section
    :param PatternsSettings settings:
    :rtype: BaseVpc
    """
    if keyisset("Create", vpc_def):
        create = vpc_def["Create"]
        return Vpc(
            stack,
            VPC_ID,
            cidr=set_else_none("Cidr", create),
            max_azs=set_else_none("MaxAzs", create),
            nat_gateways=set_else_none("NatGateways", create, eval_bool=True),
        )
    elif keyisset("Lookup", vpc_def):
        lookup = vpc_def["Lookup"]
        return Vpc.from_lookup(
            stack,
            VPC_ID,
            vpc_id=set_else_none("VpcId", lookup),
            is_default=set_else_none("IsDefault", lookup, eval_bool=True),
            tags=set_else_none("Tags", lookup),
            session=settings.session,
        )
    elif keyisset("Use", vpc_def):
        use = vpc_def["Use"]
        return Vpc.from_attributes(
            stack,
            VPC_ID,
            use["VpcId"],
            use["AvailabilityZones"],
            public_subnet_ids=set_else_none("PublicSubnets", use),
            private_subnet_ids=set_else_none("PrivateSubnets", use),
        )
    return Vpc(stack, VPC_ID)


def define_cluster(stack: Stack, cluster_def: dict, vpc: BaseVpc = None) -> BaseCluster:
    """
    Creates the cluster, its EC2 capacity and its Cloud Map namespace, or imports an existing one.

    :param Stack stack:
    :param dict cluster_def: the Cluster section
    :param BaseVpc vpc:
    :rtype: BaseCluster
    """
    if keyisset("Use", cluster_def):
        if not keyisset("ClusterName", cluster_def):
            raise MissingOptions("ClusterName is required to use an existing cluster")
        if vpc is None:
            raise MissingOptions(
                "The Vpc of the existing cluster must be set with Lookup or Use"
            )
        return Cluster.from_attributes(
            stack,
            CLUSTER_ID,
            cluster_def["ClusterName"],
            vpc,
            security_groups=set_else_none("SecurityGroups", cluster_def),
            has_ec2_capacity=keyisset("SecurityGroups", cluster_def),
        )
    cluster = Cluster(
        stack,
        CLUSTER_ID,
        vpc=vpc,
        cluster_name=set_else_none("ClusterName", cluster_def),
    )
    if keyisset("Capacity", cluster_def):
        capacity = cluster_def["Capacity"]
        cluster.add_capacity(
            "DefaultAutoScalingGroup",
            capacity["InstanceType"],
            desired_capacity=set_else_none("DesiredCapacity", capacity, eval_bool=True),
            min_capacity=set_else_none("MinCapacity", capacity, eval_bool=True),
            max_capacity=set_else_none("MaxCapacity", capacity, eval_bool=True),
            key_name=set_else_none("KeyName", capacity),
        )
    if keyisset("CloudMapNamespace", cluster_def):
        cluster.add_default_cloud_map_namespace(cluster_def["CloudMapNamespace"])
    return cluster


def define_hosted_zones(stack: Stack, zones_def: dict) -> dict:
    zones = {}
    for name, zone_def in zones_def.items():
        zone_id = NONALPHANUM.sub("", name)
        if keyisset("HostedZoneId", zone_def):
            zones[name] = HostedZone.from_hosted_zone_attributes(
                stack, zone_id, zone_def["HostedZoneId"], zone_def["ZoneName"]
            )
        else:
            zones[name] = PublicHostedZone(stack, zone_id, zone_def["ZoneName"])
    return zones


def get_zone(zones: dict, name: str = None) -> HostedZone | None:
    if name is None:
        return None
    if name not in zones:
        raise LookupError(
            f"Hosted zone {name} is not defined. Defined zones are", list(zones.keys())
        )
    return zones[name]


def define_certificates(stack: Stack, certificates_def: dict, zones: dict) -> dict:
    """
    Imports the certificates given by ARN and creates the DNS validated ones

    :return: the certificates by name
    :rtype: dict
    """
    certificates = {}
    for name, cert_def in certificates_def.items():
        cert_id = NONALPHANUM.sub("", name)
        if keyisset("CertificateArn", cert_def):
            certificates[name] = Certificate.from_certificate_arn(
                stack, cert_id, cert_def["CertificateArn"]
            )
        else:
            certificates[name] = DnsValidatedCertificate(
                stack,
                cert_id,
                domain_name=cert_def["DomainName"],
                hosted_zone=get_zone(zones, cert_def["HostedZone"]),
            )
    return certificates


def get_certificate(certificates: dict, name: str = None):
    if name is None:
        return None
    if name not in certificates:
        raise LookupError(
            f"Certificate {name} is not defined. Defined certificates are",
            list(certificates.keys()),
        )
    return certificates[name]


def define_secrets(secrets_def: dict) -> dict:
    secrets = {}
    for env_name, secret_def in secrets_def.items():
        if keyisset("SsmParameter", secret_def):
            secrets[env_name] = Secret.from_ssm_parameter(secret_def["SsmParameter"])
        else:
            secrets[env_name] = Secret.from_secrets_manager(secret_def["SecretsManager"])
    return secrets


def define_task_image_options(
    stack: Stack, service_name: str, image_def: dict
) -> ApplicationLoadBalancedTaskImageOptions:
    """
    Maps TaskImageOptions to the task image options of the pattern.
    Roles given by ARN are imported in the stack.
    """
    log_driver = None
    if keyisset("LogRetentionDays", image_def):
        log_driver = AwsLogDriver(
            stream_prefix=service_name, log_retention=image_def["LogRetentionDays"]
        )
    execution_role = (
        Role.from_role_arn(
            stack, f"{service_name}ExecutionRole", image_def["ExecutionRoleArn"]
        )
        if keyisset("ExecutionRoleArn", image_def)
        else None
    )
    task_role = (
        Role.from_role_arn(stack, f"{service_name}TaskRole", image_def["TaskRoleArn"])
        if keyisset("TaskRoleArn", image_def)
        else None
    )
    return ApplicationLoadBalancedTaskImageOptions(
        ContainerImage.from_registry(image_def["Image"]),
        environment={
            key: str(value)
            for key, value in set_else_none(
                "Environment", image_def, alt_value={}
            ).items()
        },
        secrets=define_secrets(set_else_none("Secrets", image_def, alt_value={})),
        enable_logging=set_else_none("EnableLogging", image_def, eval_bool=True),
        log_driver=log_driver,
        execution_role=execution_role,
        task_role=task_role,
        container_name=set_else_none("ContainerName", image_def),
        container_port=set_else_none("ContainerPort", image_def),
    )


def define_load_balancers(lbs_def: list, zones: dict, certificates: dict) -> list:
    return [
        ApplicationLoadBalancerProps(
            name=lb_def["Name"],
            listeners=[
                ApplicationListenerProps(
                    listener_def["Name"],
                    certificate=get_certificate(
                        certificates, set_else_none("Certificate", listener_def)
                    ),
                )
                for listener_def in set_else_none("Listeners", lb_def, alt_value=[])
            ],
            public_load_balancer=set_else_none("PublicLoadBalancer", lb_def, eval_bool=True),
            protocol=set_else_none("Protocol", lb_def),
            domain_name=set_else_none("DomainName", lb_def),
            domain_zone=get_zone(zones, set_else_none("DomainZone", lb_def)),
        )
        for lb_def in lbs_def
    ]


def define_target_groups(targets_def: list) -> list:
    return [
        ApplicationTargetProps(
            target_def["ContainerPort"],
            protocol=set_else_none("Protocol", target_def),
            listener=set_else_none("Listener", target_def),
            priority=set_else_none("Priority", target_def),
            host_header=set_else_none("HostHeader", target_def),
            path_pattern=set_else_none("PathPattern", target_def),
        )
        for target_def in targets_def
    ]


def define_service_props(
    stack: Stack,
    service_name: str,
    service_def: dict,
    pattern_class,
    zones: dict,
    certificates: dict,
) -> dict:
    """
    Maps the service definition to the keyword arguments of the pattern class

    :rtype: dict
    """
    props = {
        "task_image_options": define_task_image_options(
            stack, service_name, service_def["TaskImageOptions"]
        ),
        "desired_count": set_else_none("DesiredCount", service_def, eval_bool=True),
        "service_name": set_else_none("ServiceName", service_def),
        "health_check_grace_period": set_else_none(
            "HealthCheckGracePeriod", service_def, eval_bool=True
        ),
        "propagate_tags": set_else_none("PropagateTags", service_def),
        "enable_ecs_managed_tags": keyisset("EnableEcsManagedTags", service_def),
        "cpu": set_else_none("Cpu", service_def),
        "memory_limit_mib": set_else_none("MemoryLimitMiB", service_def),
    }
    if keyisset("CloudMapOptions", service_def):
        cloudmap_def = service_def["CloudMapOptions"]
        props["cloud_map_options"] = CloudMapOptions(
            name=set_else_none("Name", cloudmap_def),
            dns_record_type=set_else_none("DnsRecordType", cloudmap_def),
            dns_ttl=set_else_none("DnsTtl", cloudmap_def, eval_bool=True),
            failure_threshold=set_else_none("FailureThreshold", cloudmap_def),
        )
    if keyisset("LoadBalancers", service_def):
        props["load_balancers"] = define_load_balancers(
            service_def["LoadBalancers"], zones, certificates
        )
    if keyisset("TargetGroups", service_def):
        props["target_groups"] = define_target_groups(service_def["TargetGroups"])
    if pattern_class in EC2_PATTERNS:
        props["memory_reservation_mib"] = set_else_none(
            "MemoryReservationMiB", service_def
        )
    else:
        props["assign_public_ip"] = keyisset("AssignPublicIp", service_def)
        props["platform_version"] = set_else_none("PlatformVersion", service_def)
    if pattern_class not in MULTIPLE_TARGET_GROUPS_PATTERNS:
        props.update(
            {
                "public_load_balancer": set_else_none(
                    "PublicLoadBalancer", service_def, eval_bool=True
                ),
                "protocol": set_else_none("Protocol", service_def),
                "certificate": get_certificate(
                    certificates, set_else_none("Certificate", service_def)
                ),
                "domain_name": set_else_none("DomainName", service_def),
                "domain_zone": get_zone(
                    zones, set_else_none("DomainZone", service_def)
                ),
            }
        )
    return props


def generate_app(settings: PatternsSettings) -> App:
    """
    Builds the App with one stack, named after the execution name, from the settings definition

    :param PatternsSettings settings:
    :rtype: App
    """
    definition = settings.definition
    if not keyisset("Services", definition):
        raise MissingOptions("At least one service must be defined in Services")
    app = App()
    stack = Stack(
        app,
        settings.name if settings.name else DEFAULT_STACK_NAME,
        description=set_else_none("Description", definition),
    )
    vpc = (
        define_vpc(stack, definition["Vpc"], settings)
        if keyisset("Vpc", definition)
        else None
    )
    cluster = (
        define_cluster(stack, definition["Cluster"], vpc)
        if keyisset("Cluster", definition)
        else None
    )
    zones = define_hosted_zones(
        stack, set_else_none("HostedZones", definition, alt_value={})
    )
    certificates = define_certificates(
        stack, set_else_none("Certificates", definition, alt_value={}), zones
    )
    for service_name, service_def in definition["Services"].items():
        pattern_class = PATTERNS[service_def["Type"]]
        if pattern_class in EC2_PATTERNS and (
            cluster is None or not cluster.has_ec2_capacity
        ):
            LOG.warning(
                f"{service_name} - {service_def['Type']} requires Cluster.Capacity to be set"
            )
        props = define_service_props(
            stack, service_name, service_def, pattern_class, zones, certificates
        )
        if cluster is not None:
            props["cluster"] = cluster
        elif vpc is not None:
            props["vpc"] = vpc
        LOG.info(f"{service_name} - Adding {service_def['Type']}")
        pattern_class(stack, NONALPHANUM.sub("", service_name), **props)
    return app
