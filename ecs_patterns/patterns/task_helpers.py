#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions shared by the patterns to build their task definition, their service and register their targets
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.ecs import BaseService, ContainerDefinition, TaskDefinition
    from ecs_patterns.elbv2 import ApplicationTargetGroup
    from ecs_patterns.patterns.base import LoadBalancedServiceBase

from ecs_patterns.common.logging import LOG
from ecs_patterns.ecs import (
    Ec2Service,
    Ec2TaskDefinition,
    FargateService,
    FargateTaskDefinition,
    PortMapping,
    Protocol,
)
from ecs_patterns.ecs.ecs_params import FARGATE_DEFAULT_CPU, FARGATE_DEFAULT_MEMORY
from ecs_patterns.exceptions import IncompatibleOptions, MissingOptions
from ecs_patterns.patterns.patterns_params import (
    DEFAULT_TARGET_GROUP_PORT,
    DEFAULT_TARGETS_ID,
    TARGET_GROUP_PREFIX,
    ApplicationLoadBalancedTaskImageOptions,
)


def validate_task_inputs(
    task_definition: TaskDefinition,
    task_image_options: ApplicationLoadBalancedTaskImageOptions,
) -> None:
    if task_definition is not None and task_image_options is not None:
        raise IncompatibleOptions(
            "You must specify either a taskDefinition or taskImageOptions, not both."
        )
    if task_definition is None and task_image_options is None:
        raise MissingOptions("You must specify one of: taskDefinition or image")


def add_image_container(
    pattern: LoadBalancedServiceBase,
    task_definition: TaskDefinition,
    task_image_options: ApplicationLoadBalancedTaskImageOptions,
    **container_props,
) -> ContainerDefinition:
    """
    Adds the container defined by the image options to the task definition, with its port mapping.
    Logs go to CloudWatch with the pattern ID as stream prefix unless disabled or another log driver is set.

    :param LoadBalancedServiceBase pattern:
    :param TaskDefinition task_definition:
    :param ApplicationLoadBalancedTaskImageOptions task_image_options:
    :param container_props: cpu and memory settings of the container
    :rtype: ContainerDefinition
    """
    if task_image_options.log_driver is not None:
        log_driver = task_image_options.log_driver
    elif task_image_options.enable_logging:
        log_driver = pattern.create_aws_log_driver(pattern.node_id)
    else:
        LOG.info(f"{pattern} - Logging disabled for {task_image_options.container_name}")
        log_driver = None
    container = task_definition.add_container(
        task_image_options.container_name,
        task_image_options.image,
        environment=task_image_options.environment,
        secrets=task_image_options.secrets,
        logging=log_driver,
        **container_props,
    )
    container.add_port_mappings(PortMapping(task_image_options.container_port))
    return container


def add_port_mapping_for_targets(container: ContainerDefinition, targets: list) -> None:
    """
    Maps the ports of the targets which the container does not map yet
    """
    for target in targets:
        protocol = target.protocol if target.protocol else Protocol.TCP
        if not container.find_port_mapping(target.container_port, protocol):
            container.add_port_mappings(
                PortMapping(target.container_port, protocol=protocol)
            )


def register_ecs_targets(
    pattern: LoadBalancedServiceBase,
    service: BaseService,
    container: ContainerDefinition,
    targets: list,
) -> list:
    """
    Registers each target port of the container into its listener

    :return: the target groups, in the order of the targets
    :rtype: list[ApplicationTargetGroup]
    """
    add_port_mapping_for_targets(container, targets)
    target_groups = []
    for target in targets:
        target_group = pattern.find_listener(target.listener).add_targets(
            f"{TARGET_GROUP_PREFIX}{container.container_name}{target.container_port}",
            port=DEFAULT_TARGET_GROUP_PORT,
            targets=[
                service.load_balancer_target(
                    container.container_name, target.container_port, target.protocol
                )
            ],
            host_header=target.host_header,
            path_pattern=target.path_pattern,
            priority=target.priority,
        )
        target_groups.append(target_group)
    if not target_groups:
        raise MissingOptions("At least one target group should be specified.")
    return target_groups


def define_service_target_groups(
    pattern: LoadBalancedServiceBase, service: BaseService, task_definition: TaskDefinition
) -> list:
    """
    Registers the service into the listeners: each target of the pattern when set,
    otherwise the service as a whole into the default listener.

    :rtype: list[ApplicationTargetGroup]
    """
    if task_definition.default_container is not None and pattern.target_groups_props is not None:
        return register_ecs_targets(
            pattern,
            service,
            task_definition.default_container,
            pattern.target_groups_props,
        )
    return [
        pattern.listener.add_targets(
            DEFAULT_TARGETS_ID, port=DEFAULT_TARGET_GROUP_PORT, targets=[service]
        )
    ]


def define_service_props(pattern: LoadBalancedServiceBase) -> dict:
    return {
        "desired_count": pattern.desired_count,
        "service_name": pattern.service_name,
        "health_check_grace_period": pattern.health_check_grace_period,
        "propagate_tags": pattern.propagate_tags,
        "enable_ecs_managed_tags": pattern.enable_ecs_managed_tags,
        "cloud_map_options": pattern.cloud_map_options,
    }


def define_ec2_service(
    pattern: LoadBalancedServiceBase,
    task_definition: Ec2TaskDefinition = None,
    cpu: int = None,
    memory_limit_mib: int = None,
    memory_reservation_mib: int = None,
) -> list:
    """
    Sets the task definition and the EC2 service of the pattern, then registers the service targets.
    The task definition is created from the image options when not given.

    :rtype: list[ApplicationTargetGroup]
    """
    validate_task_inputs(task_definition, pattern.task_image_options)
    if task_definition is None:
        task_definition = Ec2TaskDefinition(
            pattern,
            "TaskDef",
            execution_role=pattern.task_image_options.execution_role,
            task_role=pattern.task_image_options.task_role,
        )
        add_image_container(
            pattern,
            task_definition,
            pattern.task_image_options,
            cpu=cpu,
            memory_limit_mib=memory_limit_mib,
            memory_reservation_mib=memory_reservation_mib,
        )
    pattern.task_definition = task_definition
    pattern.service = Ec2Service(
        pattern,
        "Service",
        pattern.cluster,
        task_definition,
        assign_public_ip=False,
        **define_service_props(pattern),
    )
    return define_service_target_groups(pattern, pattern.service, task_definition)


def define_fargate_service(
    pattern: LoadBalancedServiceBase,
    task_definition: FargateTaskDefinition = None,
    cpu: int = None,
    memory_limit_mib: int = None,
    assign_public_ip: bool = False,
    platform_version: str = None,
) -> list:
    """
    Sets the task definition and the Fargate service of the pattern, then registers the service targets.
    New task definitions default to 256 CPU units and 512MiB.

    :rtype: list[ApplicationTargetGroup]
    """
    validate_task_inputs(task_definition, pattern.task_image_options)
    pattern.assign_public_ip = assign_public_ip
    if task_definition is None:
        task_definition = FargateTaskDefinition(
            pattern,
            "TaskDef",
            cpu=cpu if cpu is not None else FARGATE_DEFAULT_CPU,
            memory_mib=memory_limit_mib
            if memory_limit_mib is not None
            else FARGATE_DEFAULT_MEMORY,
            execution_role=pattern.task_image_options.execution_role,
            task_role=pattern.task_image_options.task_role,
        )
        add_image_container(pattern, task_definition, pattern.task_image_options)
    pattern.task_definition = task_definition
    pattern.service = FargateService(
        pattern,
        "Service",
        pattern.cluster,
        task_definition,
        assign_public_ip=assign_public_ip,
        platform_version=platform_version,
        **define_service_props(pattern),
    )
    return define_service_target_groups(pattern, pattern.service, task_definition)
