#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Properties objects of the load balanced services patterns
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.acm import BaseCertificate
    from ecs_patterns.ecs import ContainerImage, LogDriver
    from ecs_patterns.elbv2 import ApplicationLoadBalancer
    from ecs_patterns.iam import IRole
    from ecs_patterns.route53 import HostedZone

from ecs_patterns.ecs.ecs_params import (
    DEFAULT_CONTAINER_NAME,
    DEFAULT_CONTAINER_PORT,
    Protocol,
)
from ecs_patterns.elbv2.elbv2_params import ApplicationProtocol

DEFAULT_LB_ID = "LB"
DEFAULT_LISTENER_ID = "PublicListener"
DEFAULT_TARGETS_ID = "ECS"
DEFAULT_TARGET_GROUP_PORT = 80
TARGET_GROUP_PREFIX = "ECSTargetGroup"


class ApplicationLoadBalancedTaskImageOptions(object):
    """
    Options to create the task definition and its container from an image

    :ivar ContainerImage image: image of the container
    :ivar dict environment: environment variables of the container
    :ivar dict secrets: secrets of the container, by environment variable name
    :ivar bool enable_logging: send the container logs to CloudWatch, default True
    :ivar LogDriver log_driver: log driver to use instead of the default awslogs one
    :ivar IRole execution_role:
    :ivar IRole task_role:
    :ivar str container_name: defaults to web
    :ivar int container_port: defaults to 80
    """

    def __init__(
        self,
        image: ContainerImage,
        environment: dict = None,
        secrets: dict = None,
        enable_logging: bool = None,
        log_driver: LogDriver = None,
        execution_role: IRole = None,
        task_role: IRole = None,
        container_name: str = None,
        container_port: int = None,
    ):
        if image is None:
            raise ValueError("image is required in the task image options")
        self.image = image
        self.environment = environment
        self.secrets = secrets
        self.enable_logging = enable_logging if enable_logging is not None else True
        self.log_driver = log_driver
        self.execution_role = execution_role
        self.task_role = task_role
        self.container_name = (
            container_name if container_name else DEFAULT_CONTAINER_NAME
        )
        self.container_port = (
            container_port if container_port else DEFAULT_CONTAINER_PORT
        )


class ApplicationTargetProps(object):
    """
    Container port to register into one of the listeners of the service

    :ivar int container_port:
    :ivar str protocol: tcp or udp
    :ivar str listener: name of the listener, the default listener when not set
    :ivar int priority: priority of the listener rule
    :ivar str host_header:
    :ivar str path_pattern:
    """

    def __init__(
        self,
        container_port: int,
        protocol: str = None,
        listener: str = None,
        priority: int = None,
        host_header: str = None,
        path_pattern: str = None,
    ):
        if protocol is not None and protocol not in Protocol.allowed:
            raise ValueError(
                f"Target protocol {protocol} is not valid. Must be one of",
                Protocol.allowed,
            )
        self.container_port = container_port
        self.protocol = protocol
        self.listener = listener
        self.priority = priority
        self.host_header = host_header
        self.path_pattern = path_pattern

    def __repr__(self):
        return f"{self.container_port}/{self.protocol if self.protocol else Protocol.TCP}"


class ApplicationListenerProps(object):
    """
    Listener of one of the load balancers of the service
    """

    def __init__(self, name: str, certificate: BaseCertificate = None):
        if not name:
            raise ValueError("Listener name is required")
        self.name = name
        self.certificate = certificate


class ApplicationLoadBalancerProps(object):
    """
    Load balancer of the service, new (name is then required) or existing (load_balancer)

    :ivar list[ApplicationListenerProps] listeners:
    :ivar bool public_load_balancer: defaults to True for new load balancers
    :ivar str protocol: protocol of the listeners, in the multiple target groups services
    """

    def __init__(
        self,
        name: str = None,
        listeners: list = None,
        public_load_balancer: bool = None,
        protocol: str = None,
        domain_name: str = None,
        domain_zone: HostedZone = None,
        load_balancer: ApplicationLoadBalancer = None,
    ):
        if protocol is not None and protocol not in ApplicationProtocol.allowed:
            raise ValueError(
                f"Load balancer protocol {protocol} is not valid. Must be one of",
                ApplicationProtocol.allowed,
            )
        self.name = name
        self.listeners = listeners if listeners else []
        self.public_load_balancer = public_load_balancer
        self.protocol = protocol
        self.domain_name = domain_name
        self.domain_zone = domain_zone
        self.load_balancer = load_balancer


class ListenerOptions(object):
    """
    A listener of the service, by name
    """

    def __init__(self, name: str, listener):
        self.name = name
        self.listener = listener
