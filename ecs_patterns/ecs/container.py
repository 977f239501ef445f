#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Container definitions of a Task Definition, with their images, secrets and port mappings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.ecs.task_definition import TaskDefinition
    from ecs_patterns.ecs.log_driver import LogDriver
    from ecs_patterns.iam import IRole

from troposphere import AWS_NO_VALUE, Ref
from troposphere.ecs import ContainerDefinition as CfnContainerDefinition
from troposphere.ecs import Environment, PortMapping as CfnPortMapping
from troposphere.ecs import Secret as CfnSecret

from ecs_patterns.common.construct import Construct
from ecs_patterns.common.logging import LOG
from ecs_patterns.ecs.ecs_params import NetworkMode, Protocol


class ContainerImage(object):
    """
    Image to start the container from
    """

    def __init__(self, image_name):
        if not image_name:
            raise ValueError("Container image name cannot be empty")
        self.image_name = image_name

    def __repr__(self):
        return f"{self.image_name}"

    @classmethod
    def from_registry(cls, name: str) -> ContainerImage:
        """
        Image from a public registry (Docker Hub) or a private one by full name, i.e. nginx:latest
        """
        return cls(name)


class Secret(object):
    """
    Secret exposed to the container as an environment variable.
    The task execution role is granted read access to it.
    """

    def __init__(self, arn, actions: list):
        self.arn = arn
        self.actions = actions

    @classmethod
    def from_ssm_parameter(cls, parameter_arn) -> Secret:
        return cls(parameter_arn, ["ssm:GetParameters"])

    @classmethod
    def from_secrets_manager(cls, secret_arn) -> Secret:
        return cls(secret_arn, ["secretsmanager:GetSecretValue"])

    def grant_read(self, role: IRole) -> None:
        role.add_to_policy(
            {"Effect": "Allow", "Action": self.actions, "Resource": [self.arn]}
        )


class PortMapping(object):
    """
    Port mapping of a container

    :ivar int container_port:
    :ivar int host_port: None to let ECS assign an ephemeral one in bridge mode
    :ivar str protocol: tcp or udp
    """

    def __init__(self, container_port: int, host_port: int = None, protocol: str = None):
        if not isinstance(container_port, int) or not 0 < container_port <= 65535:
            raise ValueError(
                f"Container port must be an integer in 1-65535. Got {container_port}"
            )
        self.container_port = container_port
        self.host_port = host_port
        self.protocol = protocol if protocol else Protocol.TCP
        if self.protocol not in Protocol.allowed:
            raise ValueError(
                f"Protocol {self.protocol} is not valid. Must be one of",
                Protocol.allowed,
            )

    def __repr__(self):
        return f"{self.container_port}/{self.protocol}"

    def to_cfn(self) -> CfnPortMapping:
        return CfnPortMapping(
            ContainerPort=self.container_port,
            HostPort=self.host_port if self.host_port is not None else Ref(AWS_NO_VALUE),
            Protocol=self.protocol,
        )


class ContainerDefinition(Construct):
    """
    Container of a task definition. Created via TaskDefinition.add_container

    :ivar troposphere.ecs.ContainerDefinition cfn_container: the definition rendered in the task definition
    """

    def __init__(
        self,
        scope: TaskDefinition,
        construct_id: str,
        image: ContainerImage,
        cpu: int = None,
        memory_limit_mib: int = None,
        memory_reservation_mib: int = None,
        environment: dict = None,
        secrets: dict = None,
        logging: LogDriver = None,
        essential: bool = True,
    ):
        super().__init__(scope, construct_id)
        if not isinstance(image, ContainerImage):
            raise TypeError(f"{self} - image must be", ContainerImage, "Got", type(image))
        self.task_definition = scope
        self.container_name = construct_id
        self.essential = essential
        self.memory_limit_mib = memory_limit_mib
        self.memory_reservation_mib = memory_reservation_mib
        if (
            memory_limit_mib is not None
            and memory_reservation_mib is not None
            and memory_limit_mib < memory_reservation_mib
        ):
            raise ValueError(
                f"{self} - memory_limit_mib ({memory_limit_mib}) should not be less "
                f"than memory_reservation_mib ({memory_reservation_mib})"
            )
        self.port_mappings = []
        container_props = {
            "Name": self.container_name,
            "Image": image.image_name,
            "Essential": essential,
        }
        if cpu is not None:
            container_props["Cpu"] = cpu
        if memory_limit_mib is not None:
            container_props["Memory"] = memory_limit_mib
        if memory_reservation_mib is not None:
            container_props["MemoryReservation"] = memory_reservation_mib
        if environment:
            container_props["Environment"] = [
                Environment(Name=name, Value=str(value))
                for name, value in environment.items()
            ]
        if secrets:
            container_props["Secrets"] = [
                CfnSecret(Name=name, ValueFrom=secret.arn)
                for name, secret in secrets.items()
            ]
            for secret in secrets.values():
                secret.grant_read(self.task_definition.obtain_execution_role())
        if logging:
            container_props["LogConfiguration"] = logging.bind(self)
        self.cfn_container = CfnContainerDefinition(**container_props)

    @property
    def memory_limit_specified(self) -> bool:
        return (
            self.memory_limit_mib is not None or self.memory_reservation_mib is not None
        )

    def add_port_mappings(self, *port_mappings: PortMapping) -> None:
        """
        Adds port mappings to the container. In awsvpc mode the host port must be the container port.
        """
        for port_mapping in port_mappings:
            if self.task_definition.network_mode in [
                NetworkMode.AWS_VPC,
                NetworkMode.HOST,
            ]:
                if (
                    port_mapping.host_port is not None
                    and port_mapping.host_port != port_mapping.container_port
                ):
                    raise ValueError(
                        f"{self} - Host port ({port_mapping.host_port}) must be left out or equal to "
                        f"container port ({port_mapping.container_port}) "
                        f"for network mode {self.task_definition.network_mode}"
                    )
                port_mapping.host_port = port_mapping.container_port
            LOG.debug(f"{self} - Adding port mapping {port_mapping}")
            self.port_mappings.append(port_mapping)
        self.cfn_container.PortMappings = [
            mapping.to_cfn() for mapping in self.port_mappings
        ]

    def find_port_mapping(self, container_port: int, protocol: str = None):
        """
        Returns the port mapping for the container port and protocol, None if not mapped
        """
        protocol = protocol if protocol else Protocol.TCP
        for port_mapping in self.port_mappings:
            if (
                port_mapping.container_port == container_port
                and port_mapping.protocol == protocol
            ):
                return port_mapping
        return None

    @property
    def container_port(self) -> int:
        """
        Port of the first port mapping, used by default for load balancing
        """
        if not self.port_mappings:
            raise ValueError(f"{self} - Container has no port mappings")
        return self.port_mappings[0].container_port

    def ingress_port(self, port_mapping: PortMapping = None) -> int:
        """
        The port traffic is received on, on the host or ENI. 0 means an ephemeral port in bridge mode.
        """
        if port_mapping is None:
            if not self.port_mappings:
                raise ValueError(f"{self} - Container has no port mappings")
            port_mapping = self.port_mappings[0]
        if self.task_definition.network_mode in [
            NetworkMode.AWS_VPC,
            NetworkMode.HOST,
        ]:
            return port_mapping.container_port
        if port_mapping.host_port is not None:
            return port_mapping.host_port
        return 0
