#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Task definitions, for EC2 or Fargate, and their IAM roles.
"""

from __future__ import annotations

from troposphere import AWS_NO_VALUE, Ref
from troposphere.ecs import TaskDefinition as CfnTaskDefinition

from ecs_patterns.common.construct import Construct
from ecs_patterns.common.logging import LOG
from ecs_patterns.ecs.container import ContainerDefinition, ContainerImage
from ecs_patterns.ecs.ecs_params import (
    ECS_TASKS_PRINCIPAL,
    FARGATE_CPU_MEMORY,
    FARGATE_DEFAULT_CPU,
    FARGATE_DEFAULT_MEMORY,
    TASK_EXECUTION_POLICY,
    Compatibility,
    NetworkMode,
)
from ecs_patterns.iam import IRole, Role, managed_policy_arn


class TaskDefinition(Construct):
    """
    Task definition, the specification of the containers of a task.

    :ivar str compatibility: EC2 or FARGATE
    :ivar str network_mode: bridge, awsvpc, host or none
    :ivar IRole task_role: role assumed by the containers
    :ivar IRole execution_role: role used by the ECS agent, created on demand
    :ivar list[ContainerDefinition] containers:
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        compatibility: str,
        network_mode: str = None,
        cpu: int = None,
        memory_mib: int = None,
        execution_role: IRole = None,
        task_role: IRole = None,
        family: str = None,
    ):
        super().__init__(scope, construct_id)
        if compatibility not in Compatibility.allowed:
            raise ValueError(
                f"{self} - Compatibility {compatibility} is not valid. Must be one of",
                Compatibility.allowed,
            )
        self.compatibility = compatibility
        self.network_mode = network_mode if network_mode else NetworkMode.BRIDGE
        if self.network_mode not in NetworkMode.allowed:
            raise ValueError(
                f"{self} - Network mode {self.network_mode} is not valid. Must be one of",
                NetworkMode.allowed,
            )
        self.cpu = cpu
        self.memory_mib = memory_mib
        self.containers = []
        self.execution_role = execution_role
        if task_role is not None:
            self.task_role = task_role
        else:
            self.task_role = Role(self, "TaskRole", assumed_by=ECS_TASKS_PRINCIPAL)
        task_props = {
            "Family": family if family else self.logical_id(),
            "NetworkMode": self.network_mode,
            "RequiresCompatibilities": [self.compatibility],
            "TaskRoleArn": self.task_role.role_arn,
            "ContainerDefinitions": [],
            "ExecutionRoleArn": self.execution_role.role_arn
            if self.execution_role
            else Ref(AWS_NO_VALUE),
        }
        if cpu is not None:
            task_props["Cpu"] = str(cpu)
        if memory_mib is not None:
            task_props["Memory"] = str(memory_mib)
        self.cfn_resource = self.add_cfn_resource(CfnTaskDefinition, **task_props)
        self.task_definition_arn = Ref(self.cfn_resource)

    @property
    def default_container(self) -> ContainerDefinition | None:
        """
        The first essential container of the task definition
        """
        for container in self.containers:
            if container.essential:
                return container
        return None

    def obtain_execution_role(self) -> IRole:
        """
        Returns the execution role, creating it if it does not exist yet
        """
        if self.execution_role is None:
            LOG.info(f"{self} - Creating the task execution role")
            self.execution_role = Role(
                self,
                "ExecutionRole",
                assumed_by=ECS_TASKS_PRINCIPAL,
                managed_policy_arns=[managed_policy_arn(TASK_EXECUTION_POLICY)],
            )
            self.cfn_resource.ExecutionRoleArn = self.execution_role.role_arn
        return self.execution_role

    def add_container(
        self, construct_id: str, image: ContainerImage, **container_props
    ) -> ContainerDefinition:
        """
        Adds a new container to the task definition

        :param str construct_id: the name of the container
        :param ContainerImage image:
        :param container_props: see ContainerDefinition
        :rtype: ContainerDefinition
        """
        container = ContainerDefinition(self, construct_id, image, **container_props)
        self.containers.append(container)
        self.cfn_resource.ContainerDefinitions.append(container.cfn_container)
        return container

    def find_container(self, container_name: str) -> ContainerDefinition | None:
        for container in self.containers:
            if container.container_name == container_name:
                return container
        return None

    def validate(self) -> list:
        errors = []
        if not self.containers:
            errors.append("Task definition must have at least one container")
        return errors


class Ec2TaskDefinition(TaskDefinition):
    """
    Task definition for tasks running on EC2 container instances. Network mode defaults to bridge.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        network_mode: str = None,
        cpu: int = None,
        memory_mib: int = None,
        execution_role: IRole = None,
        task_role: IRole = None,
        family: str = None,
    ):
        super().__init__(
            scope,
            construct_id,
            Compatibility.EC2,
            network_mode=network_mode if network_mode else NetworkMode.BRIDGE,
            cpu=cpu,
            memory_mib=memory_mib,
            execution_role=execution_role,
            task_role=task_role,
            family=family,
        )

    def validate(self) -> list:
        errors = super().validate()
        if self.memory_mib is None:
            for container in self.containers:
                if not container.memory_limit_specified:
                    errors.append(
                        f"Container {container.container_name} must have at least one of "
                        "memory_limit_mib or memory_reservation_mib specified"
                    )
        return errors


def validate_fargate_cpu_memory(cpu: int, memory_mib: int) -> None:
    """
    Ensures the cpu and memory pair is a valid Fargate combination

    :raises: ValueError
    """
    if cpu not in FARGATE_CPU_MEMORY:
        raise ValueError(
            f"Fargate CPU {cpu} is not valid. Must be one of",
            list(FARGATE_CPU_MEMORY.keys()),
        )
    if memory_mib not in FARGATE_CPU_MEMORY[cpu]:
        raise ValueError(
            f"Fargate memory {memory_mib} is not valid for CPU {cpu}. Must be one of",
            FARGATE_CPU_MEMORY[cpu],
        )


class FargateTaskDefinition(TaskDefinition):
    """
    Task definition for Fargate. Network mode is always awsvpc.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        cpu: int = None,
        memory_mib: int = None,
        execution_role: IRole = None,
        task_role: IRole = None,
        family: str = None,
    ):
        cpu = cpu if cpu is not None else FARGATE_DEFAULT_CPU
        memory_mib = memory_mib if memory_mib is not None else FARGATE_DEFAULT_MEMORY
        validate_fargate_cpu_memory(cpu, memory_mib)
        super().__init__(
            scope,
            construct_id,
            Compatibility.FARGATE,
            network_mode=NetworkMode.AWS_VPC,
            cpu=cpu,
            memory_mib=memory_mib,
            execution_role=execution_role,
            task_role=task_role,
            family=family,
        )
