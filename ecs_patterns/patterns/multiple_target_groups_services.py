#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS services exposing several container ports through several listeners and load balancers
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.ecs import Ec2TaskDefinition, FargateTaskDefinition

from ecs_patterns.common.construct import Construct
from ecs_patterns.patterns.base import ApplicationMultipleTargetGroupsServiceBase
from ecs_patterns.patterns.task_helpers import define_ec2_service, define_fargate_service


class ApplicationMultipleTargetGroupsEc2Service(
    ApplicationMultipleTargetGroupsServiceBase
):
    """
    EC2 service with one target group per container port target

    :ivar list target_groups: all the target groups of the service
    :ivar ApplicationTargetGroup target_group: the first one
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        task_definition: Ec2TaskDefinition = None,
        cpu: int = None,
        memory_limit_mib: int = None,
        memory_reservation_mib: int = None,
        **props,
    ):
        super().__init__(scope, construct_id, **props)
        self.target_groups = define_ec2_service(
            self, task_definition, cpu, memory_limit_mib, memory_reservation_mib
        )
        self.target_group = self.target_groups[0]


class ApplicationMultipleTargetGroupsFargateService(
    ApplicationMultipleTargetGroupsServiceBase
):
    """
    Fargate service with one target group per container port target

    :ivar list target_groups: all the target groups of the service
    :ivar ApplicationTargetGroup target_group: the first one
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        task_definition: FargateTaskDefinition = None,
        cpu: int = None,
        memory_limit_mib: int = None,
        assign_public_ip: bool = False,
        platform_version: str = None,
        **props,
    ):
        super().__init__(scope, construct_id, **props)
        self.target_groups = define_fargate_service(
            self,
            task_definition,
            cpu,
            memory_limit_mib,
            assign_public_ip,
            platform_version,
        )
        self.target_group = self.target_groups[0]
