#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS services behind an application load balancer, on EC2 or Fargate
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.ecs import Ec2TaskDefinition, FargateTaskDefinition

from ecs_patterns.common.construct import Construct
from ecs_patterns.patterns.base import ApplicationLoadBalancedServiceBase
from ecs_patterns.patterns.task_helpers import define_ec2_service, define_fargate_service


class ApplicationLoadBalancedEc2Service(ApplicationLoadBalancedServiceBase):
    """
    EC2 service behind an application load balancer

    :ivar Ec2Service service:
    :ivar Ec2TaskDefinition task_definition:
    :ivar ApplicationTargetGroup target_group: the first target group of the service
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
        self.target_group = define_ec2_service(
            self, task_definition, cpu, memory_limit_mib, memory_reservation_mib
        )[0]


class ApplicationLoadBalancedFargateService(ApplicationLoadBalancedServiceBase):
    """
    Fargate service behind an application load balancer

    :ivar FargateService service:
    :ivar FargateTaskDefinition task_definition:
    :ivar ApplicationTargetGroup target_group: the first target group of the service
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
        self.target_group = define_fargate_service(
            self,
            task_definition,
            cpu,
            memory_limit_mib,
            assign_public_ip,
            platform_version,
        )[0]
