#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Elastic Load Balancing v2 constructs: application load balancers, listeners and target groups.
"""

from ecs_patterns.elbv2.elbv2_params import ApplicationProtocol, default_port
from ecs_patterns.elbv2.listener import ApplicationListener
from ecs_patterns.elbv2.load_balancer import ApplicationLoadBalancer
from ecs_patterns.elbv2.target_group import ApplicationTargetGroup

__all__ = [
    "ApplicationListener",
    "ApplicationLoadBalancer",
    "ApplicationProtocol",
    "ApplicationTargetGroup",
    "default_port",
]
