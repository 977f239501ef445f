#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Load balanced ECS services patterns
"""

from ecs_patterns.patterns.base import (
    ApplicationLoadBalancedServiceBase,
    ApplicationMultipleTargetGroupsServiceBase,
)
from ecs_patterns.patterns.load_balanced_services import (
    ApplicationLoadBalancedEc2Service,
    ApplicationLoadBalancedFargateService,
)
from ecs_patterns.patterns.multiple_target_groups_services import (
    ApplicationMultipleTargetGroupsEc2Service,
    ApplicationMultipleTargetGroupsFargateService,
)
from ecs_patterns.patterns.patterns_params import (
    ApplicationListenerProps,
    ApplicationLoadBalancedTaskImageOptions,
    ApplicationLoadBalancerProps,
    ApplicationTargetProps,
)

__all__ = [
    "ApplicationListenerProps",
    "ApplicationLoadBalancedEc2Service",
    "ApplicationLoadBalancedFargateService",
    "ApplicationLoadBalancedServiceBase",
    "ApplicationLoadBalancedTaskImageOptions",
    "ApplicationLoadBalancerProps",
    "ApplicationMultipleTargetGroupsEc2Service",
    "ApplicationMultipleTargetGroupsFargateService",
    "ApplicationMultipleTargetGroupsServiceBase",
    "ApplicationTargetProps",
]
