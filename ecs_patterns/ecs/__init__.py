#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS constructs: clusters, task definitions, containers and services.
"""

from ecs_patterns.ecs.cloudmap import CloudMapOptions
from ecs_patterns.ecs.cluster import BaseCluster, Cluster, ImportedCluster
from ecs_patterns.ecs.container import (
    ContainerDefinition,
    ContainerImage,
    PortMapping,
    Secret,
)
from ecs_patterns.ecs.ecs_params import (
    Compatibility,
    NetworkMode,
    PropagatedTagSource,
    Protocol,
)
from ecs_patterns.ecs.log_driver import AwsLogDriver, LogDriver
from ecs_patterns.ecs.service import (
    BaseService,
    Ec2Service,
    FargateService,
    LoadBalancerTarget,
)
from ecs_patterns.ecs.task_definition import (
    Ec2TaskDefinition,
    FargateTaskDefinition,
    TaskDefinition,
)

__all__ = [
    "AwsLogDriver",
    "BaseCluster",
    "BaseService",
    "CloudMapOptions",
    "Cluster",
    "Compatibility",
    "ContainerDefinition",
    "ContainerImage",
    "Ec2Service",
    "Ec2TaskDefinition",
    "FargateService",
    "FargateTaskDefinition",
    "ImportedCluster",
    "LoadBalancerTarget",
    "LogDriver",
    "NetworkMode",
    "PortMapping",
    "PropagatedTagSource",
    "Protocol",
    "Secret",
    "TaskDefinition",
]
