#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
VPC constructs: new VPC with public and private subnets, or imported from existing resources.
"""

from ecs_patterns.vpc.security_group import (
    ANY_IPV4,
    BaseSecurityGroup,
    ImportedSecurityGroup,
    Port,
    SecurityGroup,
)
from ecs_patterns.vpc.vpc import BaseVpc, ImportedVpc, SubnetRef, Vpc

__all__ = [
    "ANY_IPV4",
    "BaseSecurityGroup",
    "BaseVpc",
    "ImportedSecurityGroup",
    "ImportedVpc",
    "Port",
    "SecurityGroup",
    "SubnetRef",
    "Vpc",
]
