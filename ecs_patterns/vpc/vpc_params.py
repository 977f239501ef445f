#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Settings and defaults for the VPC constructs
"""

DEFAULT_VPC_CIDR = "10.0.0.0/16"
DEFAULT_MAX_AZS = 2
MAX_SUBNET_PREFIX = 28

PUBLIC_SUBNET_T = "PublicSubnet"
PRIVATE_SUBNET_T = "PrivateSubnet"
IGW_T = "IGW"
IGW_ATTACHMENT_T = "VPCGW"

IGW_PREFIX = "igw-"
DEFAULT_ROUTE = "0.0.0.0/0"
