#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Route53 hosted zones and records
"""

from ecs_patterns.route53.hosted_zone import (
    HostedZone,
    ImportedHostedZone,
    PublicHostedZone,
)
from ecs_patterns.route53.record import ARecord

__all__ = ["ARecord", "HostedZone", "ImportedHostedZone", "PublicHostedZone"]
