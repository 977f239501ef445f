#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Route53 hosted zones, new or imported
"""

from __future__ import annotations

from troposphere import Ref
from troposphere.route53 import HostedZone as CfnHostedZone

from ecs_patterns.common.construct import Construct
from ecs_patterns.route53.route53_params import LAST_DOT_RE, ZONES_PATTERN


class HostedZone(Construct):
    """
    Common interface of new and imported hosted zones

    :ivar hosted_zone_id: ID of the zone, string or Ref()
    :ivar str zone_name: domain name of the zone, without trailing dot
    """

    def __init__(self, scope: Construct, construct_id: str, zone_name: str):
        super().__init__(scope, construct_id)
        if not zone_name:
            raise ValueError(f"{self} - zone_name is required")
        self.zone_name = LAST_DOT_RE.sub("", zone_name)
        self.hosted_zone_id = None

    @staticmethod
    def from_hosted_zone_attributes(
        scope: Construct, construct_id: str, hosted_zone_id: str, zone_name: str
    ) -> ImportedHostedZone:
        return ImportedHostedZone(scope, construct_id, hosted_zone_id, zone_name)


class ImportedHostedZone(HostedZone):
    """
    Existing hosted zone
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        hosted_zone_id: str,
        zone_name: str,
    ):
        super().__init__(scope, construct_id, zone_name)
        if isinstance(hosted_zone_id, str) and not ZONES_PATTERN.match(hosted_zone_id):
            raise ValueError(
                f"{self} - Hosted zone ID {hosted_zone_id} is not valid. Must match {ZONES_PATTERN.pattern}"
            )
        self.hosted_zone_id = hosted_zone_id


class PublicHostedZone(HostedZone):
    """
    New public hosted zone
    """

    def __init__(self, scope: Construct, construct_id: str, zone_name: str):
        super().__init__(scope, construct_id, zone_name)
        self.cfn_resource = self.add_cfn_resource(CfnHostedZone, Name=self.zone_name)
        self.hosted_zone_id = Ref(self.cfn_resource)
