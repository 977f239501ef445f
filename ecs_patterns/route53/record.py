#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
DNS records pointing at the load balancers
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.elbv2 import ApplicationLoadBalancer

from troposphere import Ref
from troposphere.route53 import AliasTarget, RecordSetType

from ecs_patterns.common.construct import Construct
from ecs_patterns.common.logging import LOG
from ecs_patterns.route53.hosted_zone import HostedZone
from ecs_patterns.route53.route53_params import A_RECORD, qualify_record_name


class ARecord(Construct):
    """
    Alias A record to an application load balancer

    :ivar str record_name: the fully qualified name of the record
    :ivar domain_name: Ref() of the record, resolving to its name
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        zone: HostedZone,
        record_name: str,
        target: ApplicationLoadBalancer,
    ):
        super().__init__(scope, construct_id)
        if not isinstance(zone, HostedZone):
            raise TypeError(f"{self} - zone must be", HostedZone, "Got", type(zone))
        self.zone = zone
        self.record_name = qualify_record_name(record_name, zone.zone_name)
        self.cfn_resource = self.add_cfn_resource(
            RecordSetType,
            HostedZoneId=zone.hosted_zone_id,
            Name=self.record_name,
            Type=A_RECORD,
            AliasTarget=AliasTarget(
                DNSName=target.load_balancer_dns_name,
                HostedZoneId=target.load_balancer_canonical_hosted_zone_id,
            ),
        )
        self.domain_name = Ref(self.cfn_resource)
        LOG.info(f"{self} - {self.record_name} points to {target}")
