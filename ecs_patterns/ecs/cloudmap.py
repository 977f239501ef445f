#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
AWS Cloud Map service discovery settings for ECS services
"""

from __future__ import annotations

from ecs_patterns.common.duration import Duration, to_duration

DNS_RECORD_TYPES = ["A", "SRV"]
DEFAULT_DNS_TTL = 60


class CloudMapOptions(object):
    """
    Options to register the tasks of a service into the cluster Cloud Map namespace

    :ivar str name: name of the Cloud Map service
    :ivar str dns_record_type: A or SRV. A requires the awsvpc network mode
    :ivar Duration dns_ttl:
    :ivar int failure_threshold: number of 30 seconds intervals before changing health status
    """

    def __init__(
        self,
        name: str = None,
        dns_record_type: str = None,
        dns_ttl=None,
        failure_threshold: int = None,
    ):
        self.name = name
        self.dns_record_type = dns_record_type
        if dns_record_type is not None and dns_record_type not in DNS_RECORD_TYPES:
            raise ValueError(
                f"DNS record type {dns_record_type} is not valid. Must be one of",
                DNS_RECORD_TYPES,
            )
        self.dns_ttl = (
            to_duration(dns_ttl) if dns_ttl is not None else Duration(DEFAULT_DNS_TTL)
        )
        self.failure_threshold = (
            failure_threshold if failure_threshold is not None else 1
        )
