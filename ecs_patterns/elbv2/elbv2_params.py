#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Constants of the application load balancers, listeners and target groups
"""

from __future__ import annotations


class ApplicationProtocol(object):
    HTTP = "HTTP"
    HTTPS = "HTTPS"

    allowed = [HTTP, HTTPS]


PROTOCOL_PORTS = {ApplicationProtocol.HTTP: 80, ApplicationProtocol.HTTPS: 443}

LB_TYPE = "application"
INTERNET_FACING = "internet-facing"
INTERNAL = "internal"
IDLE_TIMEOUT_KEY = "idle_timeout.timeout_seconds"

HOST_HEADER = "host-header"
PATH_PATTERN = "path-pattern"
MIN_RULE_PRIORITY = 1
MAX_RULE_PRIORITY = 50000

HEALTHCHECK_PROPS = [
    "HealthCheckEnabled",
    "HealthCheckIntervalSeconds",
    "HealthCheckPath",
    "HealthCheckPort",
    "HealthCheckProtocol",
    "HealthCheckTimeoutSeconds",
    "HealthyThresholdCount",
    "UnhealthyThresholdCount",
    "Matcher",
]


def default_port(protocol: str) -> int:
    """
    Port listeners use by default for the protocol

    :param str protocol: HTTP or HTTPS
    :raises: ValueError if protocol is unknown
    """
    if protocol not in PROTOCOL_PORTS:
        raise ValueError(
            f"Protocol {protocol} is not valid. Must be one of", list(PROTOCOL_PORTS)
        )
    return PROTOCOL_PORTS[protocol]


def protocol_from_port(port: int) -> str | None:
    for protocol, protocol_port in PROTOCOL_PORTS.items():
        if protocol_port == port:
            return protocol
    return None
