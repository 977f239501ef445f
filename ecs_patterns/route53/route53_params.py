#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for DNS Route53 parameters
"""

import re

ZONES_PATTERN = re.compile(r"^Z[0-9A-Z]+$")
LAST_DOT_RE = re.compile(r"(\.{1}$)")

A_RECORD = "A"


def validate_domain_name(new_record: str, base_domain: str) -> None:
    """
    Validates that the new alias DNS Name matches the domain basename

    :param str new_record:
    :param str base_domain:
    :raises: ValueError if there is no match
    """
    record = LAST_DOT_RE.sub("", new_record).lower()
    domain = LAST_DOT_RE.sub("", base_domain).lower()
    if record != domain and not record.endswith(f".{domain}"):
        raise ValueError(
            f"New record {new_record} does not seem to belong to {base_domain}"
        )


def qualify_record_name(record_name: str, zone_name: str) -> str:
    """
    Returns the fully qualified record name, with its trailing dot.
    Names not ending with the zone name are considered relative to it, i.e. api -> api.example.com.

    :param str record_name:
    :param str zone_name:
    :rtype: str
    """
    zone = LAST_DOT_RE.sub("", zone_name)
    if record_name.endswith("."):
        validate_domain_name(record_name, zone)
        return record_name
    if record_name.lower() == zone.lower() or record_name.lower().endswith(
        f".{zone.lower()}"
    ):
        return f"{record_name}."
    return f"{record_name}.{zone}."
