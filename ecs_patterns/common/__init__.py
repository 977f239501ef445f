#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Most commonly used functions shared across all modules.
"""

from __future__ import annotations

import re
from hashlib import md5

from ecs_patterns import __version__ as version

NONALPHANUM = re.compile(r"([^a-zA-Z\d]+)")
HIDDEN_IDS = ["Resource", "Default"]
HASH_LEN = 8
MAX_HUMAN_LEN = 240

metadata_key = "ecs_patterns::path"
version_key = "ecs_patterns::version"


def path_hash(components: list) -> str:
    """
    Returns the short uppercase md5 hash of the path given as a list of construct ids

    :param list[str] components:
    :rtype: str
    """
    return md5("/".join(components).encode("utf-8")).hexdigest()[:HASH_LEN].upper()


def make_logical_id(components: list) -> str:
    """
    Generates the CloudFormation logical ID from the path components, relative to the stack.

    A single component is used as-is. Otherwise, the components are concatenated, leaving out the
    ``Resource`` and ``Default`` ones, and suffixed with the hash of the full path so that two
    different paths never render to the same logical ID.

    :param list[str] components: construct IDs from the stack (excluded) to the resource
    :return: the logical ID
    :rtype: str
    """
    if not components:
        raise ValueError("Cannot generate a logical ID without path components")
    if len(components) == 1:
        logical_id = NONALPHANUM.sub("", components[0])
        if not logical_id:
            raise ValueError(
                f"Construct ID {components[0]} has no alphanumerical characters"
            )
        return logical_id
    human = "".join(
        NONALPHANUM.sub("", component)
        for component in components
        if component not in HIDDEN_IDS
    )
    return f"{human[:MAX_HUMAN_LEN]}{path_hash(components)}"


def to_list(value) -> list:
    """
    Wraps a single value into a list, returns [] for None
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]
