#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Amounts of time, as used by health check grace periods, TTLs and so on.
"""

from __future__ import annotations


class Duration(object):
    """
    Amount of time, stored in seconds
    """

    def __init__(self, amount: int, unit_seconds: int = 1):
        if not isinstance(amount, (int, float)) or isinstance(amount, bool):
            raise TypeError("Duration amount must be", int, "Got", type(amount))
        if amount < 0:
            raise ValueError(f"Duration amount must be positive. Got {amount}")
        self._seconds = int(amount * unit_seconds)

    def __repr__(self):
        return f"Duration({self._seconds}s)"

    @classmethod
    def seconds(cls, amount: int) -> Duration:
        return cls(amount)

    @classmethod
    def minutes(cls, amount: int) -> Duration:
        return cls(amount, 60)

    def to_seconds(self) -> int:
        return self._seconds


def to_duration(value) -> Duration | None:
    """
    Accepts a Duration or a number of seconds
    """
    if value is None or isinstance(value, Duration):
        return value
    return Duration.seconds(value)
