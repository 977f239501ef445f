#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Custom exceptions for ecs-patterns
"""


class PatternsBaseException(Exception):
    """
    Top class for ECS Patterns Exceptions
    """

    def __init__(self, msg, *args):
        super().__init__(msg, *args)


class IncompatibleOptions(PatternsBaseException):
    """
    Exception when two options conflict, i.e. when you set both a cluster and a VPC for a service
    """


class MissingOptions(PatternsBaseException):
    """
    Exception when an option required by the other settings has not been set, i.e. a domain zone for a domain name
    """
