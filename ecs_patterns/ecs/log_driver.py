#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Log drivers for containers. Only the awslogs driver gets resources created on its behalf.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.ecs.container import ContainerDefinition

from troposphere import AWS_REGION, Ref
from troposphere.ecs import LogConfiguration
from troposphere.logs import LogGroup

from ecs_patterns.common.logging import LOG
from ecs_patterns.ecs.ecs_params import AWSLOGS_DRIVER, DEFAULT_LOG_RETENTION_DAYS

VALID_RETENTION_PERIODS = [
    1,
    3,
    5,
    7,
    14,
    30,
    60,
    90,
    120,
    150,
    180,
    365,
    400,
    545,
    731,
    1827,
    3653,
]


def get_closest_valid_log_retention_period(retention: int) -> int:
    """
    Returns the closest valid CloudWatch log retention period, in days
    """
    return min(VALID_RETENTION_PERIODS, key=lambda x: abs(x - retention))


class LogDriver(object):
    """
    Generic log driver, with its options passed as-is
    """

    def __init__(self, log_driver: str, options: dict = None):
        self.log_driver = log_driver
        self.options = options if options else {}

    def bind(self, container: ContainerDefinition) -> LogConfiguration:
        return LogConfiguration(LogDriver=self.log_driver, Options=self.options)

    @staticmethod
    def aws_logs(
        stream_prefix: str, log_group=None, log_retention: int = None
    ) -> AwsLogDriver:
        return AwsLogDriver(stream_prefix, log_group, log_retention)


class AwsLogDriver(LogDriver):
    """
    awslogs log driver. Creates the Log Group when none is given.

    :ivar log_group: name (or Ref) of an existing log group to use
    """

    def __init__(
        self, stream_prefix: str, log_group=None, log_retention: int = None
    ):
        super().__init__(AWSLOGS_DRIVER)
        if not stream_prefix:
            raise ValueError("awslogs driver requires a stream prefix")
        self.stream_prefix = stream_prefix
        self.log_group = log_group
        if log_retention is not None:
            valid_retention = get_closest_valid_log_retention_period(log_retention)
            if valid_retention != log_retention:
                LOG.warning(
                    f"Log retention {log_retention} is not valid. Using {valid_retention}"
                )
            self.log_retention = valid_retention
        else:
            self.log_retention = DEFAULT_LOG_RETENTION_DAYS

    def bind(self, container: ContainerDefinition) -> LogConfiguration:
        """
        Creates the log group if needed and grants the execution role to write to it
        """
        if self.log_group is None:
            log_group = container.add_cfn_resource(
                LogGroup, "LogGroup", RetentionInDays=self.log_retention
            )
            self.log_group = Ref(log_group)
        execution_role = container.task_definition.obtain_execution_role()
        LOG.debug(f"{container} - awslogs driver using role {execution_role}")
        self.options = {
            "awslogs-group": self.log_group,
            "awslogs-region": Ref(AWS_REGION),
            "awslogs-stream-prefix": self.stream_prefix,
        }
        return LogConfiguration(LogDriver=self.log_driver, Options=self.options)
