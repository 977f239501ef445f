#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Application target groups, and the targets registered into them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.elbv2.listener import ApplicationListener
    from ecs_patterns.vpc import BaseVpc

from compose_x_common.compose_x_common import keyisset
from troposphere import AWS_NO_VALUE, AWSObject, Ref
from troposphere.elasticloadbalancingv2 import Matcher, TargetGroup

from ecs_patterns.common.construct import Construct
from ecs_patterns.common.logging import LOG
from ecs_patterns.elbv2.elbv2_params import HEALTHCHECK_PROPS, ApplicationProtocol


def set_healthcheck_definition(props: dict, health_check: dict) -> None:
    """
    Sets the health check properties of the target group from a dict using the CFN property names

    :param dict props: the target group properties to update
    :param dict health_check: i.e. {"HealthCheckPath": "/health", "Matcher": {"HttpCode": "200"}}
    """
    if not isinstance(health_check, dict):
        raise TypeError(
            "health_check must be", dict, "Got", type(health_check)
        )
    for key, value in health_check.items():
        if key not in HEALTHCHECK_PROPS:
            raise KeyError(
                f"Health check property {key} is not valid. Must be one of",
                HEALTHCHECK_PROPS,
            )
        props[key] = value
    if keyisset("Matcher", health_check) and isinstance(health_check["Matcher"], dict):
        props["Matcher"] = Matcher(**health_check["Matcher"])


class ApplicationTargetGroup(Construct):
    """
    Target group of an application load balancer.
    The target type is set by the first target registered: ip for awsvpc tasks, instance otherwise.

    :ivar list targets: the registered targets
    :ivar list listeners: (listener, resource) pairs forwarding to this target group
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: BaseVpc,
        port: int,
        protocol: str = None,
        target_type: str = None,
        health_check: dict = None,
    ):
        super().__init__(scope, construct_id)
        self.vpc = vpc
        self.port = port
        self.protocol = protocol if protocol else ApplicationProtocol.HTTP
        if self.protocol not in ApplicationProtocol.allowed:
            raise ValueError(
                f"{self} - Protocol {self.protocol} is not valid. Must be one of",
                ApplicationProtocol.allowed,
            )
        self.target_type = target_type
        self.targets = []
        self.listeners = []
        props = {
            "VpcId": vpc.vpc_id,
            "Port": port,
            "Protocol": self.protocol,
            "TargetType": target_type if target_type else Ref(AWS_NO_VALUE),
        }
        if health_check:
            set_healthcheck_definition(props, health_check)
        self.cfn_resource = self.add_cfn_resource(TargetGroup, **props)
        self.target_group_arn = Ref(self.cfn_resource)

    def add_target(self, *targets) -> None:
        """
        Registers the targets. Each must provide attach_to_application_target_group and connect_listener.
        """
        for target in targets:
            target_type = target.attach_to_application_target_group(self)
            if self.target_type is None:
                self.target_type = target_type
                self.cfn_resource.TargetType = target_type
            elif target_type != self.target_type:
                raise ValueError(
                    f"{self} - Target {target} is of type {target_type}, the target group "
                    f"uses {self.target_type}"
                )
            self.targets.append(target)
            LOG.debug(f"{self} - Registered target {target}")
            for listener, dependable in self.listeners:
                target.connect_listener(listener, dependable)

    def register_listener(
        self, listener: ApplicationListener, dependable: AWSObject
    ) -> None:
        """
        Records that the listener (or listener rule) forwards traffic to this target group.
        """
        self.listeners.append((listener, dependable))
        for target in self.targets:
            target.connect_listener(listener, dependable)

    @property
    def load_balancer_arns(self) -> list:
        return [listener.load_balancer.load_balancer_arn for listener, _ in self.listeners]
