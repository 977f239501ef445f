#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Listeners of the application load balancers and their rules
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.elbv2.load_balancer import ApplicationLoadBalancer

from troposphere import AWS_NO_VALUE, Ref
from troposphere.elasticloadbalancingv2 import (
    Action,
    Certificate,
    Condition,
    ForwardConfig,
    HostHeaderConfig,
    Listener,
    ListenerCertificate,
    ListenerRule,
    ListenerRuleAction,
    PathPatternConfig,
    TargetGroupTuple,
)

from ecs_patterns.common import to_list
from ecs_patterns.common.construct import Construct
from ecs_patterns.common.logging import LOG
from ecs_patterns.elbv2.elbv2_params import (
    HOST_HEADER,
    MAX_RULE_PRIORITY,
    MIN_RULE_PRIORITY,
    PATH_PATTERN,
    ApplicationProtocol,
)
from ecs_patterns.elbv2.target_group import ApplicationTargetGroup


def define_target_conditions(host_header: str = None, path_pattern: str = None) -> list:
    """
    Function to create the conditions of a listener rule

    :param str host_header: i.e. api.example.com
    :param str path_pattern: i.e. /api/*
    :return: list of conditions
    :rtype: list[Condition]
    """
    conditions = []
    if host_header:
        conditions.append(
            Condition(
                Field=HOST_HEADER,
                HostHeaderConfig=HostHeaderConfig(Values=to_list(host_header)),
            )
        )
    if path_pattern:
        conditions.append(
            Condition(
                Field=PATH_PATTERN,
                PathPatternConfig=PathPatternConfig(Values=to_list(path_pattern)),
            )
        )
    return conditions


def define_forward_action(target_groups: list, rule_action: bool = False):
    """
    Forward action to one or several target groups, equally weighted

    :param list[ApplicationTargetGroup] target_groups:
    :param bool rule_action: Whether to use Action or ListenerRuleAction
    """
    action_class = Action if not rule_action else ListenerRuleAction
    if len(target_groups) == 1:
        return action_class(
            Type="forward", TargetGroupArn=target_groups[0].target_group_arn
        )
    return action_class(
        Type="forward",
        ForwardConfig=ForwardConfig(
            TargetGroups=[
                TargetGroupTuple(TargetGroupArn=target_group.target_group_arn)
                for target_group in target_groups
            ]
        ),
    )


class ApplicationListener(Construct):
    """
    Listener of an application load balancer

    :ivar ApplicationLoadBalancer load_balancer:
    :ivar list default_target_groups: target groups of the default forward action
    :ivar dict rules: the listener rules, by priority
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        load_balancer: ApplicationLoadBalancer,
        port: int,
        protocol: str,
        certificates: list = None,
    ):
        super().__init__(scope, construct_id)
        self.load_balancer = load_balancer
        self.port = port
        self.protocol = protocol
        self.default_target_groups = []
        self.rules = {}
        self.certificate_arns = []
        self.cfn_resource = self.add_cfn_resource(
            Listener,
            LoadBalancerArn=load_balancer.load_balancer_arn,
            Port=port,
            Protocol=protocol,
            DefaultActions=[],
            Certificates=Ref(AWS_NO_VALUE),
        )
        self.listener_arn = Ref(self.cfn_resource)
        if certificates:
            self.add_certificate_arns(
                "ListenerCertificate",
                [certificate.certificate_arn for certificate in certificates],
            )

    def add_certificate_arns(self, construct_id: str, arns: list) -> None:
        """
        Adds certificates to the listener. The first one becomes the default certificate,
        the others are added with ListenerCertificate.

        :param str construct_id: ID to use for the additional certificates resource
        :param list arns: the certificates ARNs
        """
        additional = []
        for arn in arns:
            if not self.certificate_arns:
                self.cfn_resource.Certificates = [Certificate(CertificateArn=arn)]
            else:
                additional.append(Certificate(CertificateArn=arn))
            self.certificate_arns.append(arn)
        if additional:
            self.add_cfn_resource(
                ListenerCertificate,
                construct_id,
                ListenerArn=self.listener_arn,
                Certificates=additional,
            )

    def add_targets(
        self,
        construct_id: str,
        port: int,
        protocol: str = None,
        targets: list = None,
        priority: int = None,
        host_header: str = None,
        path_pattern: str = None,
        health_check: dict = None,
    ) -> ApplicationTargetGroup:
        """
        Creates a target group for the targets and forwards traffic to it.
        Without priority, the target group becomes (part of) the default action of the listener,
        otherwise a listener rule matching host_header and/or path_pattern is created.

        :param str construct_id:
        :param int port: the port the target group sends traffic to
        :param str protocol: protocol of the target group, defaults to HTTP
        :param list targets: the services or targets to register
        :param int priority: priority of the listener rule
        :param str host_header:
        :param str path_pattern:
        :param dict health_check: health check properties of the target group
        :rtype: ApplicationTargetGroup
        """
        conditions = define_target_conditions(host_header, path_pattern)
        if priority is None and conditions:
            raise ValueError(
                f"{self} - Setting 'host_header' or 'path_pattern' also requires 'priority' to be set"
            )
        if priority is not None:
            if not conditions:
                raise ValueError(
                    f"{self} - Listener rule with priority {priority} must have at least one condition"
                )
            if not MIN_RULE_PRIORITY <= priority <= MAX_RULE_PRIORITY:
                raise ValueError(
                    f"{self} - Priority must be in {MIN_RULE_PRIORITY}-{MAX_RULE_PRIORITY}. Got {priority}"
                )
            if priority in self.rules:
                raise ValueError(
                    f"{self} - Priority {priority} is already used by another rule"
                )
        target_group = ApplicationTargetGroup(
            self,
            f"{construct_id}Group",
            self.load_balancer.vpc,
            port,
            protocol,
            health_check=health_check,
        )
        if priority is None:
            self.default_target_groups.append(target_group)
            self.cfn_resource.DefaultActions = [
                define_forward_action(self.default_target_groups)
            ]
            if len(self.default_target_groups) > 1:
                LOG.info(
                    f"{self} - {len(self.default_target_groups)} target groups share the default action"
                )
            dependable = self.cfn_resource
        else:
            dependable = self.add_cfn_resource(
                ListenerRule,
                f"{construct_id}Rule",
                ListenerArn=self.listener_arn,
                Priority=priority,
                Conditions=conditions,
                Actions=[define_forward_action([target_group], rule_action=True)],
            )
            self.rules[priority] = dependable
        target_group.register_listener(self, dependable)
        if targets:
            target_group.add_target(*targets)
        return target_group

    def validate(self) -> list:
        errors = []
        if not self.cfn_resource.DefaultActions:
            errors.append(
                "Listener needs at least one default action or target group (call add_targets())"
            )
        if self.protocol == ApplicationProtocol.HTTPS and not self.certificate_arns:
            LOG.warning(f"{self} - HTTPS listener without certificate")
        return errors
