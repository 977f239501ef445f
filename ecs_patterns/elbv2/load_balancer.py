#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Application load balancers
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.acm import BaseCertificate
    from ecs_patterns.vpc import BaseVpc

from troposphere import AWS_NO_VALUE, GetAtt, Ref
from troposphere.elasticloadbalancingv2 import LoadBalancer, LoadBalancerAttributes

from ecs_patterns.common.construct import Construct, add_dependency
from ecs_patterns.common.logging import LOG
from ecs_patterns.elbv2.elbv2_params import (
    IDLE_TIMEOUT_KEY,
    INTERNAL,
    INTERNET_FACING,
    LB_TYPE,
    ApplicationProtocol,
    default_port,
    protocol_from_port,
)
from ecs_patterns.elbv2.listener import ApplicationListener
from ecs_patterns.vpc import ANY_IPV4, Port, SecurityGroup


class ApplicationLoadBalancer(Construct):
    """
    Application load balancer, with its own security group.
    Internet facing load balancers are placed in the public subnets, internal ones in the private subnets.

    :ivar dict listeners: the listeners, by port
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: BaseVpc,
        internet_facing: bool = False,
        load_balancer_name: str = None,
        idle_timeout=None,
    ):
        super().__init__(scope, construct_id)
        self.vpc = vpc
        self.internet_facing = internet_facing
        self.listeners = {}
        self.security_group = SecurityGroup(
            self,
            "SecurityGroup",
            vpc,
            description=f"Automatically created Security Group for ELB {self.path}",
        )
        attributes = []
        if idle_timeout is not None:
            attributes.append(
                LoadBalancerAttributes(
                    Key=IDLE_TIMEOUT_KEY,
                    Value=str(
                        idle_timeout.to_seconds()
                        if hasattr(idle_timeout, "to_seconds")
                        else idle_timeout
                    ),
                )
            )
        self.cfn_resource = self.add_cfn_resource(
            LoadBalancer,
            Name=load_balancer_name if load_balancer_name else Ref(AWS_NO_VALUE),
            Scheme=INTERNET_FACING if internet_facing else INTERNAL,
            Type=LB_TYPE,
            SecurityGroups=[self.security_group.security_group_id],
            Subnets=vpc.select_subnets(public=internet_facing),
            LoadBalancerAttributes=attributes if attributes else Ref(AWS_NO_VALUE),
        )
        igw_attachment = getattr(vpc, "igw_attachment", None)
        if internet_facing and igw_attachment is not None:
            add_dependency(self.cfn_resource, igw_attachment)
        self.load_balancer_arn = Ref(self.cfn_resource)
        self.load_balancer_dns_name = GetAtt(self.cfn_resource, "DNSName")
        self.load_balancer_canonical_hosted_zone_id = GetAtt(
            self.cfn_resource, "CanonicalHostedZoneID"
        )
        self.load_balancer_full_name = GetAtt(self.cfn_resource, "LoadBalancerFullName")
        self.security_group_id = self.security_group.security_group_id

    def add_listener(
        self,
        construct_id: str,
        protocol: str = None,
        port: int = None,
        certificates: list = None,
        open: bool = True,
    ) -> ApplicationListener:
        """
        Adds a listener to the load balancer.
        Protocol and port are derived from each other when only one is set, certificates imply HTTPS.

        :param str construct_id:
        :param str protocol: HTTP or HTTPS
        :param int port:
        :param list[BaseCertificate] certificates:
        :param bool open: allow traffic from anywhere to the listener port
        :rtype: ApplicationListener
        """
        if protocol is None:
            if port is not None and protocol_from_port(port):
                protocol = protocol_from_port(port)
            elif certificates:
                protocol = ApplicationProtocol.HTTPS
            else:
                protocol = ApplicationProtocol.HTTP
        if protocol not in ApplicationProtocol.allowed:
            raise ValueError(
                f"{self} - Protocol {protocol} is not valid. Must be one of",
                ApplicationProtocol.allowed,
            )
        if port is None:
            port = default_port(protocol)
        if port in self.listeners:
            raise ValueError(f"{self} - There is already a listener on port {port}")
        listener = ApplicationListener(
            self,
            construct_id,
            self,
            port,
            protocol,
            certificates=certificates,
        )
        self.listeners[port] = listener
        if open:
            self.security_group.add_ingress_rule(
                ANY_IPV4,
                Port.tcp(port),
                f"Allow from anyone on port {port}",
            )
        LOG.info(f"{self} - Added {protocol} listener {construct_id} on port {port}")
        return listener
