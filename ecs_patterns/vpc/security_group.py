#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Security groups and the ingress rules between them
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_patterns.vpc.vpc import BaseVpc

from troposphere import GetAtt
from troposphere.ec2 import SecurityGroup as CfnSecurityGroup
from troposphere.ec2 import SecurityGroupIngress, SecurityGroupRule

from ecs_patterns.common.construct import Construct
from ecs_patterns.common.logging import LOG

ANY_IPV4 = "0.0.0.0/0"
TCP = "tcp"


class Port(object):
    """
    TCP port or range of ports
    """

    def __init__(self, from_port: int, to_port: int = None):
        to_port = to_port if to_port is not None else from_port
        for port in (from_port, to_port):
            if not isinstance(port, int) or not 0 <= port <= 65535:
                raise ValueError(f"Port {port} is not valid. Must be in 0-65535")
        if from_port > to_port:
            raise ValueError(f"Port range {from_port}-{to_port} is not valid")
        self.from_port = from_port
        self.to_port = to_port

    def __repr__(self):
        if self.from_port == self.to_port:
            return f"{self.from_port}"
        return f"{self.from_port}-{self.to_port}"

    @classmethod
    def tcp(cls, port: int) -> Port:
        return cls(port)

    @classmethod
    def tcp_range(cls, from_port: int, to_port: int) -> Port:
        return cls(from_port, to_port)


class BaseSecurityGroup(Construct):
    """
    Common interface of new and imported security groups

    :ivar security_group_id: the ID of the group, string or GetAtt()
    """

    cfn_resource = None

    def __init__(self, scope: Construct, construct_id: str):
        super().__init__(scope, construct_id)
        self.security_group_id = None
        self.rules = []

    def add_ingress_rule(self, peer, port: Port, description: str = None) -> None:
        """
        Allows ingress traffic from the peer on the given port(s).
        CIDR rules of new groups are set inline, the others via SecurityGroupIngress resources.

        :param peer: a CIDR string or a security group
        :param Port port:
        :param str description:
        """
        if not isinstance(peer, (str, BaseSecurityGroup)):
            raise TypeError(
                f"{self} - peer must be one of",
                (str, BaseSecurityGroup),
                "Got",
                type(peer),
            )
        rule_key = (peer if isinstance(peer, str) else peer.path, repr(port))
        if rule_key in self.rules:
            LOG.debug(f"{self} - Ingress {rule_key} already defined")
            return
        self.rules.append(rule_key)
        rule_props = {
            "IpProtocol": TCP,
            "FromPort": port.from_port,
            "ToPort": port.to_port,
        }
        if isinstance(peer, str):
            rule_props["CidrIp"] = peer
            rule_props["Description"] = (
                description if description else f"Allow from {peer}:{port}"
            )
        else:
            rule_props["SourceSecurityGroupId"] = peer.security_group_id
            rule_props["Description"] = (
                description if description else f"Load balancer to target {port}"
            )
        if isinstance(peer, str) and self.cfn_resource is not None:
            ingress = getattr(self.cfn_resource, "SecurityGroupIngress", [])
            self.cfn_resource.SecurityGroupIngress = ingress + [
                SecurityGroupRule(**rule_props)
            ]
            return
        peer_name = peer if isinstance(peer, str) else peer.logical_id()
        self.add_cfn_resource(
            SecurityGroupIngress,
            f"from{peer_name}:{port}",
            GroupId=self.security_group_id,
            **rule_props,
        )

    @staticmethod
    def from_security_group_id(
        scope: Construct, construct_id: str, security_group_id: str
    ) -> ImportedSecurityGroup:
        return ImportedSecurityGroup(scope, construct_id, security_group_id)


class SecurityGroup(BaseSecurityGroup):
    """
    New security group, with all outbound traffic allowed
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: BaseVpc,
        description: str = None,
    ):
        super().__init__(scope, construct_id)
        self.vpc = vpc
        self.cfn_resource = self.add_cfn_resource(
            CfnSecurityGroup,
            GroupDescription=description if description else self.path,
            VpcId=vpc.vpc_id,
        )
        self.security_group_id = GetAtt(self.cfn_resource, "GroupId")


class ImportedSecurityGroup(BaseSecurityGroup):
    """
    Existing security group, identified by its ID
    """

    def __init__(self, scope: Construct, construct_id: str, security_group_id: str):
        super().__init__(scope, construct_id)
        self.security_group_id = security_group_id
