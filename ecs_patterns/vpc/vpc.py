#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the VPC and its associated resources, or import an existing one.

Public subnets route to the InternetGateway and host the NAT Gateways.
Private subnets each have their own route table, pointing to a NAT Gateway, shared round-robin
when there are fewer NAT Gateways than AZs.
"""

from __future__ import annotations

import ipaddress
from math import ceil, log

from boto3.session import Session
from troposphere import GetAtt, GetAZs, Ref, Select, Tags
from troposphere.ec2 import (
    EIP,
    VPC,
    InternetGateway,
    NatGateway,
    Route,
    RouteTable,
    Subnet,
    SubnetRouteTableAssociation,
    VPCGatewayAttachment,
)

from ecs_patterns.common.construct import Construct, add_dependency
from ecs_patterns.common.logging import LOG
from ecs_patterns.vpc.vpc_aws import lookup_vpc_attributes
from ecs_patterns.vpc.vpc_params import (
    DEFAULT_MAX_AZS,
    DEFAULT_ROUTE,
    DEFAULT_VPC_CIDR,
    IGW_ATTACHMENT_T,
    IGW_T,
    MAX_SUBNET_PREFIX,
    PRIVATE_SUBNET_T,
    PUBLIC_SUBNET_T,
)


def get_subnets_cidrs(cidr: str, azs: int) -> tuple:
    """
    Splits the VPC CIDR in equal parts, one public and one private subnet per AZ

    :param str cidr: the VPC CIDR, i.e. 10.0.0.0/16
    :param int azs: number of AZs
    :return: public CIDRs, private CIDRs
    :rtype: tuple[list[str], list[str]]
    """
    try:
        vpc_net = ipaddress.IPv4Network(cidr)
    except ValueError as error:
        raise ValueError(f"VPC CIDR {cidr} is not valid", str(error))
    new_prefix = vpc_net.prefixlen + int(ceil(log(azs * 2, 2)))
    if new_prefix > MAX_SUBNET_PREFIX:
        raise ValueError(
            f"VPC CIDR {cidr} is too small to fit {azs * 2} subnets "
            f"(would need /{new_prefix}, max /{MAX_SUBNET_PREFIX})"
        )
    subnets = [str(net) for net in vpc_net.subnets(new_prefix=new_prefix)]
    return subnets[:azs], subnets[azs : azs * 2]


class SubnetRef(object):
    """
    Minimal representation of a subnet, new or imported
    """

    def __init__(self, subnet_id, availability_zone=None, route_table_id=None):
        self.subnet_id = subnet_id
        self.availability_zone = availability_zone
        self.route_table_id = route_table_id

    def __repr__(self):
        return f"Subnet({self.subnet_id})"


class VpcSubnet(Construct, SubnetRef):
    """
    New subnet with its own route table
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: Vpc,
        cidr: str,
        availability_zone,
        public: bool,
    ):
        Construct.__init__(self, scope, construct_id)
        self.public = public
        self.subnet = self.add_cfn_resource(
            Subnet,
            "Subnet",
            VpcId=vpc.vpc_id,
            CidrBlock=cidr,
            AvailabilityZone=availability_zone,
            MapPublicIpOnLaunch=public,
            Tags=Tags(Name=self.path),
        )
        self.route_table = self.add_cfn_resource(
            RouteTable, "RouteTable", VpcId=vpc.vpc_id, Tags=Tags(Name=self.path)
        )
        self.add_cfn_resource(
            SubnetRouteTableAssociation,
            "RouteTableAssociation",
            RouteTableId=Ref(self.route_table),
            SubnetId=Ref(self.subnet),
        )
        SubnetRef.__init__(
            self,
            Ref(self.subnet),
            availability_zone=availability_zone,
            route_table_id=Ref(self.route_table),
        )

    def add_default_internet_route(self, igw, attachment) -> Route:
        route = self.add_cfn_resource(
            Route,
            "DefaultRoute",
            RouteTableId=Ref(self.route_table),
            DestinationCidrBlock=DEFAULT_ROUTE,
            GatewayId=Ref(igw),
        )
        add_dependency(route, attachment)
        return route

    def add_nat_gateway(self) -> NatGateway:
        if not self.public:
            raise ValueError(f"{self} - NAT Gateways can only go in public subnets")
        eip = self.add_cfn_resource(EIP, "EIP", Domain="vpc")
        return self.add_cfn_resource(
            NatGateway,
            "NATGateway",
            AllocationId=GetAtt(eip, "AllocationId"),
            SubnetId=self.subnet_id,
            Tags=Tags(Name=self.path),
        )

    def add_default_nat_route(self, nat_gateway) -> Route:
        return self.add_cfn_resource(
            Route,
            "DefaultRoute",
            RouteTableId=Ref(self.route_table),
            DestinationCidrBlock=DEFAULT_ROUTE,
            NatGatewayId=Ref(nat_gateway),
        )


class BaseVpc(Construct):
    """
    Common interface of new and imported VPCs

    :ivar vpc_id: the VPC ID, string or Ref()
    :ivar list[SubnetRef] public_subnets:
    :ivar list[SubnetRef] private_subnets:
    :ivar list availability_zones:
    """

    def __init__(self, scope: Construct, construct_id: str):
        super().__init__(scope, construct_id)
        self.vpc_id = None
        self.public_subnets = []
        self.private_subnets = []
        self.availability_zones = []

    def select_subnets(self, public: bool = False) -> list:
        """
        Returns the subnets IDs to place resources into.
        Private subnets are preferred when public is False, with public subnets as fallback.

        :param bool public: whether the resources are internet facing
        :return: list of subnet IDs
        """
        if public:
            if not self.public_subnets:
                raise ValueError(
                    f"{self} - There are no public subnets to place internet facing resources into"
                )
            return [subnet.subnet_id for subnet in self.public_subnets]
        if self.private_subnets:
            return [subnet.subnet_id for subnet in self.private_subnets]
        if self.public_subnets:
            LOG.warning(f"{self} - No private subnets defined. Using public subnets")
            return [subnet.subnet_id for subnet in self.public_subnets]
        raise ValueError(f"{self} - No subnets defined in the VPC")

    @classmethod
    def from_attributes(
        cls,
        scope: Construct,
        construct_id: str,
        vpc_id: str,
        availability_zones: list,
        public_subnet_ids: list = None,
        private_subnet_ids: list = None,
    ) -> ImportedVpc:
        return ImportedVpc(
            scope,
            construct_id,
            vpc_id,
            availability_zones,
            public_subnet_ids=public_subnet_ids,
            private_subnet_ids=private_subnet_ids,
        )

    @classmethod
    def from_lookup(
        cls,
        scope: Construct,
        construct_id: str,
        vpc_id: str = None,
        is_default: bool = None,
        tags: dict = None,
        session: Session = None,
    ) -> ImportedVpc:
        """
        Imports an existing VPC found via the EC2 API

        :param str vpc_id: the VPC ID to look for
        :param bool is_default: whether to look for the default VPC
        :param dict tags: tags the VPC must have
        :param boto3.session.Session session:
        """
        attributes = lookup_vpc_attributes(
            vpc_id=vpc_id, is_default=is_default, tags=tags, session=session
        )
        LOG.info(
            f"{scope}/{construct_id} - Imported VPC {attributes['VpcId']} "
            f"with {len(attributes['PublicSubnets'])} public and "
            f"{len(attributes['PrivateSubnets'])} private subnets"
        )
        return ImportedVpc(
            scope,
            construct_id,
            attributes["VpcId"],
            attributes["AvailabilityZones"],
            public_subnet_ids=[
                SubnetRef(
                    subnet["SubnetId"],
                    availability_zone=subnet["AvailabilityZone"],
                    route_table_id=subnet["RouteTableId"],
                )
                for subnet in attributes["PublicSubnets"]
            ],
            private_subnet_ids=[
                SubnetRef(
                    subnet["SubnetId"],
                    availability_zone=subnet["AvailabilityZone"],
                    route_table_id=subnet["RouteTableId"],
                )
                for subnet in attributes["PrivateSubnets"]
            ],
        )


class Vpc(BaseVpc):
    """
    New VPC, with one public and one private subnet per AZ
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        cidr: str = None,
        max_azs: int = None,
        nat_gateways: int = None,
    ):
        super().__init__(scope, construct_id)
        self.cidr = cidr if cidr else DEFAULT_VPC_CIDR
        self.max_azs = max_azs if max_azs is not None else DEFAULT_MAX_AZS
        if not isinstance(self.max_azs, int) or self.max_azs < 1:
            raise ValueError(f"{self} - max_azs must be at least 1. Got {max_azs}")
        self.nat_gateways = nat_gateways if nat_gateways is not None else self.max_azs
        if not 0 <= self.nat_gateways <= self.max_azs:
            raise ValueError(
                f"{self} - nat_gateways must be between 0 and {self.max_azs}. Got {nat_gateways}"
            )
        public_cidrs, private_cidrs = get_subnets_cidrs(self.cidr, self.max_azs)
        self.cfn_resource = self.add_cfn_resource(
            VPC,
            CidrBlock=self.cidr,
            EnableDnsHostnames=True,
            EnableDnsSupport=True,
            Tags=Tags(Name=self.path),
        )
        self.vpc_id = Ref(self.cfn_resource)
        self.igw = self.add_cfn_resource(
            InternetGateway, IGW_T, Tags=Tags(Name=self.path)
        )
        self.igw_attachment = self.add_cfn_resource(
            VPCGatewayAttachment,
            IGW_ATTACHMENT_T,
            VpcId=self.vpc_id,
            InternetGatewayId=Ref(self.igw),
        )
        self.availability_zones = [
            Select(index, GetAZs("")) for index in range(self.max_azs)
        ]
        self.nats = []
        for count, (az, subnet_cidr) in enumerate(
            zip(self.availability_zones, public_cidrs), start=1
        ):
            subnet = VpcSubnet(
                self, f"{PUBLIC_SUBNET_T}{count}", self, subnet_cidr, az, public=True
            )
            subnet.add_default_internet_route(self.igw, self.igw_attachment)
            if len(self.nats) < self.nat_gateways:
                self.nats.append(subnet.add_nat_gateway())
            self.public_subnets.append(subnet)
        if not self.nats:
            LOG.warning(
                f"{self} - No NAT Gateway. Private subnets have no route to the internet."
            )
        for count, (az, subnet_cidr) in enumerate(
            zip(self.availability_zones, private_cidrs), start=1
        ):
            subnet = VpcSubnet(
                self, f"{PRIVATE_SUBNET_T}{count}", self, subnet_cidr, az, public=False
            )
            if self.nats:
                subnet.add_default_nat_route(self.nats[(count - 1) % len(self.nats)])
            self.private_subnets.append(subnet)
        LOG.info(
            f"{self} - New VPC {self.cidr} over {self.max_azs} AZs with {len(self.nats)} NAT Gateway(s)"
        )


class ImportedVpc(BaseVpc):
    """
    Existing VPC, identified by its ID and subnets IDs. Creates no resources.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc_id: str,
        availability_zones: list,
        public_subnet_ids: list = None,
        private_subnet_ids: list = None,
    ):
        super().__init__(scope, construct_id)
        self.vpc_id = vpc_id
        self.availability_zones = list(availability_zones)
        public_subnet_ids = public_subnet_ids if public_subnet_ids else []
        private_subnet_ids = private_subnet_ids if private_subnet_ids else []
        for subnet_ids, subnets in (
            (public_subnet_ids, self.public_subnets),
            (private_subnet_ids, self.private_subnets),
        ):
            if all(isinstance(subnet_id, SubnetRef) for subnet_id in subnet_ids):
                subnets += subnet_ids
                continue
            if self.availability_zones and len(subnet_ids) % len(
                self.availability_zones
            ):
                raise ValueError(
                    f"{self} - Number of subnets ({len(subnet_ids)}) must be a multiple of "
                    f"the number of availability zones ({len(self.availability_zones)})"
                )
            for count, subnet_id in enumerate(subnet_ids):
                subnets.append(
                    SubnetRef(
                        subnet_id,
                        availability_zone=self.availability_zones[
                            count % len(self.availability_zones)
                        ]
                        if self.availability_zones
                        else None,
                    )
                )
