#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to find an existing VPC and sort its subnets via the EC2 API
"""

from __future__ import annotations

from boto3.session import Session
from compose_x_common.compose_x_common import keyisset

from ecs_patterns.common.logging import LOG
from ecs_patterns.vpc.vpc_params import IGW_PREFIX


def define_vpc_filters(vpc_id: str = None, is_default: bool = None, tags: dict = None):
    """
    Builds the describe_vpcs arguments for the given search criteria

    :return: the kwargs for describe_vpcs
    :rtype: dict
    """
    if vpc_id is None and is_default is None and not tags:
        raise ValueError(
            "You must specify at least one of vpc_id, is_default or tags to lookup a VPC"
        )
    filters = []
    if is_default is not None:
        filters.append({"Name": "isDefault", "Values": [str(is_default).lower()]})
    if tags:
        for key, value in tags.items():
            filters.append({"Name": f"tag:{key}", "Values": [str(value)]})
    describe_kwargs = {}
    if vpc_id:
        describe_kwargs["VpcIds"] = [vpc_id]
    if filters:
        describe_kwargs["Filters"] = filters
    return describe_kwargs


def find_vpc_id(client, vpc_id: str = None, is_default: bool = None, tags: dict = None):
    """
    Finds the VPC matching the criteria. There must be exactly one.

    :raises: LookupError
    """
    describe_kwargs = define_vpc_filters(vpc_id, is_default, tags)
    vpcs_r = client.describe_vpcs(**describe_kwargs)
    if not keyisset("Vpcs", vpcs_r):
        raise LookupError("No VPC found matching", describe_kwargs)
    if len(vpcs_r["Vpcs"]) > 1:
        raise LookupError(
            "More than one VPC found matching",
            describe_kwargs,
            [vpc["VpcId"] for vpc in vpcs_r["Vpcs"]],
        )
    return vpcs_r["Vpcs"][0]["VpcId"]


def route_table_is_public(route_table: dict) -> bool:
    """
    A route table is public if one of its routes goes through an Internet Gateway
    """
    for route in route_table.get("Routes", []):
        if route.get("GatewayId", "").startswith(IGW_PREFIX):
            return True
    return False


def map_subnets_route_tables(route_tables: list) -> tuple:
    """
    :return: the main route table, the route table associated to each subnet
    :rtype: tuple[dict, dict]
    """
    main_route_table = None
    subnets_tables = {}
    for route_table in route_tables:
        for association in route_table.get("Associations", []):
            if keyisset("Main", association):
                main_route_table = route_table
            elif keyisset("SubnetId", association):
                subnets_tables[association["SubnetId"]] = route_table
    return main_route_table, subnets_tables


def lookup_vpc_attributes(
    vpc_id: str = None,
    is_default: bool = None,
    tags: dict = None,
    session: Session = None,
) -> dict:
    """
    Function to find the VPC and sort its subnets into public and private ones.
    Subnets without an explicit route table association use the main route table of the VPC.

    :param str vpc_id:
    :param bool is_default:
    :param dict tags:
    :param boto3.session.Session session:
    :return: VpcId, AvailabilityZones, PublicSubnets, PrivateSubnets
    :rtype: dict
    """
    if session is None:
        session = Session()
    client = session.client("ec2")
    vpc_id = find_vpc_id(client, vpc_id, is_default, tags)
    vpc_filter = [{"Name": "vpc-id", "Values": [vpc_id]}]
    subnets = client.describe_subnets(Filters=vpc_filter)["Subnets"]
    if not subnets:
        raise LookupError(f"VPC {vpc_id} has no subnets")
    route_tables = client.describe_route_tables(Filters=vpc_filter)["RouteTables"]
    main_route_table, subnets_tables = map_subnets_route_tables(route_tables)
    attributes = {
        "VpcId": vpc_id,
        "AvailabilityZones": [],
        "PublicSubnets": [],
        "PrivateSubnets": [],
    }
    for subnet in sorted(
        subnets, key=lambda x: (x["AvailabilityZone"], x["SubnetId"])
    ):
        route_table = subnets_tables.get(subnet["SubnetId"], main_route_table)
        if route_table is None:
            LOG.warning(
                f"{vpc_id} - Subnet {subnet['SubnetId']} has no route table. Skipping"
            )
            continue
        subnet_def = {
            "SubnetId": subnet["SubnetId"],
            "AvailabilityZone": subnet["AvailabilityZone"],
            "RouteTableId": route_table["RouteTableId"],
        }
        if route_table_is_public(route_table):
            attributes["PublicSubnets"].append(subnet_def)
        else:
            attributes["PrivateSubnets"].append(subnet_def)
        if subnet["AvailabilityZone"] not in attributes["AvailabilityZones"]:
            attributes["AvailabilityZones"].append(subnet["AvailabilityZone"])
    return attributes
