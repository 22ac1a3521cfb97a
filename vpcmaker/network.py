"""
VPC, internet gateway, route table and subnet provisioning.
"""

import logging
from typing import Optional

from .config import SubnetConfig, VpcConfig
from .reconcile import (
    INTERNET_GATEWAY,
    ROUTE_TABLE,
    SUBNET,
    VPC,
    Handle,
    find_first,
    find_tagged,
    reconcile,
    resource_id,
)
from .tags import tag_with_name
from .waiters import WaitSettings, wait_until_exists, wait_until_state

logger = logging.getLogger(__name__)

ANYWHERE = "0.0.0.0/0"


def _vpc_filter(vpc: Handle) -> dict:
    return {"Name": "vpc-id", "Values": [vpc["VpcId"]]}


def find_vpc(ec2, config: VpcConfig) -> Optional[Handle]:
    return find_tagged(ec2, VPC, config.name)


def get_or_create_vpc(ec2, config: VpcConfig, waits: WaitSettings) -> Handle:
    """Find the VPC tagged with the configured name or create it."""

    def create() -> Handle:
        vpc = ec2.create_vpc(CidrBlock=config.cidr_block)["Vpc"]
        wait_until_state(ec2, VPC, vpc["VpcId"], "available", waits)
        return vpc

    return reconcile(
        lambda: find_vpc(ec2, config),
        create,
        config.name,
        tag_fn=lambda vpc, name: tag_with_name(ec2, resource_id(VPC, vpc), name),
        kind="vpc",
    )


def find_attached_internet_gateway(ec2, vpc: Handle) -> Optional[Handle]:
    return find_first(
        ec2, INTERNET_GATEWAY, [{"Name": "attachment.vpc-id", "Values": [vpc["VpcId"]]}]
    )


def get_or_create_internet_gateway(ec2, config: VpcConfig, waits: WaitSettings) -> Handle:
    def create() -> Handle:
        gateway = ec2.create_internet_gateway()["InternetGateway"]
        wait_until_exists(ec2, INTERNET_GATEWAY, gateway["InternetGatewayId"], waits)
        return gateway

    return reconcile(
        lambda: find_tagged(ec2, INTERNET_GATEWAY, config.name),
        create,
        config.name,
        tag_fn=lambda gateway, name: tag_with_name(ec2, resource_id(INTERNET_GATEWAY, gateway), name),
        kind="internet gateway",
    )


def ensure_internet_gateway_attached(ec2, config: VpcConfig, vpc: Handle, waits: WaitSettings) -> Handle:
    """
    Return the gateway attached to the VPC, attaching one if there is none.

    A gateway already attached to the VPC wins over the tagged one, whatever
    its name.
    """
    gateway = find_attached_internet_gateway(ec2, vpc)
    if gateway is None:
        gateway = get_or_create_internet_gateway(ec2, config, waits)
        logger.info(f"Attaching [{gateway['InternetGatewayId']}] internet gateway to [{vpc['VpcId']}]")
        ec2.attach_internet_gateway(InternetGatewayId=gateway["InternetGatewayId"], VpcId=vpc["VpcId"])
    return gateway


def get_or_create_route_table(
    ec2, vpc: Handle, internet_gateway: Handle, name: str = "public", destination: str = ANYWHERE
) -> Handle:
    """Find the named route table of the VPC or create it with a route to the gateway."""

    def add_default_route(route_table: Handle) -> None:
        ec2.create_route(
            RouteTableId=route_table["RouteTableId"],
            DestinationCidrBlock=destination,
            GatewayId=internet_gateway["InternetGatewayId"],
        )

    return reconcile(
        lambda: find_tagged(ec2, ROUTE_TABLE, name, [_vpc_filter(vpc)]),
        lambda: ec2.create_route_table(VpcId=vpc["VpcId"])["RouteTable"],
        name,
        tag_fn=lambda route_table, tag: tag_with_name(ec2, resource_id(ROUTE_TABLE, route_table), tag),
        configure_fn=add_default_route,
        kind="route table",
    )


def get_or_create_subnet(ec2, vpc: Handle, subnet_config: SubnetConfig, route_table: Handle) -> Handle:
    """Find the named subnet of the VPC or create it and associate the route table."""

    def create() -> Handle:
        logger.info(f"Placing [{subnet_config.name}] subnet in [{subnet_config.availability_zone}]")
        return ec2.create_subnet(
            VpcId=vpc["VpcId"],
            CidrBlock=subnet_config.cidr_block,
            AvailabilityZone=subnet_config.availability_zone,
        )["Subnet"]

    def associate(subnet: Handle) -> None:
        ec2.associate_route_table(RouteTableId=route_table["RouteTableId"], SubnetId=subnet["SubnetId"])

    return reconcile(
        lambda: find_tagged(ec2, SUBNET, subnet_config.name, [_vpc_filter(vpc)]),
        create,
        subnet_config.name,
        tag_fn=lambda subnet, name: tag_with_name(ec2, resource_id(SUBNET, subnet), name),
        configure_fn=associate,
        kind="subnet",
    )
