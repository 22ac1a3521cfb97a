"""
Teardown of a provisioned VPC, in reverse dependency order.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import boto3

from .config import VpcConfig
from .instances import find_instance_address
from .network import find_attached_internet_gateway, find_vpc
from .reconcile import ADDRESS, INSTANCE, ROUTE_TABLE, SECURITY_GROUP, SUBNET, Handle, find_all, find_first
from .security import revoke_all_permissions
from .tags import name_tag
from .waiters import WaitSettings, wait_until_state

logger = logging.getLogger(__name__)

# Every state an instance can be in before it is gone for good
NOT_TERMINATED = ["pending", "running", "stopping", "stopped"]


@dataclass
class TeardownReport:
    """IDs of the resources deleted by a teardown."""
    vpc_id: Optional[str] = None
    instances: List[str] = field(default_factory=list)
    elastic_ips: List[str] = field(default_factory=list)
    security_groups: List[str] = field(default_factory=list)
    subnets: List[str] = field(default_factory=list)
    route_tables: List[str] = field(default_factory=list)
    internet_gateways: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return (
            len(self.instances)
            + len(self.elastic_ips)
            + len(self.security_groups)
            + len(self.subnets)
            + len(self.route_tables)
            + len(self.internet_gateways)
            + (1 if self.vpc_id else 0)
        )


def _label(resource: Handle, id_key: str) -> str:
    return f"{resource[id_key]} {name_tag(resource) or 'Unnamed'}"


def _terminate_instances(ec2, vpc_filter: dict, waits: WaitSettings, report: TeardownReport) -> List[Handle]:
    instances = find_all(ec2, INSTANCE, [vpc_filter, {"Name": "instance-state-name", "Values": NOT_TERMINATED}])

    addresses = []
    for instance in instances:
        logger.info(f"Terminating [{_label(instance, 'InstanceId')}] instance")
        address = find_instance_address(ec2, instance["InstanceId"])
        if address is not None:
            addresses.append(address)
        ec2.terminate_instances(InstanceIds=[instance["InstanceId"]])
        report.instances.append(instance["InstanceId"])

    for instance in instances:
        logger.info(f"Waiting for [{instance['InstanceId']}] to terminate")
        wait_until_state(ec2, INSTANCE, instance["InstanceId"], "terminated", waits)

    return addresses


def _release_addresses(ec2, addresses: List[Handle], report: TeardownReport) -> None:
    for address in addresses:
        # Termination may already have dropped the association
        current = find_first(
            ec2, ADDRESS, [{"Name": "allocation-id", "Values": [address["AllocationId"]]}]
        ) or address
        if current.get("AssociationId"):
            logger.info(f"Disassociating [{current['PublicIp']}] elastic ip")
            ec2.disassociate_address(AssociationId=current["AssociationId"])

    for address in addresses:
        logger.info(f"Deleting [{address['PublicIp']}] elastic ip")
        ec2.release_address(AllocationId=address["AllocationId"])
        report.elastic_ips.append(address["AllocationId"])


def _delete_security_groups(
    ec2, vpc_filter: dict, settle_seconds: float, sleep: Callable[[float], None], report: TeardownReport
) -> None:
    groups = find_all(ec2, SECURITY_GROUP, [vpc_filter])
    for group in groups:
        revoke_all_permissions(ec2, group)

    # Groups referencing each other cannot be deleted until revocation settles
    if settle_seconds > 0:
        sleep(settle_seconds)

    for group in groups:
        if group["GroupName"] == "default":
            continue
        logger.info(f"Deleting [{group['GroupName']}] security group")
        ec2.delete_security_group(GroupId=group["GroupId"])
        report.security_groups.append(group["GroupId"])


def _is_main(route_table: Handle) -> bool:
    return any(association.get("Main") for association in route_table.get("Associations", []))


def delete_vpc(
    config: VpcConfig,
    session: boto3.Session,
    waits: Optional[WaitSettings] = None,
    settle_seconds: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
) -> TeardownReport:
    """
    Delete the VPC tagged with the configured name and everything inside it.

    Order: instances, elastic IPs, security groups (except default),
    subnets, route tables (except main), internet gateway, VPC. A missing
    VPC is not an error; the report is simply empty.

    Args:
        config: VPC configuration
        session: boto3 session for the configured region
        waits: Polling settings for instance termination
        settle_seconds: Pause between revoking and deleting security groups
        sleep: Sleep function, replaced in tests

    Returns:
        TeardownReport listing what was deleted
    """
    waits = waits or WaitSettings()
    ec2 = session.client("ec2", region_name=config.region)
    report = TeardownReport()

    vpc = find_vpc(ec2, config)
    if vpc is None:
        logger.info(f"No [{config.name}] vpc found, nothing to delete")
        return report

    vpc_filter = {"Name": "vpc-id", "Values": [vpc["VpcId"]]}

    addresses = _terminate_instances(ec2, vpc_filter, waits, report)
    _release_addresses(ec2, addresses, report)
    _delete_security_groups(ec2, vpc_filter, settle_seconds, sleep, report)

    for subnet in find_all(ec2, SUBNET, [vpc_filter]):
        logger.info(f"Deleting [{_label(subnet, 'SubnetId')}] subnet")
        ec2.delete_subnet(SubnetId=subnet["SubnetId"])
        report.subnets.append(subnet["SubnetId"])

    for route_table in find_all(ec2, ROUTE_TABLE, [vpc_filter]):
        if _is_main(route_table):
            continue
        logger.info(f"Deleting [{_label(route_table, 'RouteTableId')}] route table")
        ec2.delete_route_table(RouteTableId=route_table["RouteTableId"])
        report.route_tables.append(route_table["RouteTableId"])

    gateway = find_attached_internet_gateway(ec2, vpc)
    if gateway is not None:
        logger.info(f"Deleting [{_label(gateway, 'InternetGatewayId')}] internet gateway")
        ec2.detach_internet_gateway(InternetGatewayId=gateway["InternetGatewayId"], VpcId=vpc["VpcId"])
        ec2.delete_internet_gateway(InternetGatewayId=gateway["InternetGatewayId"])
        report.internet_gateways.append(gateway["InternetGatewayId"])

    logger.info(f"Deleting [{_label(vpc, 'VpcId')}] vpc")
    ec2.delete_vpc(VpcId=vpc["VpcId"])
    report.vpc_id = vpc["VpcId"]

    return report
