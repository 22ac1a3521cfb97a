"""
Bastion instances and their elastic IPs.
"""

import logging
from typing import List, Optional

from .reconcile import ADDRESS, INSTANCE, Filters, Handle, find_all, find_first, find_tagged, reconcile, resource_id
from .tags import tag_with_name
from .waiters import WaitSettings, wait_until_exists, wait_until_state

logger = logging.getLogger(__name__)

# Pending instances are on their way to running and count as live
LIVE_STATES = ["pending", "running"]


def _live_filter() -> dict:
    return {"Name": "instance-state-name", "Values": LIVE_STATES}


def find_running_instances(ec2, filters: Optional[Filters] = None) -> List[Handle]:
    return find_all(ec2, INSTANCE, [_live_filter()] + list(filters or []))


def find_running_instance(ec2, name: str) -> Optional[Handle]:
    return find_tagged(ec2, INSTANCE, name, [_live_filter()])


def get_or_create_instance(
    ec2,
    name: str,
    image_id: str,
    instance_type: str,
    key_name: str,
    security_group_id: str,
    subnet_id: str,
    waits: WaitSettings,
) -> Handle:
    """
    Find the live instance tagged name or launch one and wait until it runs.

    Args:
        ec2: boto3 EC2 client
        name: Name tag of the instance
        image_id: AMI to launch
        instance_type: EC2 instance type
        key_name: Key pair for SSH logins
        security_group_id: Security group of the instance
        subnet_id: Subnet to launch into
        waits: Polling settings

    Returns:
        Instance description
    """

    def create() -> Handle:
        instance = ec2.run_instances(
            ImageId=image_id,
            InstanceType=instance_type,
            KeyName=key_name,
            SecurityGroupIds=[security_group_id],
            SubnetId=subnet_id,
            MinCount=1,
            MaxCount=1,
        )["Instances"][0]
        wait_until_exists(ec2, INSTANCE, instance["InstanceId"], waits)
        return instance

    def await_running(instance: Handle) -> None:
        wait_until_state(ec2, INSTANCE, instance["InstanceId"], "running", waits)

    def lookup() -> Optional[Handle]:
        instance = find_running_instance(ec2, name)
        if instance is not None and instance.get("State", {}).get("Name") == "pending":
            await_running(instance)
        return instance

    return reconcile(
        lookup,
        create,
        name,
        tag_fn=lambda instance, tag: tag_with_name(ec2, resource_id(INSTANCE, instance), tag),
        configure_fn=await_running,
        kind="instance",
    )


def find_instance_address(ec2, instance_id: str) -> Optional[Handle]:
    return find_first(ec2, ADDRESS, [{"Name": "instance-id", "Values": [instance_id]}])


def find_unassociated_address(ec2) -> Optional[Handle]:
    for address in find_all(ec2, ADDRESS, [{"Name": "domain", "Values": ["vpc"]}]):
        if not address.get("AssociationId"):
            return address
    return None


def create_elastic_ip(ec2, name: str) -> Handle:
    """Reuse a free VPC elastic IP or allocate a new one."""
    address = find_unassociated_address(ec2)
    if address is None:
        logger.info("Creating a new elastic ip for vpc")
        address = ec2.allocate_address(Domain="vpc")
        tag_with_name(ec2, resource_id(ADDRESS, address), name)
    return address


def associate_elastic_ip(ec2, name: str, instance: Handle) -> str:
    """
    Make sure the instance has an elastic IP and return its public address.
    """
    address = find_instance_address(ec2, instance["InstanceId"])
    if address is None:
        address = create_elastic_ip(ec2, name)
        ec2.associate_address(InstanceId=instance["InstanceId"], AllocationId=address["AllocationId"])
        logger.info(f"Instance [{name}] has elastic ip [{address['PublicIp']}]")
    return address["PublicIp"]
