"""
Bastion security group: SSH in from anywhere, HTTP(S) out to anywhere.
"""

import logging
from typing import Optional

from .config import VpcConfig
from .network import ANYWHERE
from .reconcile import SECURITY_GROUP, Handle, find_first, reconcile, resource_id
from .tags import tag_with_name

logger = logging.getLogger(__name__)


def _tcp_permission(port: int, cidr: str) -> dict:
    return {
        "IpProtocol": "tcp",
        "FromPort": port,
        "ToPort": port,
        "IpRanges": [{"CidrIp": cidr}],
    }


def find_security_group(ec2, vpc: Handle, group_name: str) -> Optional[Handle]:
    return find_first(
        ec2,
        SECURITY_GROUP,
        [
            {"Name": "group-name", "Values": [group_name]},
            {"Name": "vpc-id", "Values": [vpc["VpcId"]]},
        ],
    )


def revoke_all_permissions(ec2, group: Handle) -> None:
    """Remove every ingress and egress rule of the group."""
    group_id = group["GroupId"]
    logger.info(f"Clearing out permissions for [{group.get('GroupName', group_id)}] security group")
    egress = group.get("IpPermissionsEgress") or []
    ingress = group.get("IpPermissions") or []
    if egress:
        ec2.revoke_security_group_egress(GroupId=group_id, IpPermissions=egress)
    if ingress:
        ec2.revoke_security_group_ingress(GroupId=group_id, IpPermissions=ingress)


def allow_ssh_ingress(ec2, group_id: str, source: str) -> None:
    logger.info(f"Allowing ssh from [{source}] into [{group_id}]")
    ec2.authorize_security_group_ingress(GroupId=group_id, IpPermissions=[_tcp_permission(22, source)])


def allow_http_egress(ec2, group_id: str, destination: str) -> None:
    logger.info(f"Allowing http from [{group_id}] to [{destination}]")
    ec2.authorize_security_group_egress(GroupId=group_id, IpPermissions=[_tcp_permission(80, destination)])


def allow_https_egress(ec2, group_id: str, destination: str) -> None:
    logger.info(f"Allowing https from [{group_id}] to [{destination}]")
    ec2.authorize_security_group_egress(GroupId=group_id, IpPermissions=[_tcp_permission(443, destination)])


def get_or_create_bastion_host_security_group(ec2, config: VpcConfig, vpc: Handle) -> Handle:
    """Find the bastion group of the VPC by name or create it with bastion rules."""
    group_name = config.bastion_key_name

    def create() -> Handle:
        group_id = ec2.create_security_group(
            GroupName=group_name,
            Description=f"Bastion hosts of {config.name}",
            VpcId=vpc["VpcId"],
        )["GroupId"]
        return find_first(ec2, SECURITY_GROUP, [{"Name": "group-id", "Values": [group_id]}]) or {
            "GroupId": group_id,
            "GroupName": group_name,
        }

    def configure(group: Handle) -> None:
        # New groups come with an allow-all egress rule
        revoke_all_permissions(ec2, group)
        allow_https_egress(ec2, group["GroupId"], ANYWHERE)
        allow_http_egress(ec2, group["GroupId"], ANYWHERE)
        allow_ssh_ingress(ec2, group["GroupId"], ANYWHERE)

    return reconcile(
        lambda: find_security_group(ec2, vpc, group_name),
        create,
        group_name,
        tag_fn=lambda group, name: tag_with_name(ec2, resource_id(SECURITY_GROUP, group), name),
        configure_fn=configure,
        kind="security group",
    )
