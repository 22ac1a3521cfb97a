"""
End-to-end provisioning of the VPC and its bastion hosts.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import boto3

from .bastion import BastionHost, get_or_create_bastion_host
from .config import VpcConfig
from .network import (
    ensure_internet_gateway_attached,
    get_or_create_route_table,
    get_or_create_subnet,
    get_or_create_vpc,
)
from .waiters import WaitSettings

logger = logging.getLogger(__name__)


def make_vpc(
    config: VpcConfig,
    session: boto3.Session,
    key_file: Union[str, Path],
    waits: Optional[WaitSettings] = None,
) -> List[BastionHost]:
    """
    Find or create every resource of the configuration, in dependency order.

    Running it again against the same configuration reuses what exists and
    creates nothing new.

    Args:
        config: VPC configuration
        session: boto3 session for the configured region
        key_file: Local path of the bastion private key
        waits: Polling settings, defaults to WaitSettings()

    Returns:
        One bastion descriptor per configured subnet, in configuration order
    """
    waits = waits or WaitSettings()
    ec2 = session.client("ec2", region_name=config.region)
    s3 = session.client("s3", region_name=config.bucket_region)
    access_key_id = session.get_credentials().access_key

    logger.info(f"Provisioning [{config.name}] vpc in [{config.region}]")
    vpc = get_or_create_vpc(ec2, config, waits)
    internet_gateway = ensure_internet_gateway_attached(ec2, config, vpc, waits)
    route_table = get_or_create_route_table(ec2, vpc, internet_gateway)

    bastions = []
    for subnet_config in config.subnets:
        subnet = get_or_create_subnet(ec2, vpc, subnet_config, route_table)
        bastions.append(
            get_or_create_bastion_host(
                ec2, s3, config, subnet_config, subnet, vpc, key_file, access_key_id, waits
            )
        )

    return bastions
