"""
Bastion host provisioning and the descriptor handed to SSH config templating.
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from .config import SubnetConfig, VpcConfig
from .instances import associate_elastic_ip, get_or_create_instance
from .keys import get_or_create_bastion_host_key
from .reconcile import Handle
from .security import get_or_create_bastion_host_security_group
from .waiters import WaitSettings


@dataclass(frozen=True)
class BastionHost:
    """How to reach one bastion host over SSH."""
    name: str
    public_ip: str
    user: str
    keyfile: str
    hosts: List[str] = field(default_factory=list)  # host patterns reachable through the bastion

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["hosts"] = list(self.hosts)
        return data


def get_or_create_bastion_host(
    ec2,
    s3,
    config: VpcConfig,
    subnet_config: SubnetConfig,
    subnet: Handle,
    vpc: Handle,
    key_file: Union[str, Path],
    access_key_id: str,
    waits: WaitSettings,
) -> BastionHost:
    name = subnet_config.bastion_host
    defaults = config.defaults

    key_pair = get_or_create_bastion_host_key(ec2, s3, config, key_file, access_key_id)
    security_group = get_or_create_bastion_host_security_group(ec2, config, vpc)
    instance = get_or_create_instance(
        ec2,
        name,
        defaults.image_id,
        defaults.instance_type,
        key_pair["KeyName"],
        security_group["GroupId"],
        subnet["SubnetId"],
        waits,
    )
    public_ip = associate_elastic_ip(ec2, name, instance)

    return BastionHost(
        name=name,
        public_ip=public_ip,
        user=defaults.image_login_user,
        keyfile=str(key_file),
        hosts=config.ssh_hosts,
    )
