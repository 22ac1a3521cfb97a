"""
Desired-state configuration for a VPC and its bastion hosts.

The configuration is read once from a YAML file and validated into frozen
pydantic models; the resulting VpcConfig is passed explicitly to every
provisioning step.
"""

import ipaddress
from pathlib import Path
from typing import List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from .errors import ConfigError

DEFAULT_KEY_BUCKET_REGION = "us-east-1"


def _check_cidr(value: str) -> str:
    try:
        ipaddress.IPv4Network(value)
    except ValueError as e:
        raise ValueError(f"Invalid CIDR block {value!r}: {e}")
    return value


class InstanceDefaults(BaseModel):
    """Parameters shared by every bastion instance."""

    model_config = ConfigDict(frozen=True)

    image_id: str
    image_login_user: str
    instance_type: str = "t3.micro"


class SubnetConfig(BaseModel):
    """One subnet and the bastion host living in it."""

    model_config = ConfigDict(frozen=True)

    name: str
    cidr_block: str
    availability_zone: str
    bastion_host: str
    ssh_hosts: Tuple[str, ...] = ()

    @field_validator("cidr_block")
    @classmethod
    def _valid_cidr(cls, value: str) -> str:
        return _check_cidr(value)

    @field_validator("ssh_hosts", mode="before")
    @classmethod
    def _hosts_as_tuple(cls, value: Union[None, str, List[str]]) -> Tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(value.split())
        return tuple(value)


class VpcConfig(BaseModel):
    """The whole desired state for one run."""

    model_config = ConfigDict(frozen=True)

    name: str
    cidr_block: str
    region: str
    key_bucket_prefix: str
    key_bucket_region: Optional[str] = None
    defaults: InstanceDefaults
    subnets: Tuple[SubnetConfig, ...]

    @field_validator("cidr_block")
    @classmethod
    def _valid_cidr(cls, value: str) -> str:
        return _check_cidr(value)

    @model_validator(mode="after")
    def _unique_subnet_names(self) -> "VpcConfig":
        names = [subnet.name for subnet in self.subnets]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate subnet names: {', '.join(duplicates)}")
        return self

    @property
    def bastion_key_name(self) -> str:
        """Name of the bastion key pair, also used for its security group."""
        return f"{self.name}-bastion"

    @property
    def bastion_key_object(self) -> str:
        return f"{self.bastion_key_name}.pem"

    @property
    def bucket_region(self) -> str:
        """Region of the key bucket; the S3 client must be created there too."""
        return self.key_bucket_region or DEFAULT_KEY_BUCKET_REGION

    @property
    def ssh_hosts(self) -> List[str]:
        """SSH host patterns of every subnet, in declaration order."""
        hosts = []
        for subnet in self.subnets:
            hosts.extend(subnet.ssh_hosts)
        return hosts


def load_config(path: Union[str, Path]) -> VpcConfig:
    """
    Load and validate a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        VpcConfig: Immutable configuration

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the file is not valid YAML or fails validation
    """
    config_file = Path(path)
    if not config_file.is_file():
        raise FileNotFoundError(f"Configuration file {config_file} not found")

    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {config_file} must be a mapping")

    try:
        return VpcConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_file}:\n{e}") from e
