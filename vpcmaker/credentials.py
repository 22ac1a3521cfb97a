"""
Credentials file handling and boto3 session creation.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import boto3
import yaml

from .errors import CredentialsError


@dataclass(frozen=True)
class Credentials:
    """AWS access key pair read from the local credentials file."""
    access_key_id: str
    secret_access_key: str


def has_credentials(path: Union[str, Path]) -> bool:
    return Path(path).is_file()


def save_credentials(path: Union[str, Path], access_key_id: str, secret_access_key: str) -> Path:
    """
    Write the credentials file as YAML, readable by the owner only.

    Args:
        path: Credentials file path
        access_key_id: AWS access key ID
        secret_access_key: AWS secret access key

    Returns:
        Path: The written file
    """
    credentials_file = Path(path)
    credentials_file.parent.mkdir(parents=True, exist_ok=True)

    data = {"access_key_id": access_key_id, "secret_access_key": secret_access_key}
    with open(credentials_file, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False)
    os.chmod(credentials_file, 0o600)

    return credentials_file


def load_credentials(path: Union[str, Path]) -> Credentials:
    """
    Read the credentials file.

    Raises:
        CredentialsError: If the file is missing or lacks a key
    """
    credentials_file = Path(path)
    if not credentials_file.is_file():
        raise CredentialsError(
            f"No credentials at {credentials_file}; run 'vpcmaker configure' first"
        )

    with open(credentials_file, "r") as f:
        data = yaml.safe_load(f) or {}

    missing = [key for key in ("access_key_id", "secret_access_key") if not data.get(key)]
    if missing:
        raise CredentialsError(f"Credentials file {credentials_file} is missing: {', '.join(missing)}")

    return Credentials(
        access_key_id=str(data["access_key_id"]),
        secret_access_key=str(data["secret_access_key"]),
    )


def create_session(credentials: Credentials, region: str) -> boto3.Session:
    """Create a boto3 session bound to the configured region."""
    return boto3.Session(
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        region_name=region,
    )
