"""
Bastion key pair management with the private key kept in S3.

EC2 only hands out the private key material once, when the key pair is
created, so it is stored in an encrypted S3 object and fetched from there
whenever the local key file is missing.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from botocore.exceptions import ClientError

from .config import DEFAULT_KEY_BUCKET_REGION, VpcConfig
from .reconcile import KEY_PAIR, Handle, find_first, reconcile

logger = logging.getLogger(__name__)


def key_bucket_name(prefix: str, access_key_id: str) -> str:
    """Bucket names are global, so the access key ID keeps them per account."""
    return f"{prefix}-{access_key_id}".lower()


def ensure_key_bucket(s3, config: VpcConfig, access_key_id: str) -> str:
    """
    Return the name of the key bucket, creating the bucket if needed.

    Args:
        s3: boto3 S3 client
        config: VPC configuration
        access_key_id: AWS access key ID of the current credentials

    Returns:
        Bucket name
    """
    bucket_name = key_bucket_name(config.key_bucket_prefix, access_key_id)

    try:
        s3.head_bucket(Bucket=bucket_name)
        return bucket_name
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") not in ("404", "NoSuchBucket", "NotFound"):
            raise

    region = config.bucket_region
    logger.info(f"Creating [{bucket_name}] S3 bucket in [{region}]")
    if region == DEFAULT_KEY_BUCKET_REGION:
        s3.create_bucket(Bucket=bucket_name)
    else:
        s3.create_bucket(
            Bucket=bucket_name,
            CreateBucketConfiguration={"LocationConstraint": region},
        )
    return bucket_name


def find_key_pair(ec2, key_name: str) -> Optional[Handle]:
    return find_first(ec2, KEY_PAIR, [{"Name": "key-name", "Values": [key_name]}])


def upload_key(s3, bucket_name: str, object_name: str, private_key: str) -> None:
    logger.info(f"Uploading [{object_name}] to S3 bucket [{bucket_name}]")
    s3.put_object(
        Bucket=bucket_name,
        Key=object_name,
        Body=private_key.encode("utf-8"),
        ContentType="application/octet-stream",
        ServerSideEncryption="AES256",
    )


def fetch_key(s3, bucket_name: str, object_name: str, output: Union[str, Path]) -> Path:
    """
    Download the private key unless output already exists.

    The file is created with owner-only permissions.
    """
    output = Path(output)
    if output.is_file():
        return output

    logger.info(f"Saving [{object_name}] from S3 bucket to [{output}]")
    body = s3.get_object(Bucket=bucket_name, Key=object_name)["Body"].read()

    output.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(output, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(body)
    os.chmod(output, 0o600)
    return output


def get_or_create_key_pair(ec2, s3, key_name: str, bucket_name: str, object_name: str) -> Handle:
    """Find the key pair by name or create it and upload its private key."""
    return reconcile(
        lambda: find_key_pair(ec2, key_name),
        lambda: ec2.create_key_pair(KeyName=key_name),
        key_name,
        configure_fn=lambda key_pair: upload_key(s3, bucket_name, object_name, key_pair["KeyMaterial"]),
        kind="key pair",
    )


def get_or_create_bastion_host_key(
    ec2, s3, config: VpcConfig, key_file: Union[str, Path], access_key_id: str
) -> Handle:
    """
    Make sure the bastion key pair exists and its private key is on disk.

    Args:
        ec2: boto3 EC2 client
        s3: boto3 S3 client
        config: VPC configuration
        key_file: Local path of the private key
        access_key_id: AWS access key ID, part of the bucket name

    Returns:
        Key pair description
    """
    bucket_name = ensure_key_bucket(s3, config, access_key_id)
    key_pair = get_or_create_key_pair(
        ec2, s3, config.bastion_key_name, bucket_name, config.bastion_key_object
    )
    fetch_key(s3, bucket_name, config.bastion_key_object, key_file)
    return key_pair
