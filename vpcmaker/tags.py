"""
Tagging utilities for Name-based resource identity.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

NAME = "Name"
PROJECT = "vpcmaker"


def base_tags(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Generate the project tags applied next to the Name tag.

    Args:
        extra: Additional tags to include

    Returns:
        Dictionary of tags to apply to resources
    """
    tags = {
        "project": PROJECT,
        "created_at": datetime.utcnow().isoformat() + "Z"
    }

    if extra:
        tags.update(extra)

    return tags


def name_filter(name: str) -> Dict[str, Any]:
    """Describe filter matching resources whose Name tag equals name."""
    return {"Name": f"tag:{NAME}", "Values": [name]}


def tags_to_dict(tags: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    """Convert an AWS [{'Key': .., 'Value': ..}] list into a dict."""
    return {tag["Key"]: tag["Value"] for tag in tags or []}


def to_aws_tags(tags: Dict[str, str]) -> List[Dict[str, str]]:
    return [{"Key": key, "Value": value} for key, value in tags.items()]


def name_tag(resource: Dict[str, Any]) -> Optional[str]:
    """Return the Name tag of a resource description, if any."""
    return tags_to_dict(resource.get("Tags")).get(NAME)


def tag_with_name(ec2, resource_id: str, name: str) -> None:
    """
    Tag a resource with its Name plus the project tags.

    Args:
        ec2: boto3 EC2 client
        resource_id: ID of the resource to tag
        name: Name tag value
    """
    tags = base_tags()
    tags[NAME] = name
    ec2.create_tags(Resources=[resource_id], Tags=to_aws_tags(tags))
