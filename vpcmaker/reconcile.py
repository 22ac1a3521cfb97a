"""
Find-or-create reconciliation of tagged EC2 resources.

Every provisioning step is an instance of one pattern: look up a resource by
its identity, and only when nothing matches create it, tag it and finish
configuring it. Nothing here locks; two concurrent runs against the same
identity can both create a resource.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .tags import name_filter

logger = logging.getLogger(__name__)

Handle = Dict[str, Any]
Filters = List[Dict[str, Any]]
T = TypeVar("T")


@dataclass(frozen=True)
class ResourceKind:
    """How to list one kind of EC2 resource through its describe call."""
    label: str
    describe: str  # client method, e.g. "describe_vpcs"
    collection: str  # response key holding the list
    id_key: str
    nested: Optional[str] = None  # list inside each collection item (instances in reservations)


VPC = ResourceKind("vpc", "describe_vpcs", "Vpcs", "VpcId")
INTERNET_GATEWAY = ResourceKind(
    "internet gateway", "describe_internet_gateways", "InternetGateways", "InternetGatewayId"
)
ROUTE_TABLE = ResourceKind("route table", "describe_route_tables", "RouteTables", "RouteTableId")
SUBNET = ResourceKind("subnet", "describe_subnets", "Subnets", "SubnetId")
SECURITY_GROUP = ResourceKind("security group", "describe_security_groups", "SecurityGroups", "GroupId")
INSTANCE = ResourceKind("instance", "describe_instances", "Reservations", "InstanceId", nested="Instances")
ADDRESS = ResourceKind("elastic ip", "describe_addresses", "Addresses", "AllocationId")
KEY_PAIR = ResourceKind("key pair", "describe_key_pairs", "KeyPairs", "KeyName")


def find_all(ec2, kind: ResourceKind, filters: Optional[Filters] = None) -> List[Handle]:
    """
    List resources of a kind matching the describe filters.

    Args:
        ec2: boto3 EC2 client
        kind: Resource kind to list
        filters: EC2 describe filters

    Returns:
        List of resource descriptions
    """
    describe = getattr(ec2, kind.describe)
    response = describe(Filters=filters or [])

    items = response.get(kind.collection, [])
    if kind.nested:
        return [nested for item in items for nested in item.get(kind.nested, [])]
    return list(items)


def find_first(ec2, kind: ResourceKind, filters: Optional[Filters] = None) -> Optional[Handle]:
    found = find_all(ec2, kind, filters)
    return found[0] if found else None


def find_tagged(ec2, kind: ResourceKind, name: str, filters: Optional[Filters] = None) -> Optional[Handle]:
    """Find the first resource of a kind whose Name tag is name."""
    return find_first(ec2, kind, [name_filter(name)] + list(filters or []))


def resource_id(kind: ResourceKind, handle: Handle) -> str:
    return handle[kind.id_key]


def reconcile(
    lookup_fn: Callable[[], Optional[T]],
    create_fn: Callable[[], T],
    tag_name: str,
    tag_fn: Optional[Callable[[T, str], None]] = None,
    configure_fn: Optional[Callable[[T], None]] = None,
    kind: str = "resource",
) -> T:
    """
    Return the resource identified by tag_name, creating it if needed.

    An existing match is returned unchanged: it is neither retagged nor
    reconfigured, whatever its current settings.

    Args:
        lookup_fn: Returns the existing resource or None
        create_fn: Creates the resource and returns its handle
        tag_name: Identity of the resource
        tag_fn: Applies tag_name to a freshly created handle
        configure_fn: Finishes setting up a freshly created handle
        kind: Resource label for log messages

    Returns:
        The existing or newly created handle
    """
    existing = lookup_fn()
    if existing is not None:
        logger.info(f"Reusing [{tag_name}] {kind}")
        return existing

    logger.info(f"Creating [{tag_name}] {kind}")
    handle = create_fn()
    if tag_fn is not None:
        tag_fn(handle, tag_name)
    if configure_fn is not None:
        configure_fn(handle)
    return handle
