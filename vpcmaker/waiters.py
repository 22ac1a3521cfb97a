"""
Bounded polling for EC2 resources that change state asynchronously.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from botocore.exceptions import ClientError

from .errors import WaitCancelled, WaitTimeout
from .reconcile import ResourceKind, find_all

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaitSettings:
    """Polling parameters shared by every wait of a run."""
    timeout: float = 600.0
    interval: float = 1.0
    max_interval: float = 15.0
    backoff: float = 2.0
    cancel: Optional[threading.Event] = None


def wait_until(
    condition: Callable[[], Any],
    description: str,
    timeout: float = 600.0,
    interval: float = 1.0,
    max_interval: float = 15.0,
    backoff: float = 2.0,
    cancel: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Any:
    """
    Poll condition until it returns a truthy value and return that value.

    The delay between polls starts at interval and grows by backoff up to
    max_interval. The last sleep is shortened so the total never overshoots
    timeout by more than one poll.

    Raises:
        WaitTimeout: If timeout seconds elapse first
        WaitCancelled: If cancel is set
    """
    deadline = clock() + timeout
    delay = interval
    attempts = 0

    while True:
        if cancel is not None and cancel.is_set():
            raise WaitCancelled(f"Cancelled while waiting for {description}")

        attempts += 1
        result = condition()
        if result:
            logger.debug(f"{description}: done after {attempts} checks")
            return result

        remaining = deadline - clock()
        if remaining <= 0:
            raise WaitTimeout(f"Timed out after {timeout:g}s waiting for {description}")

        logger.debug(f"{description}: not yet, checking again in {min(delay, remaining):g}s")
        if cancel is not None:
            if cancel.wait(min(delay, remaining)):
                raise WaitCancelled(f"Cancelled while waiting for {description}")
        else:
            sleep(min(delay, remaining))
        delay = min(delay * backoff, max_interval)


def _is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code", "").endswith(".NotFound")


def describe_state(ec2, kind: ResourceKind, resource_id: str, key: str = "State") -> Optional[str]:
    """
    Read the state field of one resource.

    A resource that EC2 does not report yet (eventual consistency) yields
    None instead of an error. For instances the nested State.Name is used.
    """
    try:
        found = find_all(ec2, kind, [{"Name": _id_filter(kind), "Values": [resource_id]}])
    except ClientError as e:
        if _is_not_found(e):
            return None
        raise

    if not found:
        return None
    state = found[0].get(key)
    if isinstance(state, dict):
        return state.get("Name")
    return state if state is not None else "exists"


def _id_filter(kind: ResourceKind) -> str:
    return {
        "VpcId": "vpc-id",
        "InternetGatewayId": "internet-gateway-id",
        "InstanceId": "instance-id",
        "SubnetId": "subnet-id",
        "RouteTableId": "route-table-id",
        "GroupId": "group-id",
        "AllocationId": "allocation-id",
        "KeyName": "key-name",
    }[kind.id_key]


def wait_until_exists(ec2, kind: ResourceKind, resource_id: str, settings: WaitSettings) -> None:
    wait_until(
        lambda: describe_state(ec2, kind, resource_id) is not None,
        f"{kind.label} {resource_id} to exist",
        **_settings_kwargs(settings),
    )


def wait_until_state(ec2, kind: ResourceKind, resource_id: str, state: str, settings: WaitSettings) -> None:
    """Wait until the resource's State (State.Name for instances) equals state."""
    wait_until(
        lambda: describe_state(ec2, kind, resource_id) == state,
        f"{kind.label} {resource_id} to be {state}",
        **_settings_kwargs(settings),
    )


def _settings_kwargs(settings: WaitSettings) -> dict:
    return {
        "timeout": settings.timeout,
        "interval": settings.interval,
        "max_interval": settings.max_interval,
        "backoff": settings.backoff,
        "cancel": settings.cancel,
    }
