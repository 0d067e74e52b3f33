"""Discovery and deletion of transit gateways, their route tables and VPC attachments."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cloudsweep.resources import AwsResources, Session, error_code, logger

_MAX_BATCH_SIZE = 200
_GONE_STATES = frozenset({"deleted", "deleting"})
_ATTACHMENT_SETTLE_SECONDS = 180.0


def sleep_with_message(duration: float, message: str) -> None:
    """Log why, then sleep for duration seconds."""
    logger.info("Sleeping %ss: %s", duration, message)
    time.sleep(duration)


def _live_before(items: Sequence[Mapping[str, Any]], id_key: str, exclude_after: datetime) -> list[str]:
    return [
        item[id_key]
        for item in items
        if exclude_after > item["CreationTime"] and item.get("State") not in _GONE_STATES
    ]


def _delete_each(
    ids: Sequence[str], delete: Callable[[str], Any], label: str, region: str | None
) -> list[str]:
    deleted: list[str] = []
    for resource_id in ids:
        try:
            delete(resource_id)
        except Exception as exc:
            logger.error("[Failed] %s", exc)
            continue
        deleted.append(resource_id)
        logger.info("Deleted %s: %s", label, resource_id)
    return deleted


def get_all_transit_gateway_instances(
    session: Session, region: str, exclude_after: datetime
) -> list[str]:
    """Return ids of transit gateways created before exclude_after and not being deleted."""
    client = session.client("ec2")
    result = client.describe_transit_gateways()
    return _live_before(result.get("TransitGateways") or [], "TransitGatewayId", exclude_after)


def nuke_all_transit_gateway_instances(session: Session, ids: Sequence[str]) -> list[str]:
    """Delete the given transit gateways and return those deleted; failures are only logged."""
    client = session.client("ec2")
    if not ids:
        logger.info("No Transit Gateways to nuke in region %s", session.region)
        return []

    logger.info("Deleting all Transit Gateways in region %s", session.region)
    deleted = _delete_each(
        ids,
        lambda resource_id: client.delete_transit_gateway(TransitGatewayId=resource_id),
        "Transit Gateway",
        session.region,
    )
    logger.info("[OK] %d Transit Gateway(s) deleted in %s", len(deleted), session.region)
    return deleted


def get_all_transit_gateway_route_tables(
    session: Session, region: str, exclude_after: datetime
) -> list[str]:
    """Return ids of non-default route tables created before exclude_after."""
    client = session.client("ec2")
    # Default route tables go away with their transit gateway.
    result = client.describe_transit_gateway_route_tables(
        Filters=[{"Name": "default-association-route-table", "Values": ["false"]}]
    )
    return _live_before(
        result.get("TransitGatewayRouteTables") or [], "TransitGatewayRouteTableId", exclude_after
    )


def nuke_all_transit_gateway_route_tables(session: Session, ids: Sequence[str]) -> list[str]:
    """Delete the given route tables and return those deleted; failures are only logged."""
    client = session.client("ec2")
    if not ids:
        logger.info("No Transit Gateway Route Tables to nuke in region %s", session.region)
        return []

    logger.info("Deleting all Transit Gateway Route Tables in region %s", session.region)
    deleted = _delete_each(
        ids,
        lambda resource_id: client.delete_transit_gateway_route_table(
            TransitGatewayRouteTableId=resource_id
        ),
        "Transit Gateway Route Table",
        session.region,
    )
    logger.info(
        "[OK] %d Transit Gateway Route Table(s) deleted in %s", len(deleted), session.region
    )
    return deleted


def get_all_transit_gateway_vpc_attachments(
    session: Session, region: str, exclude_after: datetime
) -> list[str]:
    """Return ids of VPC attachments created before exclude_after and not being deleted."""
    client = session.client("ec2")
    result = client.describe_transit_gateway_vpc_attachments()
    return _live_before(
        result.get("TransitGatewayVpcAttachments") or [],
        "TransitGatewayAttachmentId",
        exclude_after,
    )


def nuke_all_transit_gateway_vpc_attachments(session: Session, ids: Sequence[str]) -> list[str]:
    """Delete the given VPC attachments, then wait for them to settle; return those deleted."""
    client = session.client("ec2")
    if not ids:
        logger.info("No Transit Gateway Vpc Attachments to nuke in region %s", session.region)
        return []

    logger.info("Deleting all Transit Gateway Vpc Attachments in region %s", session.region)
    deleted = _delete_each(
        ids,
        lambda resource_id: client.delete_transit_gateway_vpc_attachment(
            TransitGatewayAttachmentId=resource_id
        ),
        "Transit Gateway Vpc Attachment",
        session.region,
    )

    sleep_with_message(
        _ATTACHMENT_SETTLE_SECONDS,
        "TransitGateway Vpc Attachments takes some time to create, and since there is no "
        "waiter available, we sleep instead.",
    )
    logger.info(
        "[OK] %d Transit Gateway Vpc Attachment(s) deleted in %s", len(deleted), session.region
    )
    return deleted


def tg_is_available_in_region(session: Session, region: str) -> bool:
    """Whether the transit gateway service can be used in the session's region."""
    client = session.client("ec2")
    try:
        client.describe_transit_gateways()
    except Exception as exc:
        if error_code(exc) == "InvalidAction":
            return False
        raise
    return True


@dataclass
class TransitGatewaysVpcAttachment(AwsResources):
    """Transit gateway VPC attachments selected for deletion."""

    ids: list[str] = field(default_factory=list)

    def resource_name(self) -> str:
        return "transit-gateway-attachment"

    def max_batch_size(self) -> int:
        return _MAX_BATCH_SIZE

    def resource_identifiers(self) -> list[str]:
        return self.ids

    def nuke(self, session: Session, identifiers: list[str]) -> None:
        nuke_all_transit_gateway_vpc_attachments(session, identifiers)


@dataclass
class TransitGatewaysRouteTables(AwsResources):
    """Transit gateway route tables selected for deletion."""

    ids: list[str] = field(default_factory=list)

    def resource_name(self) -> str:
        return "transit-gateway-route-table"

    def max_batch_size(self) -> int:
        return _MAX_BATCH_SIZE

    def resource_identifiers(self) -> list[str]:
        return self.ids

    def nuke(self, session: Session, identifiers: list[str]) -> None:
        nuke_all_transit_gateway_route_tables(session, identifiers)


@dataclass
class TransitGateways(AwsResources):
    """Transit gateways selected for deletion."""

    ids: list[str] = field(default_factory=list)

    def resource_name(self) -> str:
        return "transit-gateway"

    def max_batch_size(self) -> int:
        return _MAX_BATCH_SIZE

    def resource_identifiers(self) -> list[str]:
        return self.ids

    def nuke(self, session: Session, identifiers: list[str]) -> None:
        nuke_all_transit_gateway_instances(session, identifiers)