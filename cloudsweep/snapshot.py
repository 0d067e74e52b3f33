"""Discovery and deletion of EBS snapshots owned by the account."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from cloudsweep.resources import AwsResources, Session, logger


def get_all_snapshots(session: Session, region: str, exclude_after: datetime) -> list[str]:
    """Return ids of own snapshots started before exclude_after."""
    client = session.client("ec2")
    output = client.describe_snapshots(OwnerIds=["self"])
    return [
        snapshot["SnapshotId"]
        for snapshot in output.get("Snapshots") or []
        if exclude_after > snapshot["StartTime"]
    ]


def nuke_all_snapshots(session: Session, snapshot_ids: Sequence[str]) -> list[str]:
    """Delete the given snapshots and return those deleted; failures are only logged."""
    client = session.client("ec2")
    if not snapshot_ids:
        logger.info("No Snapshots to nuke in region %s", session.region)
        return []

    logger.info("Deleting all Snapshots in region %s", session.region)
    deleted: list[str] = []
    for snapshot_id in snapshot_ids:
        try:
            client.delete_snapshot(SnapshotId=snapshot_id)
        except Exception as exc:
            logger.error("[Failed] %s", exc)
            continue
        deleted.append(snapshot_id)
        logger.info("Deleted Snapshot: %s", snapshot_id)

    logger.info("[OK] %d Snapshot(s) terminated in %s", len(deleted), session.region)
    return deleted


@dataclass
class Snapshots(AwsResources):
    """Snapshots owned by the account selected for deletion."""

    snapshot_ids: list[str] = field(default_factory=list)

    def resource_name(self) -> str:
        return "snap"

    def resource_identifiers(self) -> list[str]:
        return self.snapshot_ids

    def max_batch_size(self) -> int:
        return 200

    def nuke(self, session: Session, identifiers: list[str]) -> None:
        nuke_all_snapshots(session, identifiers)