"""Discovery and deletion of RDS database instances and clusters."""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cloudsweep.resources import AwsResources, Session, error_code, logger

_CLUSTER_NOT_FOUND = "DBClusterNotFoundFault"
_CLUSTER_WAIT_ATTEMPTS = 90
_CLUSTER_WAIT_INTERVAL = 10.0


class RdsDeleteError(Exception):
    """A database resource was still present after waiting for its deletion."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__("RDS DB Instance:" + name + "was not deleted")


def get_all_rds_instances(session: Session, exclude_after: datetime) -> list[str]:
    """Return identifiers of DB instances created before exclude_after."""
    client = session.client("rds")
    result = client.describe_db_instances()
    return [
        database["DBInstanceIdentifier"]
        for database in result.get("DBInstances") or []
        if database.get("InstanceCreateTime") is not None
        and exclude_after > database["InstanceCreateTime"]
    ]


def nuke_all_rds_instances(session: Session, names: Sequence[str]) -> list[str]:
    """Delete the given DB instances, wait for them to go, and return those deleted.

    A failed delete request is logged and skipped; a failed wait is raised.
    """
    client = session.client("rds")
    if not names:
        logger.info("No RDS DB Instance to nuke in region %s", session.region)
        return []

    logger.info("Deleting all RDS Instances in region %s", session.region)
    deleted: list[str] = []
    for name in names:
        try:
            client.delete_db_instance(DBInstanceIdentifier=name, SkipFinalSnapshot=True)
        except Exception as exc:
            logger.error("[Failed] %s: %s", name, exc)
            continue
        deleted.append(name)
        logger.info("Deleted RDS DB Instance: %s", name)

    for name in deleted:
        try:
            client.get_waiter("db_instance_deleted").wait(DBInstanceIdentifier=name)
        except Exception as exc:
            logger.error("[Failed] %s", exc)
            raise

    logger.info("[OK] %d RDS DB Instance(s) deleted in %s", len(deleted), session.region)
    return deleted


def wait_until_rds_cluster_deleted(client: Any, cluster_identifier: str) -> None:
    """Poll until the cluster no longer exists; raise RdsDeleteError after 15 minutes."""
    for _ in range(_CLUSTER_WAIT_ATTEMPTS):
        try:
            client.describe_db_clusters(DBClusterIdentifier=cluster_identifier)
        except Exception as exc:
            if error_code(exc) == _CLUSTER_NOT_FOUND:
                return
            raise
        time.sleep(_CLUSTER_WAIT_INTERVAL)
        logger.debug("Waiting for RDS Cluster to be deleted")
    raise RdsDeleteError(cluster_identifier)


def get_all_rds_clusters(session: Session, exclude_after: datetime) -> list[str]:
    """Return identifiers of DB clusters created before exclude_after."""
    client = session.client("rds")
    result = client.describe_db_clusters()
    return [
        database["DBClusterIdentifier"]
        for database in result.get("DBClusters") or []
        if exclude_after > database["ClusterCreateTime"]
    ]


def nuke_all_rds_clusters(session: Session, names: Sequence[str]) -> list[str]:
    """Delete the given DB clusters, wait for them to go, and return those deleted.

    A failed delete request is logged and skipped; a failed wait is raised.
    """
    client = session.client("rds")
    if not names:
        logger.info("No RDS DB Cluster to nuke in region %s", session.region)
        return []

    logger.info("Deleting all RDS Clusters in region %s", session.region)
    deleted: list[str] = []
    for name in names:
        try:
            client.delete_db_cluster(DBClusterIdentifier=name, SkipFinalSnapshot=True)
        except Exception as exc:
            logger.error("[Failed] %s: %s", name, exc)
            continue
        deleted.append(name)
        logger.info("Deleted RDS DB Cluster: %s", name)

    for name in deleted:
        try:
            wait_until_rds_cluster_deleted(client, name)
        except Exception as exc:
            logger.error("[Failed] %s", exc)
            raise

    logger.info("[OK] %d RDS DB Cluster(s) nuked in %s", len(deleted), session.region)
    return deleted


@dataclass
class DBInstances(AwsResources):
    """RDS DB instances selected for deletion."""

    instance_names: list[str] = field(default_factory=list)

    def resource_name(self) -> str:
        return "rds"

    def resource_identifiers(self) -> list[str]:
        return self.instance_names

    def max_batch_size(self) -> int:
        return 200

    def nuke(self, session: Session, identifiers: list[str]) -> None:
        nuke_all_rds_instances(session, identifiers)


@dataclass
class DBClusters(AwsResources):
    """RDS DB clusters selected for deletion."""

    instance_names: list[str] = field(default_factory=list)

    def resource_name(self) -> str:
        return "rds"

    def resource_identifiers(self) -> list[str]:
        return self.instance_names

    def max_batch_size(self) -> int:
        return 200

    def nuke(self, session: Session, identifiers: list[str]) -> None:
        nuke_all_rds_clusters(session, identifiers)