"""Discovery and deletion of SQS queues."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cloudsweep.resources import AwsResources, Session, logger

_PAGE_SIZE = 10


def _queue_urls(client: Any) -> Iterator[str]:
    request: dict[str, Any] = {"MaxResults": _PAGE_SIZE}
    while True:
        page = client.list_queues(**request)
        yield from page.get("QueueUrls") or []
        token = page.get("NextToken")
        if not token:
            return
        request["NextToken"] = token


def get_all_sqs_queues(session: Session, region: str, exclude_after: datetime) -> list[str]:
    """Return URLs of queues created before exclude_after (compared in whole seconds)."""
    client = session.client("sqs")
    queues = list(_queue_urls(client))
    cutoff = math.floor(exclude_after.timestamp())

    urls: list[str] = []
    for queue in queues:
        attributes = client.get_queue_attributes(
            QueueUrl=queue, AttributeNames=["CreatedTimestamp"]
        )
        created_at = int(attributes["Attributes"]["CreatedTimestamp"])
        if cutoff > created_at:
            urls.append(queue)
    return urls


def nuke_all_sqs_queues(session: Session, urls: Sequence[str]) -> list[str]:
    """Delete the given queues and return those deleted; failures are only logged."""
    client = session.client("sqs")
    if not urls:
        logger.info("No SQS Queues to nuke in region %s", session.region)
        return []

    logger.info("Deleting all SQS Queues in region %s", session.region)
    deleted: list[str] = []
    for url in urls:
        try:
            client.delete_queue(QueueUrl=url)
        except Exception as exc:
            logger.error("[Failed] %s", exc)
            continue
        deleted.append(url)
        logger.info("Deleted SQS Queue: %s", url)

    logger.info("[OK] %d SQS Queue(s) deleted in %s", len(deleted), session.region)
    return deleted


@dataclass
class SqsQueue(AwsResources):
    """SQS queues selected for deletion."""

    queue_urls: list[str] = field(default_factory=list)

    def resource_name(self) -> str:
        return "sqs"

    def max_batch_size(self) -> int:
        return 200

    def resource_identifiers(self) -> list[str]:
        return self.queue_urls

    def nuke(self, session: Session, identifiers: list[str]) -> None:
        nuke_all_sqs_queues(session, identifiers)