"""Discovery and deletion of OpenSearch domains."""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cloudsweep.config import Config, should_include
from cloudsweep.resources import AggregateError, AwsResources, Session, logger

# Many service APIs allow about 100 requests per second, and one call is made per domain.
_MAX_CONCURRENT_DELETES = 100
_WAIT_ATTEMPTS = 30
_WAIT_INTERVAL = 10.0


class TooManyOpenSearchDomainsError(ValueError):
    """More domains were requested for deletion at once than is safe."""

    def __init__(self) -> None:
        super().__init__("Too many OpenSearch Domains requested at once.")


def get_all_active_opensearch_domains(session: Session) -> list[Mapping[str, Any]]:
    """Return the status of every domain that is created and not deleted."""
    client = session.client("opensearch")
    try:
        listed = client.list_domain_names()
    except Exception:
        logger.error("Error getting all OpenSearch domains")
        raise
    names = [entry["DomainName"] for entry in listed.get("DomainNames") or []]

    try:
        described = client.describe_domains(DomainNames=names)
    except Exception:
        logger.error("Error describing Domains from input %s: ", names)
        raise

    return [
        domain
        for domain in described.get("DomainStatusList") or []
        if domain.get("Created") and not domain.get("Deleted")
    ]


def should_include_opensearch_domain(
    domain: Mapping[str, Any] | None,
    first_seen_time: datetime,
    exclude_after: datetime,
    config: Config | None,
) -> bool:
    """Decide whether a domain should be deleted from when it was first seen and the config."""
    if domain is None:
        return False
    if exclude_after < first_seen_time:
        return False
    rules = (config or Config()).opensearch_domain
    return should_include(
        domain.get("DomainName") or "",
        rules.include_rule.names_regex,
        rules.exclude_rule.names_regex,
    )


def _wait_until_deleted(client: Any, identifiers: list[str]) -> None:
    logger.info("Waiting for all OpenSearch Domains to be deleted.")
    for attempt in range(1, _WAIT_ATTEMPTS + 1):
        response = client.describe_domains(DomainNames=identifiers)
        if not response.get("DomainStatusList"):
            return
        if attempt == _WAIT_ATTEMPTS:
            break
        logger.info(
            "Not all OpenSearch domains are deleted. Retrying in %s seconds (attempt %d / %d)",
            _WAIT_INTERVAL, attempt, _WAIT_ATTEMPTS,
        )
        time.sleep(_WAIT_INTERVAL)
    raise TimeoutError("Not all OpenSearch domains are deleted.")


def nuke_all_opensearch_domains(session: Session, identifiers: Sequence[str]) -> None:
    """Delete the given domains concurrently and wait until they are gone.

    Raises TooManyOpenSearchDomainsError for more than 100 domains, AggregateError when
    any delete request fails, and TimeoutError when the domains do not disappear.
    """
    client = session.client("opensearch")
    if not identifiers:
        logger.info("No OpenSearch Domains to nuke in region %s", session.region)
        return

    if len(identifiers) > _MAX_CONCURRENT_DELETES:
        logger.error(
            "Nuking too many OpenSearch Domains at once (100): halting to avoid hitting "
            "AWS API rate limiting"
        )
        raise TooManyOpenSearchDomainsError()

    logger.info("Deleting OpenSearch Domains in region %s", session.region)

    def delete(domain_name: str) -> BaseException | None:
        try:
            client.delete_domain(DomainName=domain_name)
        except Exception as exc:
            return exc
        return None

    with ThreadPoolExecutor(max_workers=len(identifiers)) as pool:
        outcomes = list(pool.map(delete, identifiers))

    errors = [error for error in outcomes if error is not None]
    for error in errors:
        logger.error("[Failed] %s", error)
    if errors:
        raise AggregateError(errors)

    _wait_until_deleted(client, list(identifiers))
    for domain_name in identifiers:
        logger.info("[OK] OpenSearch Domain %s was deleted in %s", domain_name, session.region)


@dataclass
class OpenSearchDomains(AwsResources):
    """OpenSearch domains selected for deletion."""

    domain_names: list[str] = field(default_factory=list)

    def resource_name(self) -> str:
        return "opensearchdomain"

    def resource_identifiers(self) -> list[str]:
        return self.domain_names

    def max_batch_size(self) -> int:
        # Domains are deleted one call each, in parallel; keep the batch small.
        return 10

    def nuke(self, session: Session, identifiers: list[str]) -> None:
        nuke_all_opensearch_domains(session, identifiers)