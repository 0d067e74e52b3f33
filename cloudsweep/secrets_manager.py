"""Discovery and deletion of Secrets Manager secrets."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cloudsweep.config import Config, should_include
from cloudsweep.resources import AggregateError, AwsResources, Session, logger


def _secret_entries(client: Any) -> Iterator[Mapping[str, Any]]:
    request: dict[str, Any] = {}
    while True:
        page = client.list_secrets(**request)
        yield from page.get("SecretList") or []
        token = page.get("NextToken")
        if not token:
            return
        request["NextToken"] = token


def get_all_secrets_manager_secrets(
    session: Session, exclude_after: datetime, config: Config | None
) -> list[str]:
    """Return ARNs of secrets that pass the time and config filters."""
    client = session.client("secretsmanager")
    return [
        secret["ARN"]
        for secret in _secret_entries(client)
        if should_include_secret(secret, exclude_after, config)
    ]


def should_include_secret(
    secret: Mapping[str, Any] | None, exclude_after: datetime, config: Config | None
) -> bool:
    """Decide whether a secret should be deleted.

    The reference time is the last access, or the creation if it was never accessed.
    """
    if secret is None:
        return False

    reference = secret.get("LastAccessedDate")
    if reference is None:
        reference = secret["CreatedDate"]
    if exclude_after < reference:
        return False

    rules = (config or Config()).secrets_manager_secrets
    return should_include(
        secret.get("Name") or "",
        rules.include_rule.names_regex,
        rules.exclude_rule.names_regex,
    )


def nuke_all_secrets_manager_secrets(session: Session, identifiers: Sequence[str]) -> None:
    """Delete the given secrets concurrently, raising AggregateError on any failure."""
    client = session.client("secretsmanager")
    if not identifiers:
        logger.info("No Secrets Manager Secrets to nuke in region %s", session.region)
        return

    logger.info("Deleting Secrets Manager secrets in region %s", session.region)

    def delete(secret_id: str) -> BaseException | None:
        try:
            client.delete_secret(SecretId=secret_id, ForceDeleteWithoutRecovery=True)
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


@dataclass
class SecretsManagerSecrets(AwsResources):
    """Secrets Manager secrets selected for deletion."""

    secret_ids: list[str] = field(default_factory=list)

    def resource_name(self) -> str:
        return "secretsmanager"

    def resource_identifiers(self) -> list[str]:
        return self.secret_ids

    def max_batch_size(self) -> int:
        # There is no bulk delete, so this many are deleted in parallel.
        return 10

    def nuke(self, session: Session, identifiers: list[str]) -> None:
        nuke_all_secrets_manager_secrets(session, identifiers)