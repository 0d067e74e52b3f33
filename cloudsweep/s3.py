"""Discovery and deletion of S3 buckets."""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cloudsweep.config import Config, should_include
from cloudsweep.resources import AggregateError, AwsResources, Session, error_code, logger

AWS_RESOURCE_EXCLUSION_TAG_KEY = "cloud-nuke-excluded"

_DEFAULT_BUCKET_REGION = "us-east-1"
_MAX_OBJECT_BATCH_SIZE = 1000
_DELETION_WAIT_ATTEMPTS = 3


class BucketDeletionError(AggregateError):
    """Some buckets could not be deleted; carries how many were."""

    def __init__(self, errors: Sequence[BaseException], deleted_count: int) -> None:
        self.deleted_count = deleted_count
        super().__init__(errors)


@dataclass
class S3Bucket:
    """What was learned about one bucket while deciding whether to delete it."""

    name: str
    creation_date: datetime | None = None
    region: str = ""
    tags: list[dict[str, str]] = field(default_factory=list)
    error: BaseException | None = None
    is_valid: bool = False
    invalid_reason: str = ""


def get_s3_bucket_region(client: Any, bucket_name: str) -> str:
    """Return the region a bucket lives in."""
    result = client.get_bucket_location(Bucket=bucket_name)
    # The location is empty for buckets in the default region.
    return result.get("LocationConstraint") or _DEFAULT_BUCKET_REGION


def get_s3_bucket_tags(client: Any, bucket_name: str) -> list[dict[str, str]]:
    """Return a bucket's tags; the client must be in the bucket's region."""
    try:
        result = client.get_bucket_tagging(Bucket=bucket_name)
    except Exception as exc:
        if error_code(exc) == "NoSuchTagSet":
            return []
        raise
    return [{"Key": tag["Key"], "Value": tag["Value"]} for tag in result.get("TagSet") or []]


def has_valid_tags(bucket_tags: Sequence[Mapping[str, str]]) -> bool:
    """False if the tags mark the bucket as excluded from deletion."""
    return not any(
        tag.get("Key", "").lower() == AWS_RESOURCE_EXCLUSION_TAG_KEY
        and tag.get("Value", "").lower() == "true"
        for tag in bucket_tags
    )


def get_all_s3_buckets(
    session: Session,
    exclude_after: datetime,
    target_regions: Sequence[str],
    bucket_name_substr: str,
    batch_size: int,
    config: Config | None,
) -> dict[str, list[str]]:
    """Return names of deletable buckets created before exclude_after, per region."""
    if batch_size <= 0:
        raise ValueError(f"Invalid batchsize - {batch_size} - should be > 0")

    client = session.client("s3")
    buckets = client.list_buckets().get("Buckets") or []
    region_clients = get_region_clients(session, target_regions)

    names_per_region: dict[str, list[str]] = {}
    total = len(buckets)
    if total == 0:
        return names_per_region

    total_batches = math.ceil(total / batch_size)
    for batch_number, start in enumerate(range(0, total, batch_size), start=1):
        end = min(start + batch_size, total)
        logger.info(
            "Getting - %d-%d buckets of batch %d/%d", start + 1, end, batch_number, total_batches
        )
        found = get_bucket_names_per_region(
            client, buckets[start:end], exclude_after, region_clients, bucket_name_substr, config
        )
        for region, names in found.items():
            names_per_region.setdefault(region, []).extend(names)
    return names_per_region


def get_region_clients(session: Session, regions: Sequence[str]) -> dict[str, Any]:
    """Build an S3 client for each target region."""
    clients: dict[str, Any] = {}
    for region in regions:
        logger.debug("S3 - creating session - region %s", region)
        clients[region] = session.for_region(region).client("s3")
    return clients


def get_bucket_names_per_region(
    client: Any,
    target_buckets: Sequence[Mapping[str, Any]],
    exclude_after: datetime,
    region_clients: Mapping[str, Any],
    bucket_name_substr: str,
    config: Config | None,
) -> dict[str, list[str]]:
    """Inspect buckets concurrently and return the valid names grouped by region."""
    candidates = []
    for bucket in target_buckets:
        if bucket_name_substr and bucket_name_substr not in bucket["Name"]:
            logger.debug(
                "Skipping - Bucket %s - failed substring filter - %s",
                bucket["Name"],
                bucket_name_substr,
            )
            continue
        candidates.append(bucket)

    names_per_region: dict[str, list[str]] = {}
    if not candidates:
        return names_per_region

    def inspect(bucket: Mapping[str, Any]) -> S3Bucket:
        return get_bucket_info(client, bucket, exclude_after, region_clients, config)

    with ThreadPoolExecutor(max_workers=len(candidates)) as pool:
        for info in pool.map(inspect, candidates):
            if info.error is not None:
                logger.warning(
                    "Skipping - Bucket %s - region - %s - error: %s",
                    info.name,
                    info.region,
                    info.error,
                )
                continue
            if not info.is_valid:
                logger.debug(
                    "Skipping - Bucket %s - region - %s - %s",
                    info.name,
                    info.region,
                    info.invalid_reason,
                )
                continue
            names_per_region.setdefault(info.region, []).append(info.name)
    return names_per_region


def get_bucket_info(
    client: Any,
    bucket: Mapping[str, Any],
    exclude_after: datetime,
    region_clients: Mapping[str, Any],
    config: Config | None,
) -> S3Bucket:
    """Collect a bucket's region and tags and decide whether it may be deleted."""
    info = S3Bucket(name=bucket["Name"], creation_date=bucket.get("CreationDate"))
    config = config or Config()

    try:
        info.region = get_s3_bucket_region(client, info.name)
    except Exception as exc:
        info.error = exc
        return info

    if info.region not in region_clients:
        info.invalid_reason = "Not in target region"
        return info

    try:
        info.tags = get_s3_bucket_tags(region_clients[info.region], info.name)
    except Exception as exc:
        info.error = exc
        return info
    if not has_valid_tags(info.tags):
        info.invalid_reason = "Matched tag filter"
        return info

    if info.creation_date is None or not exclude_after > info.creation_date:
        info.invalid_reason = "Matched CreationDate filter"
        return info

    if not should_include(
        info.name, config.s3.include_rule.names_regex, config.s3.exclude_rule.names_regex
    ):
        info.invalid_reason = "Filtered by config file rules"
        return info

    info.is_valid = True
    return info


def _version_pages(client: Any, bucket_name: str, batch_size: int) -> Iterator[Mapping[str, Any]]:
    request: dict[str, Any] = {"Bucket": bucket_name, "MaxKeys": batch_size}
    while True:
        page = client.list_object_versions(**request)
        yield page
        if not page.get("IsTruncated"):
            return
        request["KeyMarker"] = page.get("NextKeyMarker")
        if page.get("NextVersionIdMarker") is not None:
            request["VersionIdMarker"] = page["NextVersionIdMarker"]


def _object_pages(client: Any, bucket_name: str, batch_size: int) -> Iterator[Mapping[str, Any]]:
    request: dict[str, Any] = {"Bucket": bucket_name, "MaxKeys": batch_size}
    while True:
        page = client.list_objects_v2(**request)
        yield page
        if not page.get("IsTruncated"):
            return
        request["ContinuationToken"] = page.get("NextContinuationToken")


def empty_bucket(client: Any, bucket_name: str, is_versioned: bool, batch_size: int) -> None:
    """Delete every object in a bucket, including versions and deletion markers."""
    if is_versioned:
        for page_id, page in enumerate(_version_pages(client, bucket_name, batch_size), start=1):
            versions = page.get("Versions") or []
            logger.debug(
                "Deleting page %d of object versions (%d objects) from bucket %s",
                page_id, len(versions), bucket_name,
            )
            try:
                delete_object_versions(client, bucket_name, versions)
            except Exception as exc:
                logger.error(
                    "Error deleting objects versions for page %d from bucket %s: %s",
                    page_id, bucket_name, exc,
                )
                raise
            logger.info(
                "[OK] - deleted page %d of object versions (%d objects) from bucket %s",
                page_id, len(versions), bucket_name,
            )

            markers = page.get("DeleteMarkers") or []
            logger.debug(
                "Deleting page %d of deletion markers (%d deletion markers) from bucket %s",
                page_id, len(markers), bucket_name,
            )
            try:
                delete_deletion_markers(client, bucket_name, markers)
            except Exception as exc:
                logger.error(
                    "Error deleting deletion markers for page %d from bucket %s: %s",
                    page_id, bucket_name, exc,
                )
                raise
            logger.info(
                "[OK] - deleted page %d of deletion markers (%d deletion markers) from bucket %s",
                page_id, len(markers), bucket_name,
            )
        return

    for page_id, page in enumerate(_object_pages(client, bucket_name, batch_size), start=1):
        contents = page.get("Contents") or []
        logger.debug(
            "Deleting object page %d (%d objects) from bucket %s",
            page_id, len(contents), bucket_name,
        )
        try:
            delete_objects(client, bucket_name, contents)
        except Exception as exc:
            logger.error(
                "Error deleting objects for page %d from bucket %s: %s", page_id, bucket_name, exc
            )
            raise
        logger.debug(
            "[OK] - deleted object page %d (%d objects) from bucket %s",
            page_id, len(contents), bucket_name,
        )


def _delete_identifiers(client: Any, bucket_name: str, identifiers: list[dict[str, str]]) -> None:
    client.delete_objects(Bucket=bucket_name, Delete={"Objects": identifiers, "Quiet": False})


def delete_objects(client: Any, bucket_name: str, objects: Sequence[Mapping[str, Any]]) -> None:
    """Delete unversioned objects from a bucket."""
    if not objects:
        logger.debug("No objects returned in page")
        return
    _delete_identifiers(client, bucket_name, [{"Key": obj["Key"]} for obj in objects])


def delete_object_versions(
    client: Any, bucket_name: str, object_versions: Sequence[Mapping[str, Any]]
) -> None:
    """Delete specific object versions from a bucket."""
    if not object_versions:
        logger.debug("No object versions returned in page")
        return
    _delete_identifiers(
        client,
        bucket_name,
        [{"Key": obj["Key"], "VersionId": obj["VersionId"]} for obj in object_versions],
    )


def delete_deletion_markers(
    client: Any, bucket_name: str, delete_markers: Sequence[Mapping[str, Any]]
) -> None:
    """Delete deletion markers from a bucket."""
    if not delete_markers:
        logger.debug("No deletion markers returned in page")
        return
    _delete_identifiers(
        client,
        bucket_name,
        [{"Key": obj["Key"], "VersionId": obj["VersionId"]} for obj in delete_markers],
    )


def nuke_all_s3_bucket_objects(client: Any, bucket_name: str, batch_size: int) -> None:
    """Empty a bucket in batches of batch_size objects (1 to 1000)."""
    versioning = client.get_bucket_versioning(Bucket=bucket_name)
    is_versioned = versioning.get("Status") == "Enabled"

    if not 1 <= batch_size <= _MAX_OBJECT_BATCH_SIZE:
        raise ValueError(
            f"Invalid batchsize - {batch_size} - should be between 1 and {_MAX_OBJECT_BATCH_SIZE}"
        )

    logger.info("Emptying bucket %s", bucket_name)
    empty_bucket(client, bucket_name, is_versioned, batch_size)
    logger.info("[OK] - successfully emptied bucket %s", bucket_name)


def nuke_empty_s3_bucket(client: Any, bucket_name: str, verify_bucket_deletion: bool) -> None:
    """Delete an empty bucket, optionally waiting until the deletion is visible."""
    client.delete_bucket(Bucket=bucket_name)
    if not verify_bucket_deletion:
        return

    last_error: BaseException | None = None
    for attempt in range(1, _DELETION_WAIT_ATTEMPTS + 1):
        logger.info(
            "Waiting until bucket (%s) deletion is propagated (attempt %d / %d)",
            bucket_name, attempt, _DELETION_WAIT_ATTEMPTS,
        )
        try:
            client.get_waiter("bucket_not_exists").wait(Bucket=bucket_name)
        except Exception as exc:
            last_error = exc
            logger.warning(
                "Error waiting for bucket (%s) deletion propagation (attempt %d / %d)",
                bucket_name, attempt, _DELETION_WAIT_ATTEMPTS,
            )
            logger.warning("Underlying error was: %s", exc)
        else:
            logger.info("Successfully detected bucket deletion.")
            return
    if last_error is not None:
        raise last_error


def nuke_s3_bucket_policy(client: Any, bucket_name: str) -> None:
    """Remove a bucket's policy so that it cannot block deletion."""
    client.delete_bucket_policy(Bucket=bucket_name)


def nuke_all_s3_buckets(session: Session, bucket_names: Sequence[str], object_batch_size: int) -> int:
    """Empty and delete the given buckets; return how many were deleted.

    Raises BucketDeletionError, carrying the deleted count, if any bucket failed.
    """
    client = session.client("s3")
    if not bucket_names:
        logger.info("No S3 Buckets to nuke in region %s", session.region)
        return 0

    total = len(bucket_names)
    logger.info("Deleting - %d S3 Buckets in region %s", total, session.region)

    errors: list[BaseException] = []
    deleted = 0
    for index, name in enumerate(bucket_names, start=1):
        logger.debug("Deleting - %d/%d - Bucket: %s", index, total, name)
        step = "object deletion"
        try:
            nuke_all_s3_bucket_objects(client, name, object_batch_size)
            step = "bucket policy cleanup"
            nuke_s3_bucket_policy(client, name)
            step = "bucket deletion"
            nuke_empty_s3_bucket(client, name, True)
        except Exception as exc:
            logger.error("[Failed] - %d/%d - Bucket: %s - %s error - %s", index, total, name, step, exc)
            errors.append(exc)
            continue
        logger.info("[OK] - %d/%d - Bucket: %s - deleted", index, total, name)
        deleted += 1

    if errors:
        raise BucketDeletionError(errors, deleted)
    return deleted


@dataclass
class S3Buckets(AwsResources):
    """All S3 buckets selected for deletion."""

    names: list[str] = field(default_factory=list)

    def resource_name(self) -> str:
        return "s3"

    def max_batch_size(self) -> int:
        return 500

    def max_concurrent_get_size(self) -> int:
        """How many buckets to inspect at once."""
        return 100

    def object_max_batch_size(self) -> int:
        """How many objects (key plus version) to delete in one call."""
        return 1000

    def resource_identifiers(self) -> list[str]:
        return self.names

    def nuke(self, session: Session, identifiers: list[str]) -> None:
        total = len(identifiers)
        failure: BucketDeletionError | None = None
        try:
            deleted = nuke_all_s3_buckets(session, identifiers, self.object_max_batch_size())
        except BucketDeletionError as exc:
            deleted = exc.deleted_count
            failure = exc

        if deleted > 0:
            logger.info("[OK] - %d/%d - S3 bucket(s) deleted in %s", deleted, total, session.region)
        if deleted != total:
            logger.error(
                "[Failed] - %d/%d - S3 bucket(s) failed deletion in %s",
                total - deleted, total, session.region,
            )
        if failure is not None:
            raise failure