"""Resource collections, sessions and the errors shared by all resource kinds."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

logger = logging.getLogger("cloudsweep")

ClientFactory = Callable[[str, "str | None"], Any]


def error_code(error: BaseException) -> str | None:
    """Return the service error code carried by an exception, if any."""
    code = getattr(error, "code", None)
    if isinstance(code, str):
        return code
    response = getattr(error, "response", None)
    if isinstance(response, Mapping):
        details = response.get("Error")
        if isinstance(details, Mapping):
            code = details.get("Code")
            if isinstance(code, str):
                return code
    return None


@dataclass(frozen=True)
class Session:
    """A region plus a factory that builds service clients for it."""

    region: str | None
    client_factory: ClientFactory

    def client(self, service_name: str) -> Any:
        """Build a client for service_name in this session's region."""
        return self.client_factory(service_name, self.region)

    def for_region(self, region: str) -> Session:
        """Return a session for another region sharing the same factory."""
        return replace(self, region=region)


class AwsResources(ABC):
    """A kind of resource found in a region, with the identifiers to delete."""

    @abstractmethod
    def resource_name(self) -> str:
        """The short name of the resource kind."""

    @abstractmethod
    def resource_identifiers(self) -> list[str]:
        """Identifiers of the resources found."""

    @abstractmethod
    def max_batch_size(self) -> int:
        """How many resources to delete in one call."""

    @abstractmethod
    def nuke(self, session: Session, identifiers: list[str]) -> None:
        """Delete the given resources, raising on failure."""


@dataclass
class AwsRegionResource:
    """All resource kinds found in one region."""

    resources: list[AwsResources] = field(default_factory=list)

    def map_resource_name_to_identifiers(self) -> dict[str, list[str]]:
        """Map each resource kind's name to all identifiers found for it."""
        mapping: dict[str, list[str]] = {}
        for resource in self.resources:
            identifiers = resource.resource_identifiers()
            if identifiers:
                mapping.setdefault(resource.resource_name(), []).extend(identifiers)
        return mapping

    def count_of_resource_type(self, resource_type: str) -> int:
        """Number of identifiers found for the given resource kind."""
        return len(self.identifiers_for_resource_type(resource_type))

    def resource_type_present(self, resource_type: str) -> bool:
        """Whether any resource of the given kind was found."""
        return self.count_of_resource_type(resource_type) > 0

    def identifiers_for_resource_type(self, resource_type: str) -> list[str]:
        """Identifiers found for the given resource kind, or an empty list."""
        return self.map_resource_name_to_identifiers().get(resource_type.lower(), [])


@dataclass
class AwsAccountResources:
    """Resources found in an account, keyed by region."""

    resources: dict[str, AwsRegionResource] = field(default_factory=dict)

    def get_region(self, region: str) -> AwsRegionResource:
        """Resources of a region, or an empty collection if none were found."""
        return self.resources.get(region, AwsRegionResource())


class AggregateError(Exception):
    """Several errors collected from independent operations."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors = list(errors)
        super().__init__(self._describe())

    def _describe(self) -> str:
        count = len(self.errors)
        noun = "error" if count == 1 else "errors"
        points = "".join(f"\t* {error}\n" for error in self.errors)
        return f"{count} {noun} occurred:\n{points}\n"


class InvalidResourceTypesSuppliedError(ValueError):
    def __init__(self, invalid_types: Iterable[str]) -> None:
        self.invalid_types = list(invalid_types)
        super().__init__(
            f"Invalid resourceTypes [{' '.join(self.invalid_types)}] specified: "
            "Try --list-resource-types to get a list of valid resource types."
        )


class ResourceTypeAndExcludeFlagsBothPassedError(ValueError):
    def __init__(self) -> None:
        super().__init__("You can not specify both --resource-type and --exclude-resource-type")


class InvalidTimeStringPassedError(ValueError):
    def __init__(self, entry: str, underlying: BaseException) -> None:
        self.entry = entry
        self.underlying = underlying
        super().__init__(
            f"Could not parse {entry} as a valid time duration. Underlying error: {underlying}"
        )


class QueryCreationError(Exception):
    def __init__(self, underlying: BaseException) -> None:
        self.underlying = underlying
        super().__init__(
            "Error forming a cloud-nuke Query with supplied parameters. "
            f"Original error: {underlying}"
        )


class ResourceInspectionError(Exception):
    def __init__(self, underlying: BaseException) -> None:
        self.underlying = underlying
        super().__init__(
            "Error encountered when querying for account resources. "
            f"Original error: {underlying}"
        )


class CouldNotSelectRegionError(Exception):
    def __init__(self, underlying: BaseException) -> None:
        self.underlying = underlying
        super().__init__(
            "Unable to determine target region set. Please double check your combination "
            f"of target and excluded regions. Original error: {underlying}"
        )


class CouldNotDetermineEnabledRegionsError(Exception):
    def __init__(self, underlying: BaseException) -> None:
        self.underlying = underlying
        super().__init__(
            f"Unable to determine enabled regions in target account. Original error: {underlying}"
        )