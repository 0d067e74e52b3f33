"""Matching rules loaded from a YAML config file."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


class ConfigError(ValueError):
    """Raised when a config file cannot be parsed into a Config."""


@dataclass
class FilterRule:
    """A list of name patterns used by an include or exclude rule."""

    names_regex: list[re.Pattern[str]] = field(default_factory=list)


@dataclass
class ResourceType:
    """Include and exclude rules for one kind of resource."""

    include_rule: FilterRule = field(default_factory=FilterRule)
    exclude_rule: FilterRule = field(default_factory=FilterRule)


def _rules() -> Any:
    return field(default_factory=ResourceType)


def _keyed(key: str) -> Any:
    return field(default_factory=ResourceType, metadata={"yaml": key})


@dataclass
class Config:
    """Per-resource matching rules, keyed in YAML by the names below."""

    s3: ResourceType = _keyed("s3")
    iam_users: ResourceType = _keyed("IAMUsers")
    secrets_manager_secrets: ResourceType = _keyed("SecretsManager")
    nat_gateway: ResourceType = _keyed("NatGateway")
    access_analyzer: ResourceType = _keyed("AccessAnalyzer")
    cloudwatch_dashboard: ResourceType = _keyed("CloudWatchDashboard")
    opensearch_domain: ResourceType = _keyed("OpenSearchDomain")
    dynamodb: ResourceType = _keyed("DynamoDB")
    ebs_volume: ResourceType = _keyed("EBSVolume")
    efs_instances: ResourceType = _keyed("EFSInstances")
    lambda_function: ResourceType = _keyed("LambdaFunction")
    elbv2: ResourceType = _keyed("ELBv2")
    ecs_service: ResourceType = _keyed("ECSService")
    ecs_cluster: ResourceType = _keyed("ECSCluster")
    elasticache: ResourceType = _keyed("Elasticache")
    vpc: ResourceType = _keyed("VPC")
    oidc_provider: ResourceType = _keyed("OIDCProvider")
    auto_scaling_group: ResourceType = _keyed("AutoScalingGroup")
    launch_configuration: ResourceType = _keyed("LaunchConfiguration")
    elastic_ip: ResourceType = _keyed("ElasticIP")
    ec2: ResourceType = _keyed("EC2")
    cloudwatch_log_group: ResourceType = _keyed("CloudWatchLogGroup")
    kms_customer_keys: ResourceType = _keyed("KMSCustomerKeys")
    eks_cluster: ResourceType = _keyed("EKSCluster")


def _as_mapping(value: Any, where: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


def _compile(item: Any, where: str) -> re.Pattern[str]:
    if isinstance(item, bool) or not isinstance(item, (str, int, float)):
        raise ConfigError(f"{where}: expected a pattern string, got {type(item).__name__}")
    try:
        return re.compile(str(item))
    except re.error as exc:
        raise ConfigError(f"{where}: invalid pattern {item!r}: {exc}") from exc


def _parse_filter_rule(value: Any, where: str) -> FilterRule:
    patterns = _as_mapping(value, where).get("names_regex")
    if patterns is None:
        return FilterRule()
    if not isinstance(patterns, list):
        raise ConfigError(f"{where}.names_regex: expected a list, got {type(patterns).__name__}")
    return FilterRule([_compile(item, f"{where}.names_regex") for item in patterns])


def _parse_resource_type(value: Any, where: str) -> ResourceType:
    data = _as_mapping(value, where)
    return ResourceType(
        include_rule=_parse_filter_rule(data.get("include"), f"{where}.include"),
        exclude_rule=_parse_filter_rule(data.get("exclude"), f"{where}.exclude"),
    )


def _parse_config(document: Any) -> Config:
    data = _as_mapping(document, "config")
    values = {
        f.name: _parse_resource_type(data.get(f.metadata["yaml"]), f.metadata["yaml"])
        for f in fields(Config)
    }
    return Config(**values)


def get_config(file_path: str | Path) -> Config:
    """Read the YAML file at file_path and parse it into a Config."""
    text = Path(file_path).resolve().read_text()
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"could not parse {file_path}: {exc}") from exc
    return _parse_config(document)


def _matches(name: str, patterns: Iterable[re.Pattern[str]]) -> bool:
    return any(pattern.search(name) for pattern in patterns)


def should_include(
    name: str,
    include_res: Iterable[re.Pattern[str]] | None,
    exclude_res: Iterable[re.Pattern[str]] | None,
) -> bool:
    """Decide whether a resource name passes the include and exclude rules."""
    include = list(include_res or ())
    exclude = list(exclude_res or ())
    if not include and not exclude:
        return True
    if _matches(name, exclude):
        return False
    if not include:
        return True
    return _matches(name, include)