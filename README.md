# cloudsweep

cloudsweep is a library for finding cloud resources that have outlived their
purpose and deleting them. It covers S3 buckets, RDS instances and clusters,
EBS snapshots, SQS queues, Secrets Manager secrets, OpenSearch domains and
transit gateways (gateways, route tables and VPC attachments).

**Deleting resources is destructive and cannot be undone.** Each service
module has a listing function that shows what would be selected; call it and
review its output before calling the matching deletion function.

## Sessions and clients

Every listing and deletion function takes a `cloudsweep.resources.Session`.
A session is a region plus a client factory:

```python
from cloudsweep.resources import Session

session = Session(region="eu-west-1", client_factory=make_client)
```

`make_client(service_name, region)` must return a client object for the named
service (`"s3"`, `"rds"`, `"ec2"`, `"sqs"`, `"secretsmanager"`,
`"opensearch"`) whose methods take keyword arguments and return dictionaries,
for example `list_buckets()`, `describe_db_instances()` or
`delete_queue(QueueUrl=...)`. cloudsweep does not ship such clients; you
provide them. `Session.for_region(region)` returns a session for another
region that shares the same factory.

Service errors are recognised by `cloudsweep.resources.error_code`, which
reads a `code` attribute or a `response["Error"]["Code"]` entry from an
exception.

## What it selects

- **Age.** Resources are selected only when created before a cut-off time
  (`exclude_after`). Secrets use their last-access time, or their creation
  time if never accessed. SQS queues are compared in whole seconds.
- **State.** Transit gateways, route tables and attachments that are
  `deleted` or `deleting` are skipped; default route tables are skipped since
  they go with their gateway. Only OpenSearch domains that are created and
  not deleted are returned by `get_all_active_opensearch_domains`.
- **Region.** `cloudsweep.s3.get_all_s3_buckets` keeps only buckets in the
  target regions and returns their names grouped by region.
- **Tags.** An S3 bucket tagged `cloud-nuke-excluded` = `true` (compared
  case-insensitively) is never selected.
- **Name rules.** A YAML file can include or exclude resources by regular
  expression. The rules are applied to S3 buckets, Secrets Manager secrets and
  OpenSearch domains.

## Name rules file

```yaml
s3:
  include:
    names_regex:
      - ^alb-.*-access-logs-.*
  exclude:
    names_regex:
      - .*-prod-.*
SecretsManager:
  exclude:
    names_regex:
      - ^keep-
OpenSearchDomain:
  include:
    names_regex:
      - ^scratch-
```

`cloudsweep.config.get_config(path)` returns a `Config` with one
`ResourceType` per section (`include_rule` and `exclude_rule`, each a
`FilterRule` holding compiled `names_regex` patterns). Recognised sections are
`s3`, `IAMUsers`, `SecretsManager`, `NatGateway`, `AccessAnalyzer`,
`CloudWatchDashboard`, `OpenSearchDomain`, `DynamoDB`, `EBSVolume`,
`EFSInstances`, `LambdaFunction`, `ELBv2`, `ECSService`, `ECSCluster`,
`Elasticache`, `VPC`, `OIDCProvider`, `AutoScalingGroup`,
`LaunchConfiguration`, `ElasticIP`, `EC2`, `CloudWatchLogGroup`,
`KMSCustomerKeys` and `EKSCluster`; unknown sections are ignored. Malformed
YAML, a wrongly shaped section or an invalid pattern raises
`cloudsweep.config.ConfigError`; a missing file raises `OSError`.

`cloudsweep.config.should_include(name, include_res, exclude_res)` decides:

1. With no include and no exclude rules, every name is kept.
2. A name matched anywhere by an exclude pattern is dropped.
3. With only exclude rules, every other name is kept.
4. Otherwise a name is kept only if an include pattern matches it.

## Example

```python
from cloudsweep.cli import parse_duration_param
from cloudsweep.config import get_config
from cloudsweep.sqs import get_all_sqs_queues, nuke_all_sqs_queues

config = get_config("rules.yaml")
exclude_after = parse_duration_param("24h")   # now (UTC) minus one day

urls = get_all_sqs_queues(session, "eu-west-1", exclude_after)
print(urls)
deleted = nuke_all_sqs_queues(session, urls)
```

`cloudsweep.cli.parse_duration` accepts durations such as `300ms`, `1.5h` or
`2h45m` with the units `ns`, `us` (or `µs`), `ms`, `s`, `m` and `h`, an
optional sign, and a bare `0`. `parse_duration_param` raises
`InvalidTimeStringPassedError` for an empty or malformed value.

## Service modules

| Module | Listing | Deletion | Collection class |
| --- | --- | --- | --- |
| `cloudsweep.s3` | `get_all_s3_buckets` | `nuke_all_s3_buckets` | `S3Buckets` |
| `cloudsweep.rds` | `get_all_rds_instances`, `get_all_rds_clusters` | `nuke_all_rds_instances`, `nuke_all_rds_clusters` | `DBInstances`, `DBClusters` |
| `cloudsweep.snapshot` | `get_all_snapshots` | `nuke_all_snapshots` | `Snapshots` |
| `cloudsweep.sqs` | `get_all_sqs_queues` | `nuke_all_sqs_queues` | `SqsQueue` |
| `cloudsweep.secrets_manager` | `get_all_secrets_manager_secrets` | `nuke_all_secrets_manager_secrets` | `SecretsManagerSecrets` |
| `cloudsweep.opensearch` | `get_all_active_opensearch_domains` | `nuke_all_opensearch_domains` | `OpenSearchDomains` |
| `cloudsweep.transit_gateway` | `get_all_transit_gateway_instances`, `get_all_transit_gateway_route_tables`, `get_all_transit_gateway_vpc_attachments` | `nuke_all_transit_gateway_instances`, `nuke_all_transit_gateway_route_tables`, `nuke_all_transit_gateway_vpc_attachments` | `TransitGateways`, `TransitGatewaysRouteTables`, `TransitGatewaysVpcAttachment` |

How deletions report failures:

- **RDS, snapshots, SQS, transit gateways**: a failed delete request is logged
  and skipped; the function returns the identifiers that were deleted. RDS
  functions then wait for each deletion and raise if the wait fails (clusters
  are polled for up to 15 minutes, then `RdsDeleteError`). Deleting VPC
  attachments sleeps 180 seconds afterwards.
- **S3**: each bucket is emptied in batches of 1 to 1000 objects (versions and
  deletion markers included), its policy removed, then the bucket deleted and
  its disappearance awaited. The count of deleted buckets is returned; if any
  failed, `BucketDeletionError` is raised carrying the errors and
  `deleted_count`.
- **Secrets Manager, OpenSearch**: deletions run concurrently and any failures
  are raised together as `cloudsweep.resources.AggregateError`. OpenSearch
  refuses more than 100 domains at once (`TooManyOpenSearchDomainsError`) and
  polls until the domains are gone, raising `TimeoutError` after about five
  minutes.

Each collection class is an `AwsResources` with `resource_name()`,
`resource_identifiers()`, `max_batch_size()` and `nuke(session, identifiers)`.
`cloudsweep.resources.AwsRegionResource` groups several of them and answers
`map_resource_name_to_identifiers()`, `count_of_resource_type(name)`,
`resource_type_present(name)` and `identifiers_for_resource_type(name)`;
`AwsAccountResources.get_region(region)` returns one region's group, or an
empty one.

Before a destructive step, `cloudsweep.cli.confirmation_prompt(prompt,
max_prompts)` prints a warning and asks for the word `nuke`, returning `True`
once it is typed and `False` after `max_prompts` wrong answers.

Progress is logged through the standard `logging` module under the
`cloudsweep` logger.

## What it does not do

- There is no command-line program; cloudsweep is used from Python.
- It does not discover enabled regions, build a query across regions and
  resource kinds, or nuke a whole account in one call; you choose the regions
  and call each service module yourself.
- It does not tag OpenSearch domains with a first-seen time or read such a
  tag. `should_include_opensearch_domain(domain, first_seen_time,
  exclude_after, config)` takes the first-seen time from you.
- It does not create service clients; the session's client factory does.

## Running the tests

Install the `test` extra and run `pytest` from the project root.