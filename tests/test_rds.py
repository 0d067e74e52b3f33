from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from cloudsweep.rds import (
    DBClusters,
    DBInstances,
    RdsDeleteError,
    get_all_rds_clusters,
    get_all_rds_instances,
    nuke_all_rds_clusters,
    nuke_all_rds_instances,
    wait_until_rds_cluster_deleted,
)
from cloudsweep.resources import Session

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


class ServiceError(Exception):
    def __init__(self, code):
        super().__init__(code)
        self.code = code


class FakeWaiter:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    def wait(self, **kwargs):
        self.client.waits.append((self.name, kwargs))
        if self.client.waiter_error is not None:
            raise self.client.waiter_error


class FakeRdsClient:
    def __init__(self, instances=(), clusters=(), failing=(), waiter_error=None,
                 cluster_lookup_error=None):
        self.instances = list(instances)
        self.clusters = list(clusters)
        self.failing = set(failing)
        self.waiter_error = waiter_error
        self.cluster_lookup_error = cluster_lookup_error
        self.deleted = []
        self.waits = []
        self.lookups = 0

    def describe_db_instances(self):
        return {"DBInstances": self.instances}

    def delete_db_instance(self, **kwargs):
        if kwargs["DBInstanceIdentifier"] in self.failing:
            raise ServiceError("AccessDenied")
        self.deleted.append(kwargs)

    def delete_db_cluster(self, **kwargs):
        if kwargs["DBClusterIdentifier"] in self.failing:
            raise ServiceError("AccessDenied")
        self.deleted.append(kwargs)

    def get_waiter(self, name):
        return FakeWaiter(self, name)

    def describe_db_clusters(self, **kwargs):
        if not kwargs:
            return {"DBClusters": self.clusters}
        self.lookups += 1
        if self.cluster_lookup_error is not None:
            raise self.cluster_lookup_error
        return {"DBClusters": [{"DBClusterIdentifier": kwargs["DBClusterIdentifier"]}]}


def make_session(client):
    return Session(region="us-east-1", client_factory=lambda service, region: client)


def test_get_all_rds_instances_filters_by_creation_time():
    client = FakeRdsClient(instances=[
        {"DBInstanceIdentifier": "old", "InstanceCreateTime": NOW - timedelta(hours=2)},
        {"DBInstanceIdentifier": "new", "InstanceCreateTime": NOW + timedelta(hours=2)},
        {"DBInstanceIdentifier": "creating"},
    ])
    assert get_all_rds_instances(make_session(client), NOW) == ["old"]


def test_nuke_all_rds_instances_empty_does_nothing():
    client = FakeRdsClient()
    assert nuke_all_rds_instances(make_session(client), []) == []
    assert client.deleted == []


def test_nuke_all_rds_instances_skips_failed_deletes():
    client = FakeRdsClient(failing={"b"})
    deleted = nuke_all_rds_instances(make_session(client), ["a", "b", "c"])
    assert deleted == ["a", "c"]
    assert client.deleted[0] == {"DBInstanceIdentifier": "a", "SkipFinalSnapshot": True}
    assert [kw["DBInstanceIdentifier"] for _, kw in client.waits] == ["a", "c"]
    assert {name for name, _ in client.waits} == {"db_instance_deleted"}


def test_nuke_all_rds_instances_raises_wait_error():
    failure = ServiceError("WaiterFailed")
    client = FakeRdsClient(waiter_error=failure)
    with pytest.raises(ServiceError) as info:
        nuke_all_rds_instances(make_session(client), ["a"])
    assert info.value is failure


def test_wait_until_cluster_deleted_returns_when_not_found():
    client = FakeRdsClient(cluster_lookup_error=ServiceError("DBClusterNotFoundFault"))
    wait_until_rds_cluster_deleted(client, "c1")
    assert client.lookups == 1


def test_wait_until_cluster_deleted_raises_other_errors():
    client = FakeRdsClient(cluster_lookup_error=ServiceError("Throttling"))
    with pytest.raises(ServiceError) as info:
        wait_until_rds_cluster_deleted(client, "c1")
    assert info.value.code == "Throttling"


@patch("cloudsweep.rds.time.sleep")
def test_wait_until_cluster_deleted_times_out(sleep):
    client = FakeRdsClient()
    with pytest.raises(RdsDeleteError) as info:
        wait_until_rds_cluster_deleted(client, "stuck")
    assert info.value.name == "stuck"
    assert client.lookups == sleep.call_count


def test_rds_delete_error_message():
    assert str(RdsDeleteError("db1")) == "RDS DB Instance:db1was not deleted"


def test_get_all_rds_clusters_filters_by_creation_time():
    client = FakeRdsClient(clusters=[
        {"DBClusterIdentifier": "old", "ClusterCreateTime": NOW - timedelta(minutes=1)},
        {"DBClusterIdentifier": "new", "ClusterCreateTime": NOW + timedelta(minutes=1)},
    ])
    assert get_all_rds_clusters(make_session(client), NOW) == ["old"]


def test_nuke_all_rds_clusters_deletes_and_waits():
    client = FakeRdsClient(
        failing={"x"}, cluster_lookup_error=ServiceError("DBClusterNotFoundFault")
    )
    deleted = nuke_all_rds_clusters(make_session(client), ["x", "y"])
    assert deleted == ["y"]
    assert client.deleted == [{"DBClusterIdentifier": "y", "SkipFinalSnapshot": True}]
    assert client.lookups == 1


def test_resource_types_describe_themselves():
    instances = DBInstances(["i1", "i2"])
    clusters = DBClusters(["c1"])
    assert instances.resource_name() == "rds"
    assert clusters.resource_name() == "rds"
    assert instances.resource_identifiers() == ["i1", "i2"]
    assert clusters.resource_identifiers() == ["c1"]
    assert instances.max_batch_size() == clusters.max_batch_size() == 200


def test_db_instances_nuke_deletes_identifiers():
    client = FakeRdsClient()
    DBInstances(["i1"]).nuke(make_session(client), ["i1"])
    assert [kw["DBInstanceIdentifier"] for kw in client.deleted] == ["i1"]


def test_db_clusters_nuke_propagates_wait_error():
    client = FakeRdsClient(cluster_lookup_error=ServiceError("Throttling"))
    with pytest.raises(ServiceError):
        DBClusters(["c1"]).nuke(make_session(client), ["c1"])