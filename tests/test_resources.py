from dataclasses import dataclass, field

import pytest

from cloudsweep.resources import (
    AggregateError,
    AwsAccountResources,
    AwsRegionResource,
    AwsResources,
    CouldNotDetermineEnabledRegionsError,
    CouldNotSelectRegionError,
    InvalidResourceTypesSuppliedError,
    InvalidTimeStringPassedError,
    QueryCreationError,
    ResourceInspectionError,
    ResourceTypeAndExcludeFlagsBothPassedError,
    Session,
    error_code,
)


@dataclass
class _Fake(AwsResources):
    name: str
    ids: list = field(default_factory=list)

    def resource_name(self):
        return self.name

    def resource_identifiers(self):
        return self.ids

    def max_batch_size(self):
        return 10

    def nuke(self, session, identifiers):
        self.ids = [i for i in self.ids if i not in identifiers]


def _region():
    return AwsRegionResource(
        [
            _Fake("ec2", ["i-a", "i-b"]),
            _Fake("s3", []),
            _Fake("ec2", ["i-c"]),
            _Fake("sqs", ["q-1"]),
        ]
    )


def test_map_merges_same_name_and_skips_empty():
    mapping = _region().map_resource_name_to_identifiers()
    assert mapping == {"ec2": ["i-a", "i-b", "i-c"], "sqs": ["q-1"]}


def test_count_is_case_insensitive_for_query():
    region = _region()
    assert region.count_of_resource_type("EC2") == 3
    assert region.count_of_resource_type("s3") == 0


def test_resource_type_present():
    region = _region()
    assert region.resource_type_present("sqs")
    assert not region.resource_type_present("s3")
    assert not region.resource_type_present("rds")


def test_identifiers_for_resource_type():
    region = _region()
    assert region.identifiers_for_resource_type("Sqs") == ["q-1"]
    assert region.identifiers_for_resource_type("missing") == []


def test_abstract_resources_cannot_be_built():
    with pytest.raises(TypeError):
        AwsResources()


def test_nuke_through_interface():
    fake = _Fake("ec2", ["i-a", "i-b"])
    region = AwsRegionResource([fake])
    fake.nuke(None, ["i-a"])
    assert region.identifiers_for_resource_type("ec2") == ["i-b"]
    assert region.count_of_resource_type("ec2") == 1


def test_account_get_region():
    region = _region()
    account = AwsAccountResources({"us-east-1": region})
    assert account.get_region("us-east-1") is region
    assert account.get_region("eu-west-3") == AwsRegionResource()


def test_session_client_and_for_region():
    calls = []

    def factory(service, region):
        calls.append((service, region))
        return (service, region)

    session = Session("us-east-1", factory)
    assert session.client("s3") == ("s3", "us-east-1")
    other = session.for_region("eu-west-3")
    assert other.client("sqs") == ("sqs", "eu-west-3")
    assert session.region == "us-east-1"
    assert calls == [("s3", "us-east-1"), ("sqs", "eu-west-3")]


def test_error_code_from_attribute():
    class CodedError(Exception):
        code = "InvalidAction"

    assert error_code(CodedError()) == "InvalidAction"


def test_error_code_from_response():
    class ResponseError(Exception):
        response = {"Error": {"Code": "NoSuchTagSet"}}

    assert error_code(ResponseError()) == "NoSuchTagSet"


def test_error_code_absent():
    assert error_code(ValueError("plain")) is None


def test_aggregate_error_keeps_errors():
    first, second = ValueError("first"), RuntimeError("second")
    error = AggregateError([first, second])
    assert error.errors == [first, second]
    assert "* first" in str(error)
    assert "* second" in str(error)


def test_invalid_resource_types_message():
    error = InvalidResourceTypesSuppliedError(["xyz", "abc"])
    assert error.invalid_types == ["xyz", "abc"]
    assert "xyz abc" in str(error)
    assert "Try --list-resource-types to get a list of valid resource types." in str(error)


def test_both_flags_message():
    assert str(ResourceTypeAndExcludeFlagsBothPassedError()) == (
        "You can not specify both --resource-type and --exclude-resource-type"
    )


def test_wrapping_errors_keep_underlying():
    cause = ValueError("boom")
    for cls in (
        QueryCreationError,
        ResourceInspectionError,
        CouldNotSelectRegionError,
        CouldNotDetermineEnabledRegionsError,
    ):
        error = cls(cause)
        assert error.underlying is cause
        assert str(error).endswith("Original error: boom")


def test_invalid_time_string_message():
    error = InvalidTimeStringPassedError("soon", ValueError("bad"))
    assert error.entry == "soon"
    assert str(error).startswith("Could not parse soon as a valid time duration.")