from datetime import datetime, timedelta, timezone
from unittest import mock

import pytest

from cloudsweep.cli import (
    InvalidFlagError,
    confirmation_prompt,
    parse_duration,
    parse_duration_param,
)
from cloudsweep.resources import InvalidTimeStringPassedError


def test_parse_duration_param_one_hour_ago():
    before = datetime.now(timezone.utc) - timedelta(hours=1)
    then = parse_duration_param("1h")
    after = datetime.now(timezone.utc) - timedelta(hours=1)
    assert before <= then <= after


def test_parse_duration_param_default_is_now():
    before = datetime.now(timezone.utc)
    then = parse_duration_param("0s")
    assert before <= then <= datetime.now(timezone.utc)


def test_parse_duration_param_invalid_format():
    with pytest.raises(InvalidTimeStringPassedError) as info:
        parse_duration_param("")
    assert info.value.entry == ""


@pytest.mark.parametrize(
    "text,expected",
    [
        ("0", timedelta(0)),
        ("0s", timedelta(0)),
        ("10m", timedelta(minutes=10)),
        ("8h", timedelta(hours=8)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("1.5h", timedelta(minutes=90)),
        ("-1h", timedelta(hours=-1)),
        ("+2s", timedelta(seconds=2)),
        ("300ms", timedelta(milliseconds=300)),
        ("5us", timedelta(microseconds=5)),
        (".5s", timedelta(milliseconds=500)),
    ],
)
def test_parse_duration_values(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "1", "abc", "1x", ".s", "-", "1h2", "99999999999999h"])
def test_parse_duration_errors(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_invalid_flag_error_message():
    error = InvalidFlagError("older-than", "soon")
    assert str(error) == "Invalid value soon for flag older-than"


def test_confirmation_prompt_accepts_nuke_any_case():
    with mock.patch("builtins.input", side_effect=["NuKe"]):
        assert confirmation_prompt("confirm: ", 2) is True


def test_confirmation_prompt_retries_then_accepts(capsys):
    with mock.patch("builtins.input", side_effect=["yes", "nuke"]) as fake_input:
        assert confirmation_prompt("confirm: ", 2) is True
    assert fake_input.call_count == 2
    assert "Invalid value 'yes' was entered." in capsys.readouterr().out


def test_confirmation_prompt_gives_up_after_max(capsys):
    with mock.patch("builtins.input", side_effect=["no", "nope", "nuke"]) as fake_input:
        assert confirmation_prompt("confirm: ", 2) is False
    assert fake_input.call_count == 2
    out = capsys.readouterr().out
    assert "PROCEED WITH CAUTION" in out
    assert "Invalid value 'nope' was entered." in out