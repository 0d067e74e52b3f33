"""Command-line helpers: duration parsing and destructive-action confirmation."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from cloudsweep.resources import InvalidTimeStringPassedError

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_SEGMENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")
_WARNING = "\nTHE NEXT STEPS ARE DESTRUCTIVE AND COMPLETELY IRREVERSIBLE, PROCEED WITH CAUTION!!!"


class InvalidFlagError(ValueError):
    def __init__(self, name: str, value: str) -> None:
        self.name = name
        self.value = value
        super().__init__(f"Invalid value {value} for flag {name}")


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as "300ms", "1.5h" or "2h45m"."""
    invalid = ValueError(f'time: invalid duration "{value}"')
    rest = value
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise invalid

    limit = (1 << 63) if negative else (1 << 63) - 1
    total = 0
    pos = 0
    while pos < len(rest):
        match = _SEGMENT.match(rest, pos)
        whole, frac, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not frac:
            raise invalid
        if not unit:
            raise ValueError(f'time: missing unit in duration "{value}"')
        scale = _UNITS.get(unit)
        if scale is None:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{value}"')
        total += int(whole or 0) * scale
        if frac:
            total += int(frac) * scale // 10 ** len(frac)
        if total > limit:
            raise invalid
        pos = match.end()

    delta = timedelta(microseconds=total // 1_000)
    return -delta if negative else delta


def parse_duration_param(param_value: str) -> datetime:
    """Return the current UTC time moved back by the given duration."""
    try:
        duration = parse_duration(param_value)
    except ValueError as exc:
        raise InvalidTimeStringPassedError(param_value, exc) from exc
    return datetime.now(timezone.utc) - duration


def confirmation_prompt(prompt: str, max_prompts: int) -> bool:
    """Ask up to max_prompts times for the word 'nuke'; True if it was entered."""
    print(f"\033[1;91m{_WARNING}\033[0m")
    for _ in range(max_prompts):
        answer = input(prompt).strip()
        if answer.lower() == "nuke":
            return True
        print(f"Invalid value '{answer}' was entered.")
    return False