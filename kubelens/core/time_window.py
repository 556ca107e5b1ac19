"""Shared time window parsing utilities."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from decimal import Decimal
from fractions import Fraction
from typing import Optional, Tuple

from kubelens.core.errors import InvalidSinceError
from kubelens.core.models import SinceSpec

NANOS_PER_SECOND = 1_000_000_000

# Durations are int64 nanoseconds (kubectl --since range, about 292 years).
MAX_DURATION_NS = (1 << 63) - 1

# Unit -> nanoseconds. Same unit set as Go's time.ParseDuration (kubectl --since).
_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek mu
    "ms": 1_000_000,
    "s": NANOS_PER_SECOND,
    "m": 60 * NANOS_PER_SECOND,
    "h": 3600 * NANOS_PER_SECOND,
}

_COMPONENT_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

# Absolute formats, tried in order; the first that consumes the whole string wins.
_SINCE_FORMATS: Tuple[str, ...] = (
    "%Y-%m-%dT%H:%M:%S%z",  # RFC3339
    "%Y-%m-%dT%H:%M:%S.%f%z",  # RFC3339 with fractional seconds
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)

# strptime's %f takes at most 6 digits; RFC3339 allows nanoseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _check_range(ns: int, raw: str) -> int:
    if abs(ns) > MAX_DURATION_NS:
        raise ValueError(f"invalid duration {raw!r}: out of range")
    return ns


def parse_go_duration(s: str) -> int:
    """
    Parse a compound duration string such as "300ms", "1.5h" or "2h45m" into
    integer nanoseconds.

    Grammar: optional sign, then one or more <decimal><unit> components. A bare "0"
    is accepted. Components are summed exactly; a fractional nanosecond left over
    in a component is truncated. Raises ValueError on anything else, including
    totals outside the int64 nanosecond range.
    """
    raw = s
    if not s:
        raise ValueError(f"invalid duration {raw!r}")

    sign = 1
    if s[0] in "+-":
        sign = -1 if s[0] == "-" else 1
        s = s[1:]

    if s == "0":
        return 0
    if not s:
        raise ValueError(f"invalid duration {raw!r}")

    total = 0
    pos = 0
    while pos < len(s):
        m = _COMPONENT_RE.match(s, pos)
        if not m:
            raise ValueError(f"invalid duration {raw!r}")
        total += int(Fraction(Decimal(m.group(1))) * _UNITS[m.group(2)])
        _check_range(total, raw)
        pos = m.end()

    return sign * total


def parse_duration(s: str) -> int:
    """
    parse_go_duration plus a day suffix: "Nd" means N*24 hours ("1d", "1.5d").

    The day suffix only applies to the whole string; "1d2h" is not a duration.
    """
    if s.endswith("d"):
        try:
            hours = parse_go_duration(s[:-1] + "h")
        except ValueError:
            pass
        else:
            return _check_range(hours * 24, s)
    return parse_go_duration(s)


def parse_timestamp(s: str) -> Optional[datetime]:
    """Parse an absolute timestamp in one of the accepted layouts (naive -> UTC)."""
    for fmt in _SINCE_FORMATS:
        candidate = _FRACTION_RE.sub(r"\1", s) if "%f" in fmt else s
        try:
            dt = datetime.strptime(candidate, fmt)
        except ValueError:
            continue
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    return None


def parse_since(raw: str) -> SinceSpec:
    """
    Parse a "since" value for log queries.

    Duration formats (relative to now): "5m", "1h", "2h30m", "1d".
    Absolute formats: "2023-01-01T10:00:00Z", "2023-01-01T10:00:00.123+02:00",
    "2023-01-01T10:00:00", "2023-01-01 10:00:00", "2023-01-01".

    Returns:
        SinceSpec with exactly one of since_seconds / since_time set, or neither for
        empty input.

    Raises:
        InvalidSinceError: the value is neither a duration nor a timestamp.
    """
    if not raw:
        return SinceSpec()

    try:
        duration_ns = parse_duration(raw)
    except ValueError:
        pass
    else:
        return SinceSpec(since_seconds=duration_ns // NANOS_PER_SECOND)

    ts = parse_timestamp(raw)
    if ts is not None:
        return SinceSpec(since_time=ts)

    raise InvalidSinceError(raw)


def since_seconds_from(spec: SinceSpec, now: Optional[datetime] = None) -> Optional[int]:
    """
    Collapse a SinceSpec into a seconds value for APIs that only accept relative
    windows (CoreV1Api.read_namespaced_pod_log has no sinceTime parameter).

    Timestamps in the future collapse to 1 second; the API rejects 0.
    """
    if spec.since_seconds is not None:
        return spec.since_seconds
    if spec.since_time is None:
        return None
    now = now or datetime.now(timezone.utc)
    delta = math.ceil((now - spec.since_time).total_seconds())
    return max(1, delta)
