"""Duration string parsing.

Poll intervals are written as compact duration strings such as ``"5s"``,
``"1m30s"`` or ``"250ms"``. A sequence of decimal numbers, each with a
unit suffix, is summed. A bare ``"0"`` is the only unitless form accepted.
"""

from __future__ import annotations

from datetime import timedelta
import re

from core.errors import ConfluxConfigError

_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_COMPONENT_PATTERN = re.compile(r"(\d*\.?\d*)([^\d.]*)")


def parse_duration(raw_value: str) -> timedelta:
    """Parse a duration string into a timedelta.

    Args:
        raw_value: Duration text, for example ``"1h15m"``.

    Returns:
        Parsed duration (may be zero or negative, callers validate range).

    Raises:
        ConfluxConfigError: If the text is not a valid duration.
    """
    text = raw_value.strip()
    body = text
    sign = 1.0
    if body[:1] in ("-", "+"):
        sign = -1.0 if body[0] == "-" else 1.0
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise _invalid_duration(raw_value)
    total_seconds = 0.0
    position = 0
    while position < len(body):
        match = _COMPONENT_PATTERN.match(body, position)
        if match is None or match.end() == position:
            raise _invalid_duration(raw_value)
        number_text, unit = match.group(1), match.group(2)
        if number_text in ("", "."):
            raise _invalid_duration(raw_value)
        if not unit:
            raise ConfluxConfigError(
                f"Invalid duration '{raw_value}': missing unit. "
                "Use a suffix such as ms, s, m or h (for example '30s')."
            )
        if unit not in _UNIT_SECONDS:
            raise ConfluxConfigError(
                f"Invalid duration '{raw_value}': unknown unit '{unit}'. "
                f"Supported units: {', '.join(_UNIT_SECONDS)}."
            )
        total_seconds += float(number_text) * _UNIT_SECONDS[unit]
        position = match.end()
    return timedelta(seconds=sign * total_seconds)


def _invalid_duration(raw_value: str) -> ConfluxConfigError:
    return ConfluxConfigError(
        f"Invalid duration '{raw_value}': expected numbers with units such as '5s' or '1m30s'."
    )
