"""Duration codec for catalog items.

Detail responses carry durations in compact ISO-8601 notation (``PT4M46S``);
cached records carry the formatted clock string (``04:46``). Both forms parse
back to a :class:`Duration`. Anything else parses to :data:`ZERO_DURATION`,
which marks the item as unusable rather than raising.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

ZERO_SENTINEL = "00"

COMPACT_DURATION_PATTERN = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)
CLOCK_DURATION_PATTERN = re.compile(
    r"^(?:(?P<hours>\d{1,3}):)?(?P<minutes>\d{1,2}):(?P<seconds>\d{1,2})$"
)


@dataclass(frozen=True)
class Duration:
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @property
    def total_seconds(self) -> int:
        return self.hours * 3_600 + self.minutes * 60 + self.seconds


ZERO_DURATION = Duration()


def parse_duration(raw_value: object) -> Duration:
    if not isinstance(raw_value, str):
        return ZERO_DURATION
    text = raw_value.strip().upper()
    if not text:
        return ZERO_DURATION

    compact = COMPACT_DURATION_PATTERN.match(text)
    if compact is not None and text not in {"P", "PT"}:
        days = int(compact.group("days") or 0)
        hours = int(compact.group("hours") or 0)
        minutes = int(compact.group("minutes") or 0)
        seconds = int(compact.group("seconds") or 0)
        return _normalized(days * 86_400 + hours * 3_600 + minutes * 60 + seconds)

    clock = CLOCK_DURATION_PATTERN.match(text)
    if clock is not None:
        hours = int(clock.group("hours") or 0)
        minutes = int(clock.group("minutes"))
        seconds = int(clock.group("seconds"))
        return _normalized(hours * 3_600 + minutes * 60 + seconds)

    return ZERO_DURATION


def format_duration(duration: Duration) -> str:
    if not is_valid_duration(duration):
        return ZERO_SENTINEL
    if duration.hours == 0:
        return f"{duration.minutes:02d}:{duration.seconds:02d}"
    return f"{duration.hours:02d}:{duration.minutes:02d}:{duration.seconds:02d}"


def is_valid_duration(duration: Duration) -> bool:
    return duration.total_seconds > 0


def formatted_duration(raw_value: object) -> str:
    return format_duration(parse_duration(raw_value))


def format_compact_count(raw_value: str) -> str:
    """Abbreviate a decimal count string: ``"1500"`` -> ``"1.5K"``.

    Counts at or below one thousand are rendered as whole numbers; anything
    that is not a plain number renders as an empty string.
    """
    try:
        value = float(raw_value.strip())
    except (AttributeError, ValueError):
        return ""
    if not math.isfinite(value):
        return ""

    if value > 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value > 1_000:
        return f"{value / 1_000:.1f}K"
    return f"{value:.0f}"


def _normalized(total_seconds: int) -> Duration:
    if total_seconds <= 0:
        return ZERO_DURATION
    hours, remainder = divmod(total_seconds, 3_600)
    minutes, seconds = divmod(remainder, 60)
    return Duration(hours=hours, minutes=minutes, seconds=seconds)
