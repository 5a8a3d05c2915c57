"""Data models for raw engine segments and persisted transcript records."""

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Iterable, List, Tuple, Union

_NS_PER_US = 1_000
_NS_PER_MS = 1_000_000
_NS_PER_S = 1_000_000_000

_UNIT_NS = {
    "ns": 1,
    "us": _NS_PER_US,
    "µs": _NS_PER_US,
    "μs": _NS_PER_US,
    "ms": _NS_PER_MS,
    "s": _NS_PER_S,
    "m": 60 * _NS_PER_S,
    "h": 3600 * _NS_PER_S,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


@dataclass(frozen=True)
class RawSegment:
    """A segment exactly as the speech engine produced it."""
    index: int         # 1-based, in engine output order
    start: timedelta
    stop: timedelta
    text: str


@dataclass
class TranscriptRecord:
    """A transcript segment in the shape it is stored under."""
    index: int
    start_time: str    # Duration string, e.g. "1m30.5s"
    end_time: str
    text: str
    yt_link: str = ""  # Grouping key, set by the repository

    def to_mapping(self) -> Dict[str, Union[int, str]]:
        return {
            "index": self.index,
            "text": self.text,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }


def _nanoseconds(duration: timedelta) -> int:
    # timedelta resolution is one microsecond
    return (duration // timedelta(microseconds=1)) * _NS_PER_US


def _split_fraction(value: int, precision: int) -> Tuple[int, str]:
    """Split ``value`` into a whole part and a trimmed ".ddd" fraction."""
    whole, fraction = divmod(value, 10 ** precision)
    if not fraction:
        return whole, ""
    return whole, "." + str(fraction).rjust(precision, "0").rstrip("0")


def format_duration(duration: timedelta) -> str:
    """
    Render a duration in its short human-readable form.

    Examples: "0s", "250ms", "5s", "1.5s", "1m30s", "1h0m0s".
    """
    ns = _nanoseconds(duration)
    sign = "-" if ns < 0 else ""
    ns = abs(ns)

    if ns < _NS_PER_S:
        if ns == 0:
            return "0s"
        if ns < _NS_PER_US:
            return f"{sign}{ns}ns"
        if ns < _NS_PER_MS:
            whole, fraction = _split_fraction(ns, 3)
            return f"{sign}{whole}{fraction}µs"
        whole, fraction = _split_fraction(ns, 6)
        return f"{sign}{whole}{fraction}ms"

    seconds, fraction = _split_fraction(ns, 9)
    minutes, seconds = divmod(seconds, 60)
    text = f"{seconds}{fraction}s"
    if minutes:
        hours, minutes = divmod(minutes, 60)
        text = f"{minutes}m{text}"
        if hours:
            text = f"{hours}h{text}"
    return sign + text


def parse_duration(text: str) -> timedelta:
    """Inverse of :func:`format_duration`."""
    value = text.strip()
    sign = 1
    if value[:1] in ("-", "+"):
        sign = -1 if value[0] == "-" else 1
        value = value[1:]
    if value == "0":
        return timedelta(0)
    if not value:
        raise ValueError(f"Invalid duration: {text!r}")

    total_ns = 0.0
    position = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != position:
            raise ValueError(f"Invalid duration: {text!r}")
        total_ns += float(match.group(1)) * _UNIT_NS[match.group(2)]
        position = match.end()
    if position != len(value):
        raise ValueError(f"Invalid duration: {text!r}")
    return timedelta(microseconds=sign * round(total_ns / _NS_PER_US))


def srt_timestamp(duration: timedelta) -> str:
    """Format a duration as an SRT timestamp: HH:MM:SS,mmm."""
    millis = duration // timedelta(milliseconds=1)
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def to_records(segments: Iterable[RawSegment], yt_link: str = "") -> List[TranscriptRecord]:
    """Convert raw segments to transcript records, one for one, in order."""
    return [
        TranscriptRecord(
            index=segment.index,
            start_time=format_duration(segment.start),
            end_time=format_duration(segment.stop),
            text=segment.text,
            yt_link=yt_link,
        )
        for segment in segments
    ]


def records_to_maps(records: Iterable[TranscriptRecord]) -> List[Dict[str, Union[int, str]]]:
    return [record.to_mapping() for record in records]
