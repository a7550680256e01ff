"""
Parsing of timed (LRC) lyrics.
"""

import bisect
import re
from typing import NamedTuple

_TIME_TAG = re.compile(r"\[(\d{2}):(\d{2})\.(\d{2,3})\]")


class LyricLine(NamedTuple):
    time_millis: int
    text: str


def parse_lrc(lrc: str | None) -> list[LyricLine]:
    """
    Parses '[mm:ss.xx] text' lines into time-sorted lyric lines.

    Two-digit fractions are hundredths of a second. Lines without a time tag or
    without text are skipped.
    """
    if not lrc:
        return []

    lines = []
    for raw in lrc.splitlines():
        match = _TIME_TAG.search(raw)
        if not match:
            continue
        minutes, seconds, fraction = match.groups()
        millis = int(fraction.ljust(3, "0"))
        time_millis = int(minutes) * 60_000 + int(seconds) * 1000 + millis
        text = _TIME_TAG.sub("", raw, count=1).strip()
        if text:
            lines.append(LyricLine(time_millis, text))
    return sorted(lines, key=lambda line: line.time_millis)


def active_line_index(lines: list[LyricLine], position_millis: int) -> int:
    """Index of the last line starting at or before the position, or -1."""
    times = [line.time_millis for line in lines]
    return bisect.bisect_right(times, position_millis) - 1
