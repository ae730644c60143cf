"""Opening-hours evaluation for compact weekly schedules.

Understands the subset of the OpenStreetMap ``opening_hours`` syntax that
shows up on most venues::

    24/7
    Mo-Fr 09:00-17:00
    Mo,We,Fr 08:00-12:00,13:00-18:00; Sa 10:00-14:00
    Fr-Mo 18:00-23:30

Day ranges are inclusive and may wrap around the week. Time ranges are
inclusive on both ends and never cross midnight. Evaluation never raises:
an expression with no usable rule gives ``None`` (unknown) and individual
malformed rules are skipped.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, List, Optional, Tuple

logger = logging.getLogger(__name__)

ALWAYS_OPEN = "24/7"

# Sunday-based week (Su=0).
DAY_CODES = {"Su": 0, "Mo": 1, "Tu": 2, "We": 3, "Th": 4, "Fr": 5, "Sa": 6}
ALL_DAYS: FrozenSet[int] = frozenset(range(7))
MINUTES_PER_DAY = 24 * 60

_TIME_RANGE_RE = re.compile(r"^(\d{1,2}):(\d{2})-(\d{1,2}):(\d{2})$")


@dataclass(frozen=True)
class ScheduleRule:
    days: FrozenSet[int]
    ranges: Tuple[Tuple[int, int], ...]

    def matches_day(self, day: int) -> bool:
        return day in self.days

    def contains(self, minute: int) -> bool:
        return any(start <= minute <= end for start, end in self.ranges)


def sunday_based_day(at: datetime) -> int:
    return (at.weekday() + 1) % 7


def is_open_now(schedule: Optional[str], at: datetime) -> Optional[bool]:
    if not isinstance(schedule, str):
        return None
    text = schedule.strip()
    if not text:
        return None
    if text == ALWAYS_OPEN:
        return True

    rules = parse_schedule(text)
    if rules is None:
        return None

    day = sunday_based_day(at)
    minute = at.hour * 60 + at.minute
    return any(rule.matches_day(day) and rule.contains(minute) for rule in rules)


def parse_schedule(text: str) -> Optional[List[ScheduleRule]]:
    rules: List[ScheduleRule] = []
    for chunk in text.split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        rule = parse_rule(chunk)
        if rule is None:
            logger.debug("Skipping malformed opening_hours rule: %r", chunk)
            continue
        rules.append(rule)
    return rules or None


def parse_rule(chunk: str) -> Optional[ScheduleRule]:
    if chunk == ALWAYS_OPEN:
        return ScheduleRule(days=ALL_DAYS, ranges=((0, MINUTES_PER_DAY),))

    parts = chunk.split(None, 1)
    if len(parts) != 2:
        return None
    day_spec, time_spec = parts

    days = parse_day_spec(day_spec)
    if days is None:
        return None

    ranges: List[Tuple[int, int]] = []
    for item in time_spec.replace(" ", "").split(","):
        parsed = parse_time_range(item)
        if parsed is None:
            return None
        ranges.append(parsed)
    return ScheduleRule(days=days, ranges=tuple(ranges))


def parse_day_spec(spec: str) -> Optional[FrozenSet[int]]:
    days = set()
    for item in spec.split(","):
        item = item.strip()
        if "-" in item:
            first, _, last = item.partition("-")
            if first not in DAY_CODES or last not in DAY_CODES:
                return None
            days.update(_day_range(DAY_CODES[first], DAY_CODES[last]))
        elif item in DAY_CODES:
            days.add(DAY_CODES[item])
        else:
            return None
    return frozenset(days)


def _day_range(start: int, end: int) -> List[int]:
    out = [start]
    day = start
    while day != end:
        day = (day + 1) % 7
        out.append(day)
    return out


def parse_time_range(text: str) -> Optional[Tuple[int, int]]:
    match = _TIME_RANGE_RE.match(text)
    if not match:
        return None
    open_h, open_m, close_h, close_m = (int(g) for g in match.groups())
    start = _to_minutes(open_h, open_m)
    end = _to_minutes(close_h, close_m)
    if start is None or end is None:
        return None
    return start, end


def _to_minutes(hour: int, minute: int) -> Optional[int]:
    if minute > 59 or hour > 24 or (hour == 24 and minute != 0):
        return None
    return hour * 60 + minute
