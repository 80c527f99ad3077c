"""
Five-field cron expressions: minute hour day-of-month month day-of-week.

Supports ``*``, ``*/n``, ``a``, ``a-b``, ``a-b/n``, ``a/n`` and comma lists.
Day-of-week accepts 0-7 with both 0 and 7 meaning Sunday. When both day
fields are restricted a day matches if either does, as in Vixie cron.
"""

from datetime import datetime, timedelta, tzinfo
from typing import FrozenSet, Optional

# Leap-day schedules can need several years to match
SEARCH_HORIZON = timedelta(days=366 * 8)


def _parse_field(field: str, low: int, high: int) -> FrozenSet[int]:
    values = set()
    for part in field.split(","):
        if not part:
            raise ValueError(f"Empty element in cron field '{field}'")

        step = 1
        if "/" in part:
            part, step_text = part.split("/", 1)
            if not step_text.isdigit() or int(step_text) == 0:
                raise ValueError(f"Invalid step in cron field '{field}'")
            step = int(step_text)

        if part == "*":
            start, end = low, high
        elif "-" in part:
            start_text, end_text = part.split("-", 1)
            if not (start_text.isdigit() and end_text.isdigit()):
                raise ValueError(f"Invalid range in cron field '{field}'")
            start, end = int(start_text), int(end_text)
        elif part.isdigit():
            start = int(part)
            end = high if step > 1 else start
        else:
            raise ValueError(f"Invalid cron field '{field}'")

        if start < low or end > high or start > end:
            raise ValueError(f"Cron field '{field}' out of range {low}-{high}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


class CronExpression:

    def __init__(self, expression: str):
        fields = expression.split()
        if len(fields) != 5:
            raise ValueError(f"Cron expression must have 5 fields: '{expression}'")

        self.expression = expression
        self.minutes = _parse_field(fields[0], 0, 59)
        self.hours = _parse_field(fields[1], 0, 23)
        self.days = _parse_field(fields[2], 1, 31)
        self.months = _parse_field(fields[3], 1, 12)
        self.weekdays = frozenset(day % 7 for day in _parse_field(fields[4], 0, 7))
        self.day_restricted = not fields[2].startswith("*")
        self.weekday_restricted = not fields[4].startswith("*")

    def __repr__(self) -> str:
        return f"CronExpression({self.expression!r})"

    def matches_day(self, moment: datetime) -> bool:
        day_match = moment.day in self.days
        # isoweekday: Monday=1 .. Sunday=7
        weekday_match = moment.isoweekday() % 7 in self.weekdays
        if self.day_restricted and self.weekday_restricted:
            return day_match or weekday_match
        if self.day_restricted:
            return day_match
        if self.weekday_restricted:
            return weekday_match
        return True

    def matches(self, moment: datetime) -> bool:
        return (
            moment.minute in self.minutes
            and moment.hour in self.hours
            and moment.month in self.months
            and self.matches_day(moment)
        )

    def next_after(self, moment: datetime, tz: Optional[tzinfo] = None) -> datetime:
        """
        First matching minute strictly after ``moment``.

        Aware inputs are evaluated in ``tz`` (or their own zone) and the
        result carries that zone; naive inputs give naive results.
        """
        zone = tz or moment.tzinfo
        local = moment.astimezone(zone).replace(tzinfo=None) if zone and moment.tzinfo else moment

        candidate = (local + timedelta(minutes=1)).replace(second=0, microsecond=0)
        limit = candidate + SEARCH_HORIZON

        while candidate <= limit:
            if candidate.month not in self.months:
                year, month = (candidate.year + 1, 1) if candidate.month == 12 else (candidate.year, candidate.month + 1)
                candidate = candidate.replace(year=year, month=month, day=1, hour=0, minute=0)
                continue
            if not self.matches_day(candidate):
                candidate = candidate.replace(hour=0, minute=0) + timedelta(days=1)
                continue
            if candidate.hour not in self.hours:
                candidate = candidate.replace(minute=0) + timedelta(hours=1)
                continue
            if candidate.minute not in self.minutes:
                candidate += timedelta(minutes=1)
                continue
            return candidate.replace(tzinfo=zone) if zone and moment.tzinfo else candidate

        raise ValueError(f"Cron expression '{self.expression}' never matches")
