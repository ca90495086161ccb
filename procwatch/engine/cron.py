"""Five-field cron expressions: validation, next run times and descriptions."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from procwatch.core.errors import InvalidInputError

# (name, low, high)
FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day", 1, 31),
    ("month", 1, 12),
    ("weekday", 0, 7),
)

MAX_SEARCH_DAYS = 366 * 5

KNOWN_DESCRIPTIONS = {
    "* * * * *": "Every minute",
    "0 * * * *": "Every hour",
    "0 0 * * *": "Daily at midnight",
    "0 0 * * 0": "Weekly on Sunday",
    "0 0 1 * *": "Monthly on the 1st",
}


@dataclass(frozen=True)
class CronSchedule:
    """Parsed cron expression."""

    minutes: frozenset[int]
    hours: frozenset[int]
    days: frozenset[int]
    months: frozenset[int]
    weekdays: frozenset[int]  # 0 = Sunday
    day_restricted: bool
    weekday_restricted: bool

    def matches_day(self, day: date) -> bool:
        if day.month not in self.months:
            return False
        dom = day.day in self.days
        dow = (day.weekday() + 1) % 7 in self.weekdays
        # Classic cron: when both fields are restricted either may match
        if self.day_restricted and self.weekday_restricted:
            return dom or dow
        return dom and dow


def _parse_field(field: str, name: str, low: int, high: int) -> frozenset[int]:
    values: set[int] = set()
    for part in field.split(","):
        step = 1
        stepped = "/" in part
        if stepped:
            part, step_text = part.split("/", 1)
            step = int(step_text)
            if step < 1:
                raise ValueError(f"step must be positive in {name}")
        if part == "*":
            start, end = low, high
        elif "-" in part:
            first, last = part.split("-", 1)
            start, end = int(first), int(last)
        else:
            start = int(part)
            end = high if stepped else start
        if not low <= start <= end <= high:
            raise ValueError(f"{name} out of range {low}-{high}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


def parse_cron(expression: str) -> CronSchedule:
    """Parse a five-field cron expression.

    Raises:
        InvalidInputError: If the expression is malformed
    """
    parts = (expression or "").split()
    if len(parts) != 5:
        raise InvalidInputError(
            "Cron expression must have exactly 5 parts: minute hour day month weekday"
        )
    try:
        parsed = [
            _parse_field(part, name, low, high)
            for part, (name, low, high) in zip(parts, FIELDS)
        ]
    except ValueError as e:
        raise InvalidInputError(f"Invalid cron expression format: {e}") from e

    minutes, hours, days, months, weekdays = parsed
    return CronSchedule(
        minutes=minutes,
        hours=hours,
        days=days,
        months=months,
        weekdays=frozenset(d % 7 for d in weekdays),
        day_restricted=parts[2] != "*",
        weekday_restricted=parts[4] != "*",
    )


def resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidInputError(f"Unknown timezone: {name}") from e


def next_runs(
    expression: str,
    after: datetime,
    count: int = 5,
    tz: str = "America/New_York",
) -> list[datetime]:
    """Compute upcoming run times.

    Args:
        expression: Cron expression, evaluated in ``tz``
        after: Runs strictly after this instant are returned
        count: Number of runs
        tz: IANA timezone name

    Returns:
        Up to ``count`` run times in UTC
    """
    schedule = parse_cron(expression)
    zone = resolve_timezone(tz)
    local_after = after.astimezone(zone)

    runs: list[datetime] = []
    day = local_after.date()
    for _ in range(MAX_SEARCH_DAYS):
        if schedule.matches_day(day):
            for hour in sorted(schedule.hours):
                for minute in sorted(schedule.minutes):
                    candidate = datetime(day.year, day.month, day.day, hour, minute, tzinfo=zone)
                    if candidate <= local_after:
                        continue
                    runs.append(candidate.astimezone(timezone.utc))
                    if len(runs) >= count:
                        return runs
        day += timedelta(days=1)
    return runs


def next_run(expression: str, after: datetime, tz: str = "America/New_York") -> datetime | None:
    runs = next_runs(expression, after, count=1, tz=tz)
    return runs[0] if runs else None


def describe(expression: str) -> str:
    """Human readable summary for common expressions."""
    return KNOWN_DESCRIPTIONS.get(" ".join(expression.split()), "Custom schedule")
