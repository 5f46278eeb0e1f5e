"""
Voilà Dashboard - Aggregation

PostgREST has no GROUP BY, so the dashboard downloads the filtered rows and
aggregates them here. Every function mirrors the SQL it replaces: ``SUM``
and ``AVG`` coalesce missing durations to zero, and grouping keys keep the
order in which they first appear.

Timestamps are bucketed in UTC.
"""

import math
import re
from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from voila_dashboard.config import ALL_REGION, REVENUE_PER_SECOND
from voila_dashboard.models import (
    ActionStat,
    CallOutcomeStats,
    ChartPoint,
    CombinedStat,
    HourlyStat,
    MotivationStat,
    OutcomeStat,
    Pagination,
    Region,
    SentimentStat,
    TrendEntry,
)

Row = Dict[str, Any]

# Values treated as "no value" for categorical columns
EMPTY_VALUES = ("", "NULL")


_TIMESTAMP = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}(?:T\d{2}:\d{2}(?::\d{2})?)?)"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[+-]\d{2}(?::?\d{2})?)?$"
)


def parse_timestamp(value: str) -> datetime:
    """
    Parse a Postgres timestamp, treating naive values as UTC.

    Postgres trims trailing zeros from fractional seconds and may write the
    offset as ``+00``; both are normalized before parsing.
    """
    text = value.strip().replace(" ", "T", 1)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    match = _TIMESTAMP.match(text)
    if match is None:
        raise ValueError(f"Invalid timestamp: {value!r}")

    text = match.group("base")
    fraction = match.group("fraction")
    if fraction:
        text += "." + fraction[:6].ljust(6, "0")
    offset = match.group("offset")
    if offset:
        digits = offset[1:].replace(":", "")
        text += f"{offset[0]}{digits[:2]}:{digits[2:] or '00'}"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def day_of(value: str) -> str:
    """UTC calendar day (``YYYY-MM-DD``) of a timestamp."""
    return parse_timestamp(value).date().isoformat()


def hour_of(value: str) -> int:
    return parse_timestamp(value).hour


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def days_ago(days: int, now: Optional[datetime] = None) -> str:
    """ISO timestamp ``days`` days before ``now``."""
    now = now or datetime.now(timezone.utc)
    return (now - timedelta(days=days)).isoformat()


def has_value(value: Any) -> bool:
    return value is not None and value not in EMPTY_VALUES


# =============================================================================
# Durations and revenue
# =============================================================================


def total_seconds(rows: Iterable[Row]) -> int:
    """``COALESCE(SUM(duration_seconds), 0)``"""
    return sum(row.get("duration_seconds") or 0 for row in rows)


def to_minutes(seconds: float) -> int:
    return math.floor(seconds / 60)


def revenue_for(seconds: float) -> float:
    """Revenue in euro for a number of billed seconds."""
    return round(seconds * REVENUE_PER_SECOND, 2)


def summarize_durations(rows: List[Row], count: Optional[int] = None) -> Dict[str, Any]:
    """
    Headline totals of a set of calls.

    Args:
        rows: Rows carrying ``duration_seconds``
        count: Exact row count from PostgREST; defaults to ``len(rows)``

    Returns:
        Dict with ``total_calls``, ``total_minutes``, ``total_revenue`` and
        ``avg_duration_minutes``
    """
    total_calls = count if count is not None else len(rows)
    seconds = total_seconds(rows)
    avg_seconds = seconds / total_calls if total_calls > 0 else 0

    return {
        "total_calls": total_calls,
        "total_minutes": to_minutes(seconds),
        "total_revenue": revenue_for(seconds),
        "avg_duration_minutes": round(avg_seconds / 60, 1),
    }


# =============================================================================
# Per-day series
# =============================================================================


def group_by_day(rows: Iterable[Row]) -> Dict[str, Dict[str, int]]:
    """Calls and summed seconds per UTC day."""
    grouped: Dict[str, Dict[str, int]] = {}
    for row in rows:
        started_at = row.get("started_at")
        if not started_at:
            continue
        bucket = grouped.setdefault(day_of(started_at), {"calls": 0, "duration_seconds": 0})
        bucket["calls"] += 1
        bucket["duration_seconds"] += row.get("duration_seconds") or 0
    return grouped


def date_span(start: date, end: date) -> List[date]:
    """Every day from ``start`` to ``end`` inclusive."""
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def fill_date_range(grouped: Dict[str, Dict[str, int]], start: date, end: date) -> List[ChartPoint]:
    """One chart point per day of the range; days without calls are zero."""
    points = []
    for day in date_span(start, end):
        bucket = grouped.get(day.isoformat(), {"calls": 0, "duration_seconds": 0})
        points.append(
            ChartPoint(
                date=day.isoformat(),
                calls=bucket["calls"],
                minutes=to_minutes(bucket["duration_seconds"]),
                revenue=revenue_for(bucket["duration_seconds"]),
            )
        )
    return points


# =============================================================================
# Breakdowns
# =============================================================================


def sentiment_counts(rows: Iterable[Row]) -> List[SentimentStat]:
    counts: Dict[str, int] = OrderedDict()
    for row in rows:
        sentiment = row.get("sentiment")
        if sentiment:
            counts[sentiment] = counts.get(sentiment, 0) + 1
    return [SentimentStat(sentiment=k, count=v) for k, v in counts.items()]


def action_stats(rows: Iterable[Row]) -> List[ActionStat]:
    """Count and mean duration (seconds) per action."""
    grouped: Dict[str, List[int]] = OrderedDict()
    for row in rows:
        action = row.get("action")
        if not action:
            continue
        bucket = grouped.setdefault(action, [0, 0])
        bucket[0] += 1
        bucket[1] += row.get("duration_seconds") or 0

    return [
        ActionStat(action=action, count=count, avg_duration=total / count if count else 0)
        for action, (count, total) in grouped.items()
    ]


def hourly_counts(rows: Iterable[Row]) -> List[HourlyStat]:
    counts: Dict[int, int] = {}
    for row in rows:
        started_at = row.get("started_at")
        if started_at:
            hour = hour_of(started_at)
            counts[hour] = counts.get(hour, 0) + 1
    return [HourlyStat(hour=hour, calls_count=counts[hour]) for hour in sorted(counts)]


def trend_by_day(rows: Iterable[Row], field: str) -> List[TrendEntry]:
    """
    ``GROUP BY DATE(started_at), <field>`` sorted by date descending.

    Within a day, values keep their first-seen order.
    """
    grouped: Dict[str, Dict[str, int]] = OrderedDict()
    for row in rows:
        started_at = row.get("started_at")
        value = row.get(field)
        if not started_at or not has_value(value):
            continue
        per_day = grouped.setdefault(day_of(started_at), OrderedDict())
        per_day[value] = per_day.get(value, 0) + 1

    entries = [
        TrendEntry(date=day, value=value, count=count)
        for day, values in grouped.items()
        for value, count in values.items()
    ]
    entries.sort(key=lambda entry: entry.date, reverse=True)
    return entries


def outcome_breakdown(rows: List[Row]) -> CallOutcomeStats:
    """
    Outcome counts, reason counts and outcome-by-reason counts.

    Combined counts are grouped by outcome first, so every reason of an
    outcome is listed together.
    """
    outcomes: Dict[str, int] = OrderedDict()
    motivations: Dict[str, int] = OrderedDict()
    combined: Dict[str, Dict[str, int]] = OrderedDict()

    for row in rows:
        esito = row.get("esito_chiamata")
        if not has_value(esito):
            continue
        outcomes[esito] = outcomes.get(esito, 0) + 1

        motivazione = row.get("motivazione")
        if has_value(motivazione):
            motivations[motivazione] = motivations.get(motivazione, 0) + 1
            per_outcome = combined.setdefault(esito, OrderedDict())
            per_outcome[motivazione] = per_outcome.get(motivazione, 0) + 1

    return CallOutcomeStats(
        outcome_stats=[OutcomeStat(esito_chiamata=k, count=v) for k, v in outcomes.items()],
        motivation_stats=[MotivationStat(motivazione=k, count=v) for k, v in motivations.items()],
        combined_stats=[
            CombinedStat(esito_chiamata=esito, motivazione=motivazione, count=count)
            for esito, per_outcome in combined.items()
            for motivazione, count in per_outcome.items()
        ],
        total_calls_with_outcome=len(rows),
    )


# =============================================================================
# Pagination and regions
# =============================================================================


def paginate(total: int, limit: int, offset: int) -> Pagination:
    """Offset pagination of ``total`` rows."""
    return Pagination(
        total_calls=total,
        total_pages=math.ceil(total / limit) if limit > 0 else 0,
        current_page=offset // limit + 1 if limit > 0 else 1,
        has_next=offset + limit < total,
        has_previous=offset > 0,
        limit=limit,
        offset=offset,
    )


def unique_regions(rows: Iterable[Row]) -> List[Region]:
    """Distinct regions in row order, preceded by All Region."""
    regions = [Region(value=ALL_REGION, label=ALL_REGION)]
    seen = set()
    for row in rows:
        region = row.get("region")
        if region and region not in seen:
            seen.add(region)
            regions.append(Region(value=region, label=region))
    return regions
