"""Aggregations over submission and activity rows.

All functions are pure: callers fetch rows per request and pass them in, so
nothing here is cached or persisted.
"""
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

HIGH_PERFORMER_MIN = 80
AVERAGE_PERFORMER_MIN = 60
TREND_WEEKS = 6


def graded_values(grades: Iterable[float | None]) -> list[float]:
    return [grade for grade in grades if grade is not None]


def graded_count(grades: Iterable[float | None]) -> int:
    return len(graded_values(grades))


def average_score(grades: Iterable[float | None], ndigits: int = 2) -> float:
    values = graded_values(grades)
    if not values:
        return 0
    return round(sum(values) / len(values), ndigits)


def completion_rate(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(completed / total * 100)


def attendance_rate(flags: Iterable[bool | None]) -> int:
    marks = [flag for flag in flags if flag is not None]
    if not marks:
        return 0
    return round(sum(1 for flag in marks if flag) / len(marks) * 100)


def performance_tier(score: float) -> str:
    if score >= HIGH_PERFORMER_MIN:
        return "high"
    if score >= AVERAGE_PERFORMER_MIN:
        return "average"
    return "low"


def tier_counts(scores: Iterable[float]) -> dict[str, int]:
    counts = {"high": 0, "average": 0, "low": 0}
    for score in scores:
        counts[performance_tier(score)] += 1
    return counts


def weekly_trend(
    rows: Iterable[tuple[datetime | None, float | None]],
    now: datetime,
    weeks: int = TREND_WEEKS,
) -> list[dict[str, Any]]:
    """Bucket ``(submitted_at, grade)`` pairs into ``weeks`` consecutive weeks ending at ``now``.

    Week 1 is the oldest bucket. Weeks without a graded submission get a
    ``None`` score rather than a zero.
    """
    start = now - timedelta(weeks=weeks)
    buckets: dict[int, list[float]] = defaultdict(list)
    for submitted_at, grade in rows:
        if submitted_at is None or grade is None:
            continue
        if submitted_at <= start or submitted_at > now:
            continue
        index = min(int((submitted_at - start) / timedelta(weeks=1)), weeks - 1)
        buckets[index].append(grade)

    trend = []
    for index in range(weeks):
        week_start = start + timedelta(weeks=index)
        values = buckets.get(index, [])
        trend.append(
            {
                "date": f"Week {index + 1}",
                "week_start": week_start.date().isoformat(),
                "score": round(sum(values) / len(values)) if values else None,
                "graded": len(values),
            }
        )
    return trend


def attendance_by_date(records: Iterable[tuple[datetime, bool | None]]) -> dict[str, Any]:
    per_day: dict[str, dict[str, int]] = {}
    for day, is_present in records:
        if is_present is None:
            continue
        key = day.date().isoformat()
        bucket = per_day.setdefault(key, {"total": 0, "present": 0})
        bucket["total"] += 1
        if is_present:
            bucket["present"] += 1

    dates = sorted(per_day)
    percentages = [round(per_day[day]["present"] / per_day[day]["total"] * 100) for day in dates]
    average = round(sum(percentages) / len(percentages)) if percentages else 0
    return {"dates": dates, "present_percentages": percentages, "average_attendance": average}
