# quickdesk/services/aggregates.py
"""Small grouped-count helpers shared by the reporting endpoints"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from quickdesk.services.serializers import enum_value
from quickdesk.utils.datetime_utils import hours_between


def count_where(db: Session, column, *criteria) -> int:
    return db.query(func.count(column)).filter(*criteria).scalar() or 0


def count_by(db: Session, column, *criteria) -> Dict[str, int]:
    """{value: count} for `column`, grouped in the database."""
    rows = db.query(column, func.count()).filter(*criteria).group_by(column).all()
    return {enum_value(key): count for key, count in rows if key is not None}


def percentage(part: int, whole: int, digits: Optional[int] = None):
    if not whole:
        return 0
    return round(part / whole * 100, digits)


def percent_change(current: int, previous: int) -> float:
    if previous == 0:
        return 100 if current > 0 else 0
    return round((current - previous) / previous * 100, 1)


def duration_summary(pairs: Iterable) -> Dict[str, float]:
    """avg/min/max hours and count over (start, end) datetime pairs."""
    hours: List[float] = [
        h for h in (hours_between(start, end) for start, end in pairs) if h is not None
    ]
    if not hours:
        return {"avg_hours": 0, "min_hours": 0, "max_hours": 0, "count": 0}
    return {
        "avg_hours": round(sum(hours) / len(hours), 2),
        "min_hours": round(min(hours), 2),
        "max_hours": round(max(hours), 2),
        "count": len(hours),
    }


def daily_counts(timestamps: Iterable[Optional[datetime]]) -> List[Dict[str, object]]:
    """[{date: YYYY-MM-DD, count}] sorted by date."""
    buckets: Dict[str, int] = {}
    for ts in timestamps:
        if ts is None:
            continue
        key = ts.strftime("%Y-%m-%d")
        buckets[key] = buckets.get(key, 0) + 1
    return [{"date": day, "count": buckets[day]} for day in sorted(buckets)]


def monthly_counts(timestamps: Iterable[Optional[datetime]]) -> List[Dict[str, int]]:
    """[{year, month, count}] sorted chronologically."""
    buckets: Dict[tuple, int] = {}
    for ts in timestamps:
        if ts is None:
            continue
        key = (ts.year, ts.month)
        buckets[key] = buckets.get(key, 0) + 1
    return [
        {"year": year, "month": month, "count": buckets[(year, month)]}
        for year, month in sorted(buckets)
    ]


def months_ago(now: datetime, months: int) -> datetime:
    """First instant of the month `months` months before `now`'s month."""
    index = now.year * 12 + (now.month - 1) - months
    return datetime(index // 12, index % 12 + 1, 1)
