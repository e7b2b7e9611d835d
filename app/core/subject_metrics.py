#app/core/subject_metrics.py
"""
Derived subject data: progress, deadline flags, aggregate stats and the
filtered/sorted list view.

Everything here is pure. Subjects are read by attribute, so ORM rows and
pydantic schemas can be passed interchangeably. Missing fields never raise;
they produce 0, False or an empty result instead.
"""
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, List, Optional, Union

from app.schemas.subject import SubjectFilters, SubjectStats

DUE_SOON_WINDOW = timedelta(days=7)
MAX_DEADLINE = date(9999, 12, 31)

SUBJECT_STATUSES = ("preparing", "launched", "finished")

STATUS_LABELS = {
    "preparing": "Preparing",
    "launched": "In progress",
    "finished": "Finished",
}

DateLike = Union[date, datetime, str, None]


def _to_datetime(value: DateLike) -> Optional[datetime]:
    """Calendar dates are midnight UTC; naive datetimes are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        if "T" in value or " " in value:
            # fromisoformat only takes a trailing "Z" from 3.11 on
            value = datetime.fromisoformat(value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value)
        else:
            value = date.fromisoformat(value)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return _to_datetime(now)


def calculate_progress(subject: Any, now: Optional[datetime] = None) -> int:
    """
    Percentage (0-100) of the kickoff..deadline window that has elapsed.
    Returns 0 when either date is missing.
    """
    start = _to_datetime(getattr(subject, "kickoff_date", None))
    end = _to_datetime(getattr(subject, "deadline_date", None))
    if start is None or end is None:
        return 0

    current = _now(now)
    if current <= start:
        return 0
    if current >= end:
        return 100

    ratio = (current - start) / (end - start)
    # half-up, not banker's rounding
    return int(math.floor(ratio * 100 + 0.5))


def _launched_deadline(subject: Any) -> Optional[datetime]:
    if getattr(subject, "status", None) != "launched":
        return None
    return _to_datetime(getattr(subject, "deadline_date", None))


def is_overdue(subject: Any, now: Optional[datetime] = None) -> bool:
    deadline = _launched_deadline(subject)
    if deadline is None:
        return False
    return deadline < _now(now)


def is_due_soon(subject: Any, now: Optional[datetime] = None) -> bool:
    """Launched with a deadline inside the next 7 days or already passed."""
    deadline = _launched_deadline(subject)
    if deadline is None:
        return False
    return deadline <= _now(now) + DUE_SOON_WINDOW


def status_label(status: Optional[str]) -> str:
    return STATUS_LABELS.get(status or "preparing", STATUS_LABELS["preparing"])


def compute_stats(subjects: Iterable[Any], now: Optional[datetime] = None) -> SubjectStats:
    """
    Count subjects per status plus the due-soon ones.
    """
    current = _now(now)
    stats = SubjectStats()
    for subject in subjects:
        stats.total += 1
        status = getattr(subject, "status", None)
        if status == "preparing":
            stats.preparing += 1
        elif status == "launched":
            stats.launched += 1
        elif status == "finished":
            stats.finished += 1

        if is_due_soon(subject, now=current):
            stats.due_soon += 1
    return stats


def _matches(subject: Any, filters: SubjectFilters) -> bool:
    if filters.search:
        title = getattr(subject, "title", None)
        if not title or filters.search.lower() not in title.lower():
            return False
    if filters.status != "all" and getattr(subject, "status", None) != filters.status:
        return False
    return True


def _sort_key(subject: Any, sort_by: str):
    if sort_by == "title":
        return getattr(subject, "title", None) or ""
    if sort_by == "deadline_date":
        return _to_datetime(getattr(subject, "deadline_date", None)) or _to_datetime(MAX_DEADLINE)
    return _to_datetime(getattr(subject, "created_at", None)) or datetime.min.replace(tzinfo=timezone.utc)


def filter_subjects(subjects: Iterable[Any], filters: Optional[SubjectFilters] = None) -> List[Any]:
    """
    Apply search and status filters (both must match), then sort.
    Returns a new list; equal keys keep their input order.
    """
    filters = filters or SubjectFilters()
    matched = [s for s in subjects if _matches(s, filters)]
    return sorted(
        matched,
        key=lambda s: _sort_key(s, filters.sort_by),
        reverse=filters.sort_order == "desc",
    )
