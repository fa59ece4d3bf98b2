"""
Two-week timeline (Gantt-style) window.

The window starts on the Monday of the reference week and spans 14 days.
Each visible task gets an ``offset`` (days from the window start) and a
``span`` (days it covers inside the window, at least 1).
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Literal, Optional, Sequence

WINDOW_DAYS = 14

Shift = Literal["prev", "next"]


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def window_for(reference: date) -> tuple[date, date]:
    start = week_start(reference)
    last_week_start = week_start(start + timedelta(days=WINDOW_DAYS - 1))
    end = last_week_start + timedelta(days=6)
    return start, end


def shift_reference(reference: date, shift: Optional[Shift]) -> date:
    if shift == "prev":
        return reference - timedelta(days=WINDOW_DAYS)
    if shift == "next":
        return reference + timedelta(days=WINDOW_DAYS)
    return reference


def bar_placement(task_start: date, task_end: date, window_start: date) -> tuple[int, int]:
    """(offset, span) of a task bar clipped to the window."""
    offset = (task_start - window_start).days
    duration = (task_end - task_start).days + 1

    if offset < 0:
        duration += offset
        offset = 0

    max_duration = WINDOW_DAYS - offset
    if duration > max_duration:
        duration = max_duration
    return offset, max(duration, 1)


def build_timeline(
    tasks: Sequence[Any], reference: date, today: Optional[date] = None
) -> Dict[str, Any]:
    today = today or reference
    start, end = window_for(reference)

    days: List[Dict[str, Any]] = []
    cursor = start
    while cursor <= end:
        days.append({"date": cursor.isoformat(), "is_today": cursor == today})
        cursor += timedelta(days=1)

    visible = sorted(
        (t for t in tasks if t.start_date <= end and t.end_date >= start),
        key=lambda t: t.start_date,
    )

    rows = []
    for t in visible:
        offset, span = bar_placement(t.start_date, t.end_date, start)
        rows.append(
            {
                "task_id": t.id,
                "title": t.title,
                "status": t.status,
                "start_date": t.start_date.isoformat(),
                "end_date": t.end_date.isoformat(),
                "offset": offset,
                "span": span,
            }
        )

    return {
        "reference": reference.isoformat(),
        "window_start": start.isoformat(),
        "window_end": end.isoformat(),
        "prev_reference": shift_reference(reference, "prev").isoformat(),
        "next_reference": shift_reference(reference, "next").isoformat(),
        "days": days,
        "tasks": rows,
    }
