"""
Progress aggregation.

A project's automatic progress is the mean progress of its top-level tasks
(subtasks are ignored), rounded half-up to an integer percentage.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Sequence


def round_half_up(value: float) -> int:
    """Round like a spreadsheet would: 0.5 always goes up (``round`` uses banker's rounding)."""
    return int(math.floor(value + 0.5))


def mean_progress(items: Sequence[Any]) -> int | None:
    """Rounded mean of ``item.progress``; ``None`` for an empty sequence."""
    if not items:
        return None
    return round_half_up(sum((i.progress or 0) for i in items) / len(items))


def top_level_tasks(project_id: str, tasks: Iterable[Any]) -> list[Any]:
    return [t for t in tasks if t.project_id == project_id and not t.parent_id]


def project_progress(project_id: str, tasks: Iterable[Any]) -> int:
    """Automatic progress of a project; 0 when it has no top-level tasks."""
    value = mean_progress(top_level_tasks(project_id, tasks))
    return 0 if value is None else value


def apply_auto_progress(project: Any, tasks: Iterable[Any]) -> bool:
    """
    Recompute ``project.progress`` in place when it is in auto mode.

    Returns True when the stored value changed.
    """
    if not project.is_auto_progress:
        return False
    value = project_progress(project.id, tasks)
    if value == (project.progress or 0):
        return False
    project.progress = value
    return True
