"""
Per-line dashboard.

Everything here is recomputed from the line's current projects, tasks and
risks on every call; nothing is cached between requests.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from workline.models.schemas import ACTIVE_RISK_STATUSES, WORK_STATUSES

from .progress import round_half_up

TOP_PROJECTS = 5
PREVIEW_LIMIT = 3
NAME_LIMIT = 15


def is_active_risk(risk: Any) -> bool:
    return risk.status in ACTIVE_RISK_STATUSES


def percentage(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(part / total * 100)


def short_name(name: str, limit: int = NAME_LIMIT) -> str:
    return name if len(name) <= limit else name[:limit] + "..."


def _status_breakdown(projects: Sequence[Any]) -> List[Dict[str, Any]]:
    counts = [
        {"status": status, "value": sum(1 for p in projects if p.status == status)}
        for status in WORK_STATUSES
    ]
    return [c for c in counts if c["value"] > 0]


def _tasks_by_project(projects: Sequence[Any], tasks: Sequence[Any]) -> List[Dict[str, Any]]:
    rows = []
    for p in projects[:TOP_PROJECTS]:
        own = [t for t in tasks if t.project_id == p.id]
        rows.append(
            {
                "project_id": p.id,
                "name": short_name(p.name),
                "total": len(own),
                "completed": sum(1 for t in own if t.status == "Completed"),
            }
        )
    return rows


def line_dashboard(
    projects: Sequence[Any], tasks: Sequence[Any], risks: Sequence[Any]
) -> Dict[str, Any]:
    """KPIs and chart series for a single work line."""
    completed_projects = sum(1 for p in projects if p.status == "Completed")
    in_progress = [p for p in projects if p.status == "In Progress"]

    completed_tasks = sum(1 for t in tasks if t.status == "Completed")
    high_priority_open = sum(
        1 for t in tasks if t.priority == "High" and t.status != "Completed"
    )

    active_risks = [r for r in risks if is_active_risk(r)]
    high_impact_active = sum(1 for r in active_risks if r.impact == "High")
    critical = [r for r in risks if r.impact == "High" and r.status != "Closed"]

    return {
        "projects": {
            "total": len(projects),
            "completed": completed_projects,
            "in_progress": len(in_progress),
        },
        "tasks": {
            "total": len(tasks),
            "completed": completed_tasks,
            "pending": len(tasks) - completed_tasks,
            "high_priority_open": high_priority_open,
        },
        "risks": {
            "active": len(active_risks),
            "high_impact_active": high_impact_active,
        },
        "completion_rate": percentage(completed_tasks, len(tasks)),
        "status_breakdown": _status_breakdown(projects),
        "tasks_by_project": _tasks_by_project(projects, tasks),
        "active_projects": [p.to_dict() for p in in_progress[:PREVIEW_LIMIT]],
        "critical_risks": [r.to_dict() for r in critical[:PREVIEW_LIMIT]],
    }
