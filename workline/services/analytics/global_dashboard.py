"""Cross-line (admin) dashboard."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from .dashboard import is_active_risk, percentage
from .progress import mean_progress

HEALTH_OPTIMAL = 80
HEALTH_REGULAR = 50
MIN_BAR_WIDTH = 5


def health_label(health: int) -> str:
    if health >= HEALTH_OPTIMAL:
        return "optimal"
    if health >= HEALTH_REGULAR:
        return "regular"
    return "critical"


def _line_stats(
    lines: Sequence[Any], projects: Sequence[Any], risks: Sequence[Any]
) -> List[Dict[str, Any]]:
    stats = []
    for line in lines:
        line_projects = [p for p in projects if p.line_id == line.id]
        line_risks = [r for r in risks if r.line_id == line.id and is_active_risk(r)]
        health = mean_progress(line_projects)
        stats.append(
            {
                "id": line.id,
                "name": line.name,
                "project_count": len(line_projects),
                "risk_count": len(line_risks),
                "health": 0 if health is None else health,
            }
        )

    max_count = max((s["project_count"] for s in stats), default=0) or 1
    for s in stats:
        s["health_label"] = health_label(s["health"])
        s["bar_width_pct"] = max(MIN_BAR_WIDTH, s["project_count"] / max_count * 100)
    return stats


def _risk_distribution(risks: Sequence[Any]) -> Dict[str, Any]:
    counts = {
        level.lower(): sum(1 for r in risks if r.priority == level)
        for level in ("High", "Medium", "Low")
    }
    total = sum(counts.values())
    return {
        **counts,
        "total": total,
        "percentages": {k: percentage(v, total) for k, v in counts.items()},
    }


def global_dashboard(
    lines: Sequence[Any],
    projects: Sequence[Any],
    risks: Sequence[Any],
) -> Dict[str, Any]:
    open_projects = [p for p in projects if p.status != "Completed"]
    health = mean_progress(open_projects)
    critical = [r for r in risks if r.priority == "High" and is_active_risk(r)]

    return {
        "active_lines": len(lines),
        "total_projects": len(projects),
        # nothing left open reads as fully healthy
        "global_health": 100 if health is None else health,
        "critical_risks": len(critical),
        "line_stats": _line_stats(lines, projects, risks),
        "risk_distribution": _risk_distribution(risks),
    }
