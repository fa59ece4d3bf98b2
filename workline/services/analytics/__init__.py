"""
Derived aggregates for Workline.

Pure functions over in-memory collections of projects, tasks and risks:
progress roll-up, the per-line dashboard, the cross-line admin dashboard and
the two-week timeline window. Each returns plain dicts ready to be
serialised as JSON.
"""

__all__ = [
    "apply_auto_progress",
    "project_progress",
    "line_dashboard",
    "global_dashboard",
    "build_timeline",
]

from .dashboard import line_dashboard
from .global_dashboard import global_dashboard
from .progress import apply_auto_progress, project_progress
from .timeline import build_timeline
