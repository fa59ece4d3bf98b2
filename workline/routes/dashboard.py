# workline/routes/dashboard.py
from __future__ import annotations

from datetime import date

from quart import Blueprint, current_app, request

from workline.services.analytics import build_timeline, line_dashboard
from workline.services.analytics.timeline import shift_reference
from workline.utils.auth import line_access
from workline.utils.errors import DomainValidationError
from workline.utils.helper import local_today, response_success
from workline.utils.logger import get_logger


logger = get_logger(__name__)
dashboard_bp = Blueprint("dashboard", __name__)


@dashboard_bp.get("/dashboard")
@line_access
async def get_dashboard(line_id: str):
    projects, tasks, risks = await current_app.extensions["db"].line_snapshot(line_id)
    return response_success(line_dashboard(projects, tasks, risks))


@dashboard_bp.get("/timeline")
@line_access
async def get_timeline(line_id: str):
    """Two-week window around ``date`` (default today), optionally shifted by ``shift``."""
    today = local_today()
    raw_date = request.args.get("date")
    shift = request.args.get("shift") or None
    try:
        reference = date.fromisoformat(raw_date) if raw_date else today
    except ValueError as e:
        raise DomainValidationError("date must use the YYYY-MM-DD format") from e
    if shift not in (None, "prev", "next"):
        raise DomainValidationError("shift must be 'prev' or 'next'")

    _, tasks, _ = await current_app.extensions["db"].line_snapshot(line_id)
    timeline = build_timeline(tasks, shift_reference(reference, shift), today=today)
    return response_success(timeline)
