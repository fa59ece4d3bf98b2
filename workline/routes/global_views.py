# workline/routes/global_views.py
"""Organisation-wide views, admin only."""

from __future__ import annotations

from quart import Blueprint, current_app
from quart_schema import validate_request

from workline.models.schemas import GlobalReviewIn
from workline.services.analytics import global_dashboard
from workline.services.review.monthly_review import generate_global_review
from workline.utils.auth import admin_required
from workline.utils.errors import NotFoundError
from workline.utils.helper import response_success
from workline.utils.logger import get_logger
from .reviews import checked_month


logger = get_logger(__name__)
global_bp = Blueprint("global", __name__)


@global_bp.get("/dashboard")
@admin_required
async def get_global_dashboard():
    lines, projects, _, risks = await current_app.extensions["db"].global_snapshot()
    return response_success(global_dashboard(lines, projects, risks))


@global_bp.get("/reviews/<month>")
@admin_required
async def get_global_review(month: str):
    review = await current_app.extensions["db"].get_global_review(checked_month(month))
    if review is None:
        raise NotFoundError("global review", month)
    return response_success(review.to_dict())


@global_bp.put("/reviews/<month>")
@admin_required
@validate_request(GlobalReviewIn)
async def save_global_review(month: str, data: GlobalReviewIn):
    review = await current_app.extensions["db"].upsert_global_review(
        checked_month(month), data.model_dump()
    )
    return response_success(review.to_dict())


@global_bp.post("/reviews/<month>/generate")
@admin_required
async def generate_global(month: str):
    """Draft the strategic review and store it right away."""
    month = checked_month(month)
    db = current_app.extensions["db"]
    lines, projects, _, risks = await db.global_snapshot()
    draft, source = await generate_global_review(
        month, lines, projects, risks, llm=current_app.extensions.get("llm")
    )
    review = await db.upsert_global_review(month, draft.model_dump())
    return response_success({"review": review.to_dict(), "source": source})
