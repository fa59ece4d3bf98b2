# workline/routes/reviews.py
from __future__ import annotations

from quart import Blueprint, current_app, request
from quart_schema import validate_request

from workline.models.schemas import MonthlyReviewIn, validate_month
from workline.services.review.monthly_review import generate_monthly_review
from workline.utils.auth import line_access
from workline.utils.errors import DomainValidationError, NotFoundError
from workline.utils.helper import local_today, response_success
from workline.utils.logger import get_logger


logger = get_logger(__name__)
reviews_bp = Blueprint("reviews", __name__)


def checked_month(month: str) -> str:
    try:
        return validate_month(month)
    except ValueError as e:
        raise DomainValidationError(str(e)) from e


def flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")


@reviews_bp.get("")
@line_access
async def list_reviews(line_id: str):
    reviews = await current_app.extensions["db"].list_reviews(line_id)
    return response_success([r.to_dict() for r in reviews])


@reviews_bp.get("/<month>")
@line_access
async def get_review(line_id: str, month: str):
    review = await current_app.extensions["db"].get_review(line_id, checked_month(month))
    if review is None:
        raise NotFoundError("review", f"{line_id}/{month}")
    return response_success(review.to_dict())


@reviews_bp.put("/<month>")
@line_access
@validate_request(MonthlyReviewIn)
async def save_review(line_id: str, month: str, data: MonthlyReviewIn):
    review = await current_app.extensions["db"].upsert_review(
        line_id, checked_month(month), data.model_dump()
    )
    return response_success(review.to_dict())


@reviews_bp.delete("/<month>")
@line_access
async def delete_review(line_id: str, month: str):
    await current_app.extensions["db"].delete_review(line_id, checked_month(month))
    return response_success(None, message="Review deleted")


@reviews_bp.post("/<month>/generate")
@line_access
async def generate_review(line_id: str, month: str):
    """Draft the review with the LLM; ``save=true`` also stores the draft."""
    month = checked_month(month)
    db = current_app.extensions["db"]
    projects, tasks, risks = await db.line_snapshot(line_id)
    draft, source = await generate_monthly_review(
        month,
        projects,
        tasks,
        risks,
        llm=current_app.extensions.get("llm"),
        today=local_today(),
    )

    payload = {"draft": draft.model_dump(), "source": source, "saved": False}
    if flag("save"):
        review = await db.upsert_review(line_id, month, draft.model_dump())
        payload.update(saved=True, review=review.to_dict())
    return response_success(payload)
