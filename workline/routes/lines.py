# workline/routes/lines.py
from __future__ import annotations

from quart import Blueprint, current_app, g, request
from quart_schema import validate_request

from workline.models.schemas import WorkLineIn, WorkLinePatch
from workline.utils.auth import admin_required, line_access, login_required
from workline.utils.helper import response_success
from workline.utils.logger import get_logger


logger = get_logger(__name__)
lines_bp = Blueprint("lines", __name__)


@lines_bp.get("")
@login_required
async def list_lines():
    """Admins get every line, standard users only their assigned one."""
    lines = await current_app.extensions["db"].list_lines(request.args.get("q"))
    user = g.current_user
    if not user.is_admin:
        lines = [line for line in lines if line.id == user.assigned_line_id]
    return response_success([line.to_dict() for line in lines])


@lines_bp.post("")
@admin_required
@validate_request(WorkLineIn)
async def create_line(data: WorkLineIn):
    line = await current_app.extensions["db"].create_line(data.model_dump())
    return response_success(line.to_dict(), http_status=201)


@lines_bp.get("/<line_id>")
@line_access
async def get_line(line_id: str):
    line = await current_app.extensions["db"].get_line(line_id)
    return response_success(line.to_dict())


@lines_bp.patch("/<line_id>")
@admin_required
@validate_request(WorkLinePatch)
async def update_line(line_id: str, data: WorkLinePatch):
    line = await current_app.extensions["db"].update_line(
        line_id, data.model_dump(exclude_unset=True)
    )
    return response_success(line.to_dict())


@lines_bp.delete("/<line_id>")
@admin_required
async def delete_line(line_id: str):
    await current_app.extensions["db"].delete_line(line_id)
    return response_success(None, message="Line deleted")
