# workline/routes/users.py
from __future__ import annotations

from quart import Blueprint, current_app, g, request
from quart_schema import validate_request

from workline.models.schemas import UserIn, UserPatch
from workline.utils.auth import admin_required
from workline.utils.helper import response_success
from workline.utils.logger import get_logger


logger = get_logger(__name__)
users_bp = Blueprint("users", __name__)


@users_bp.get("")
@admin_required
async def list_users():
    users = await current_app.extensions["db"].list_users(request.args.get("q"))
    return response_success([u.to_dict() for u in users])


@users_bp.post("")
@admin_required
@validate_request(UserIn)
async def create_user(data: UserIn):
    user = await current_app.extensions["db"].create_user(data.model_dump())
    return response_success(user.to_dict(), http_status=201)


@users_bp.patch("/<user_id>")
@admin_required
@validate_request(UserPatch)
async def update_user(user_id: str, data: UserPatch):
    user = await current_app.extensions["db"].update_user(
        user_id, data.model_dump(exclude_unset=True)
    )
    return response_success(user.to_dict())


@users_bp.delete("/<user_id>")
@admin_required
async def delete_user(user_id: str):
    await current_app.extensions["db"].delete_user(user_id, acting_user_id=g.current_user.id)
    return response_success(None, message="User deleted")
