# workline/routes/auth.py
from __future__ import annotations

from quart import Blueprint, current_app, g, session
from quart_schema import validate_request

from workline.models.schemas import LoginIn
from workline.utils.auth import login_required
from workline.utils.errors import Unauthorized
from workline.utils.helper import response_success
from workline.utils.logger import get_logger


logger = get_logger(__name__)
auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/login")
@validate_request(LoginIn)
async def login(data: LoginIn):
    user = await current_app.extensions["db"].authenticate(data.email, data.password)
    if user is None:
        raise Unauthorized("invalid email or password")
    session.clear()
    session["user_id"] = user.id
    return response_success(user.to_dict(), message=f"Welcome, {user.name}")


@auth_bp.post("/logout")
async def logout():
    user_id = session.pop("user_id", None)
    session.clear()
    if user_id:
        logger.info("User %s logged out", user_id)
    return response_success(None, message="Logged out")


@auth_bp.get("/me")
@login_required
async def me():
    return response_success(g.current_user.to_dict())
