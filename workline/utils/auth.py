# workline/utils/auth.py
"""
Session-based access control.

The signed Quart session carries ``user_id``. Handlers are wrapped with
one of the decorators below; the resolved user is stored on ``g.current_user``.

- ``login_required``: any authenticated user.
- ``admin_required``: role ``ADMIN``.
- ``line_access``: admins, or the user assigned to the ``line_id`` URL part.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Awaitable, Callable

from quart import current_app, g, session

from workline.models.models import User
from workline.utils.errors import Forbidden, NotFoundError, Unauthorized
from workline.utils.logger import get_logger

logger = get_logger(__name__)

Handler = Callable[..., Awaitable[Any]]


async def load_current_user() -> User:
    user_id = session.get("user_id")
    if not user_id:
        raise Unauthorized("authentication required")
    try:
        user = await current_app.extensions["db"].get_user(user_id)
    except NotFoundError:
        # account deleted while the session was still alive
        session.clear()
        raise Unauthorized("authentication required")
    g.current_user = user
    return user


def can_access_line(user: User, line_id: str) -> bool:
    return user.is_admin or (user.assigned_line_id is not None and user.assigned_line_id == line_id)


def login_required(func: Handler) -> Handler:
    @wraps(func)
    async def wrapper(*args, **kwargs):
        await load_current_user()
        return await func(*args, **kwargs)

    return wrapper


def admin_required(func: Handler) -> Handler:
    @wraps(func)
    async def wrapper(*args, **kwargs):
        user = await load_current_user()
        if not user.is_admin:
            logger.info("User %s denied admin endpoint %s", user.id, func.__name__)
            raise Forbidden("administrator role required")
        return await func(*args, **kwargs)

    return wrapper


def line_access(func: Handler) -> Handler:
    @wraps(func)
    async def wrapper(*args, **kwargs):
        user = await load_current_user()
        line_id = kwargs.get("line_id")
        if not can_access_line(user, line_id):
            logger.info("User %s denied access to line %s", user.id, line_id)
            raise Forbidden("you do not have access to this line")
        return await func(*args, **kwargs)

    return wrapper
