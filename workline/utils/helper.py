# workline/utils/helper.py
from __future__ import annotations

import json
import uuid
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from quart import current_app, has_app_context, jsonify

DEFAULT_TZ = "Europe/Madrid"


def new_id(prefix: str) -> str:
    """Opaque record id with a readable type prefix, e.g. ``proj-3f2a9c0d41b7``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def stringify(obj: Any, limit: int = 4000) -> str:
    try:
        s = obj if isinstance(obj, str) else json.dumps(obj, ensure_ascii=False)
        if len(s) > limit:
            return s[: limit - 3] + "..."
        return s
    except Exception:
        return str(obj)[:limit]


def _app_tz() -> ZoneInfo:
    name = DEFAULT_TZ
    if has_app_context():
        cfg = current_app.extensions.get("service_configs")
        name = getattr(cfg, "app_timezone", None) or DEFAULT_TZ
    return ZoneInfo(name)


def local_now() -> datetime:
    """Current time in the app timezone (``APP_TIMEZONE``)."""
    return datetime.now(_app_tz())


def local_today() -> date:
    return local_now().date()


def local_now_iso(timespec: str = "seconds") -> str:
    """ISO-8601 local time, e.g. 2025-08-17T01:55:12+02:00."""
    return local_now().isoformat(timespec=timespec)


def response_error_toast(status: str, message: str, http_status: int = 500):
    return jsonify(
        {"status": status, "message": message, "time": local_now_iso()}
    ), http_status


def response_success(data: Any = None, message: str | None = None, http_status: int = 200):
    payload: dict[str, Any] = {"status": "success", "data": data}
    if message:
        payload["message"] = message
    return jsonify(payload), http_status
