# workline/routes/main.py
from __future__ import annotations

from quart import Blueprint, current_app

from workline.utils.helper import local_now_iso, response_success
from workline.utils.logger import get_logger


logger = get_logger(__name__)
main_bp = Blueprint("main", __name__)


@main_bp.get("/")
async def index():
    """Service banner with the endpoint groups."""
    return response_success(
        {
            "name": "workline",
            "env": current_app.config.get("ENV"),
            "groups": ["/auth", "/lines", "/global", "/users"],
        }
    )


@main_bp.get("/health")
async def health():
    cfg = current_app.extensions["service_configs"]
    return response_success(
        {
            "db": "ok" if current_app.extensions.get("db") else "missing",
            "llm": "configured" if cfg.llm_enabled else "simulated",
            "time": local_now_iso(),
        }
    )
