# workline/__init__.py
from __future__ import annotations

import os
from quart import Quart
from quart_schema import QuartSchema, RequestSchemaValidationError
from werkzeug.exceptions import HTTPException

from .config import get_config
from .utils.errors import WorklineError
from .utils.helper import response_error_toast
from .utils.logger import get_logger
from .extensions import init_extensions, shutdown_extensions
from .routes.main import main_bp
from .routes.auth import auth_bp
from .routes.lines import lines_bp
from .routes.projects import projects_bp
from .routes.tasks import tasks_bp
from .routes.risks import risks_bp
from .routes.dashboard import dashboard_bp
from .routes.reviews import reviews_bp
from .routes.global_views import global_bp
from .routes.users import users_bp


async def create_app(config_object: object | None = None) -> Quart:
    """Application factory for the Workline Quart app.

    Args:
        config_object: Optional explicit configuration class.  If not
            provided, the value of the ``APP_ENV`` environment variable
            is used to determine which configuration class to load via
            :func:`get_config`.  See :mod:`workline.config` for details.

    Returns:
        A fully configured :class:`quart.Quart` application instance.
    """

    app = Quart(__name__, instance_relative_config=True)

    QuartSchema(app)

    env = os.environ.get("APP_ENV", "default")
    if config_object:
        app.config.from_object(config_object)
    else:
        app.config.from_object(get_config(env))

    logger = get_logger("quart.app")
    logger.info("Starting Workline app in %s mode", app.config["ENV"])

    await init_extensions(app)
    logger.info("Extensions initialized successfully")

    @app.after_serving
    async def _cleanup():
        await shutdown_extensions(app)
        logger.info("Extensions shutdown successfully")

    # Errors → {"status": "error", "message": ..., "time": ...}
    @app.errorhandler(WorklineError)
    async def _domain_error(error: WorklineError):
        if error.http_status >= 500:
            logger.error("Unhandled domain error: %s", error.message)
        return response_error_toast("error", error.message, error.http_status)

    @app.errorhandler(RequestSchemaValidationError)
    async def _schema_error(error: RequestSchemaValidationError):
        return response_error_toast("error", f"Invalid request: {error.validation_error}", 400)

    @app.errorhandler(HTTPException)
    async def _http_error(error: HTTPException):
        return response_error_toast("error", error.description or error.name, error.code or 500)

    @app.errorhandler(Exception)
    async def _unexpected_error(error: Exception):
        logger.exception("Unhandled error: %s", error)
        return response_error_toast("error", "Internal server error", 500)

    # Register blueprints
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(lines_bp, url_prefix="/lines")
    app.register_blueprint(projects_bp, url_prefix="/lines/<line_id>/projects")
    app.register_blueprint(tasks_bp, url_prefix="/lines/<line_id>/tasks")
    app.register_blueprint(risks_bp, url_prefix="/lines/<line_id>/risks")
    app.register_blueprint(dashboard_bp, url_prefix="/lines/<line_id>")
    app.register_blueprint(reviews_bp, url_prefix="/lines/<line_id>/reviews")
    app.register_blueprint(global_bp, url_prefix="/global")
    app.register_blueprint(users_bp, url_prefix="/users")
    logger.info("Blueprints registered")

    return app
