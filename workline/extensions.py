# workline/extensions.py
from __future__ import annotations

from quart import Quart

from .config import ServiceConfigs
from .models.database import ModelDB
from .services.llm_chain.llm_chains import LLMChains
from .utils.logger import get_logger


async def init_extensions(app: Quart) -> None:
    """Initialise the store and the LLM client and attach them to ``app.extensions``.

    Called once when the application starts.
    """

    logger = get_logger(__name__)

    # Load service configuration from environment (via pydantic)
    service_configs = ServiceConfigs()
    app.extensions["service_configs"] = service_configs
    logger.info(
        "ServiceConfigs loaded: LLM model = %s, timezone = %s",
        service_configs.llm_model,
        service_configs.app_timezone,
    )

    # Without an API key the review generator returns simulated drafts
    if service_configs.llm_enabled:
        app.extensions["llm"] = LLMChains(service_configs)
        logger.info("LLM client ready at %s", service_configs.llm_base_url)
    else:
        app.extensions["llm"] = None
        logger.warning("LLM_API_KEY is empty; review drafts will be simulated")

    # Initialise Models Database
    models_db = ModelDB(
        app.config["SQLALCHEMY_DATABASE_URI"], echo=app.config.get("SQLALCHEMY_ECHO", False)
    )
    await models_db.init_models()
    if app.config.get("SEED_DEFAULTS", True):
        await models_db.seed_defaults(service_configs)
    app.extensions["db"] = models_db


async def shutdown_extensions(app: Quart) -> None:
    """Release the LLM HTTP client and the database engine."""
    logger = get_logger(__name__)

    llm = app.extensions.get("llm")
    if isinstance(llm, LLMChains):
        await llm.aclose()
        logger.info("LLM client closed")

    db = app.extensions.get("db")
    if db is not None:
        await db.dispose()
        logger.info("Database engine disposed")
