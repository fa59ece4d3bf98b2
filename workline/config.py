# workline/config.py
from __future__ import annotations

import os
from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = Path(BASE_DIR) / ".env"
DB_DIR = BASE_DIR / "database"

# Load .env
load_dotenv(ENV_PATH)


class ServiceConfigs(BaseSettings):
    """Service-level settings: LLM endpoint, bootstrap data, limits."""

    # ====================================
    # LLM (OpenAI-compatible endpoint)
    # ====================================
    # Gemini exposes an OpenAI-compatible surface, so the OpenAI SDK talks to it directly.
    llm_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    llm_api_key: str = ""
    llm_model: str = "gemini-2.0-flash"
    llm_temperature: float = 0.4
    max_token: int = 2048
    llm_request_timeout: float = 60.0

    # ====================================
    # Bootstrap data
    # ====================================
    admin_name: str = "Admin"
    admin_email: str = "admin@iustime.com"
    admin_password: str = "admin"
    default_line_name: str = "Línea General"
    default_line_description: str = "Línea por defecto"

    # ====================================
    # Limits / locale
    # ====================================
    max_attachment_bytes: int = 5 * 1024 * 1024
    app_timezone: str = "Europe/Madrid"
    app_env: str = "development"

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH), env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def llm_enabled(self) -> bool:
        return bool(self.llm_api_key.strip())


class BaseConfig:
    """Base configuration class for Quart."""

    # ====================
    # Database Config
    # ====================
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL", f"sqlite+aiosqlite:///{(DB_DIR / 'workline.sqlite').as_posix()}"
    )
    SQLALCHEMY_ECHO = False

    # ====================
    # App Config
    # ====================
    ENV = os.getenv("APP_ENV", "development")
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-secret-key")
    SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "workline_session")
    SEED_DEFAULTS = True
    DEBUG = False
    TESTING = False

    # ====================
    # Logger Config
    # ====================
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv(
        "LOG_FORMAT", "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"
    )
    LOG_RETENTION = int(os.getenv("LOG_RETENTION", 90))
    LOG_MODE = os.getenv("LOG_MODE", "file")  # file | stdout
    LOG_CONSOLE = os.getenv("LOG_CONSOLE", "true").lower() == "true"
    LOG_CONSOLE_LEVEL = os.getenv("LOG_CONSOLE_LEVEL", "") or None

    JSON_SORT_KEYS = False


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = True
    ENV = "testing"
    LOG_MODE = "stdout"
    SQLALCHEMY_DATABASE_URI = (
        f"sqlite+aiosqlite:///{(DB_DIR / 'workline_test.sqlite').as_posix()}"
    )


class ProductionConfig(BaseConfig):
    DEBUG = False
    ENV = "production"


config_map = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[BaseConfig]:
    """Return the configuration class corresponding to the given environment."""
    if not env:
        env = os.getenv("APP_ENV", "default")
    return config_map.get(env, config_map["default"])
