# src/included/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Components never read settings themselves; the composition root
  (cli/bootstrap.py) passes the values they need.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "INCLUDED"

DEFAULT_NOTIFICATION_BATCH_SIZE = 10


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# A local .env never overrides real environment variables.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def clamp_batch_size(raw: int, default: int = DEFAULT_NOTIFICATION_BATCH_SIZE) -> int:
    """Notification batches are 1..100; anything else falls back to the default."""
    if raw < 1 or raw > 100:
        return default
    return raw


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    environment: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Summarization (OpenAI-compatible) ----
    openai_api_key: str | None
    openai_base_url: str
    llm_models: list[str]
    llm_connect_timeout: float
    llm_read_timeout: float
    summarization_max_attempts: int
    summarization_base_delay: float
    summarization_max_delay: float

    # ---- Email delivery (Resend) ----
    resend_api_key: str | None
    resend_base_url: str
    email_from: str
    delivery_timeout: float
    delivery_max_attempts: int
    delivery_base_delay: float
    delivery_max_delay: float

    # ---- Sweepers ----
    notification_batch_size: int
    notification_poll_interval: float
    notification_send_delay: float
    recovery_batch_size: int
    recovery_poll_interval: float

    # ---- Routing / fan-out / reports ----
    inbound_email_domain: str
    inbound_email_prefix: str
    notification_channels: list[str]
    report_newest_first: bool

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "included")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        environment = _first_env(_k("ENV"), "NODE_ENV", default="development") or "development"

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/included"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "included.sqlite3")

        openai_api_key = _first_env(_k("OPENAI_API_KEY"), "OPENAI_API_KEY", default=None)
        openai_base_url = _env(_k("OPENAI_BASE_URL"), "https://api.openai.com/v1")
        llm_models = _env_list(_k("LLM_MODELS"), ["gpt-5-mini"])
        llm_connect_timeout = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        llm_read_timeout = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 60.0)

        resend_api_key = _first_env(
            _k("RESEND_API_KEY"), "RESEND_API_KEY", "EMAIL_PROVIDER_API_KEY", default=None
        )
        resend_base_url = _env(_k("RESEND_BASE_URL"), "https://api.resend.com")
        email_from = (
            _first_env(_k("EMAIL_FROM"), "FROM_EMAIL", default="noreply@yourdomain.com")
            or "noreply@yourdomain.com"
        )

        inbound_email_domain = (
            _first_env(_k("INBOUND_EMAIL_DOMAIN"), "INBOUND_EMAIL_DOMAIN", default="included.yourdomain.com")
            or "included.yourdomain.com"
        ).strip()

        return Settings(
            app_name=app_name,
            log_level=log_level,
            environment=environment,
            console_enabled=console_enabled,
            data_dir=data_dir,
            db_path=db_path,
            openai_api_key=openai_api_key,
            openai_base_url=openai_base_url,
            llm_models=llm_models,
            llm_connect_timeout=llm_connect_timeout,
            llm_read_timeout=llm_read_timeout,
            summarization_max_attempts=max(1, _env_int(_k("SUMMARIZATION_MAX_ATTEMPTS"), 3)),
            summarization_base_delay=_env_float(_k("SUMMARIZATION_BASE_DELAY_SECONDS"), 1.0),
            summarization_max_delay=_env_float(_k("SUMMARIZATION_MAX_DELAY_SECONDS"), 10.0),
            resend_api_key=resend_api_key,
            resend_base_url=resend_base_url,
            email_from=email_from,
            delivery_timeout=_env_float(_k("DELIVERY_TIMEOUT_SECONDS"), 15.0),
            delivery_max_attempts=max(1, _env_int(_k("DELIVERY_MAX_ATTEMPTS"), 3)),
            delivery_base_delay=_env_float(_k("DELIVERY_BASE_DELAY_SECONDS"), 1.0),
            delivery_max_delay=_env_float(_k("DELIVERY_MAX_DELAY_SECONDS"), 10.0),
            notification_batch_size=clamp_batch_size(
                _env_int(_k("NOTIFICATION_BATCH_SIZE"), DEFAULT_NOTIFICATION_BATCH_SIZE)
            ),
            notification_poll_interval=_env_float(_k("NOTIFICATION_POLL_SECONDS"), 10.0),
            notification_send_delay=_env_float(_k("NOTIFICATION_SEND_DELAY_SECONDS"), 0.5),
            recovery_batch_size=max(1, _env_int(_k("RECOVERY_BATCH_SIZE"), 10)),
            recovery_poll_interval=_env_float(_k("RECOVERY_POLL_SECONDS"), 60.0),
            inbound_email_domain=inbound_email_domain,
            inbound_email_prefix=_env(_k("INBOUND_EMAIL_PREFIX"), "client_"),
            notification_channels=_env_list(_k("NOTIFICATION_CHANNELS"), ["email", "whatsapp"]),
            report_newest_first=_env_bool(_k("REPORT_NEWEST_FIRST"), True),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
