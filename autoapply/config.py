"""Load settings from .env, config/settings.yaml and the process environment.

Precedence (highest first): environment variables, ``config/settings.yaml``,
the defaults on :class:`Settings`. Secrets (API keys, SMTP password) are only
ever read from the environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from autoapply.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"
DATA_DIR: Path = ROOT_DIR / "data"

DEFAULT_LOCATION = "Brasil"
MAX_UPLOAD_BYTES = 5 * 1024 * 1024


@dataclass
class Settings:
    # text-understanding collaborator (OpenAI-compatible; Groq by default)
    llm_api_key: str = ""
    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "llama-3.3-70b-versatile"
    llm_timeout: float = 30.0
    llm_max_attempts: int = 3

    # résumé extraction
    chunk_threshold: int = 8000
    chunk_size: int = 6000
    max_chunks: int = 2

    # job aggregation
    source_timeout: float = 15.0
    source_max_attempts: int = 3
    source_retry_delay: float = 2.0
    per_source_cap: int = 50
    total_cap: int = 100
    aggregate_timeout: float = 60.0
    legacy_dedupe: bool = False
    adzuna_app_id: str = ""
    adzuna_app_key: str = ""
    adzuna_country: str = "br"

    # matching
    match_limit: int = 20

    # applications
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    batch_cap: int = 5
    guest_max_applications: int = 3
    send_delay: float = 2.0

    # mail delivery
    mail_timeout: float = 20.0
    resend_api_key: str = ""
    resend_sender_email: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""

    tracker_path: str = str(DATA_DIR / "applications.csv")

    @property
    def llm_configured(self) -> bool:
        return bool(self.llm_api_key)


# Settings field -> environment variable(s), first non-empty wins.
_ENV_KEYS: dict[str, tuple[str, ...]] = {
    "llm_api_key": ("GROQ_API_KEY", "LLM_API_KEY"),
    "llm_base_url": ("LLM_BASE_URL",),
    "llm_model": ("GROQ_LLM_MODEL", "LLM_MODEL"),
    "llm_timeout": ("LLM_TIMEOUT",),
    "source_timeout": ("SOURCE_TIMEOUT",),
    "aggregate_timeout": ("AGGREGATE_TIMEOUT",),
    "legacy_dedupe": ("LEGACY_DEDUPE",),
    "adzuna_app_id": ("ADZUNA_APP_ID",),
    "adzuna_app_key": ("ADZUNA_APP_KEY",),
    "adzuna_country": ("ADZUNA_COUNTRY",),
    "batch_cap": ("BATCH_CAP",),
    "guest_max_applications": ("GUEST_MAX_APPLICATIONS",),
    "send_delay": ("SEND_DELAY",),
    "mail_timeout": ("MAIL_TIMEOUT",),
    "resend_api_key": ("RESEND_API_KEY",),
    "resend_sender_email": ("RESEND_SENDER_EMAIL",),
    "smtp_host": ("SMTP_HOST",),
    "smtp_port": ("SMTP_PORT",),
    "smtp_user": ("SMTP_USER",),
    "smtp_password": ("SMTP_PASSWORD",),
    "smtp_from": ("FROM_EMAIL",),
    "tracker_path": ("APPLICATIONS_CSV",),
}

_SECRET_FIELDS = {"llm_api_key", "adzuna_app_key", "resend_api_key", "smtp_password"}


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _coerce(value: Any, target: Any) -> Any:
    if isinstance(target, bool):
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    if isinstance(target, int):
        return int(value)
    if isinstance(target, float):
        return float(value)
    return str(value)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        log.warning("Ignoring %s: expected a mapping, got %s", path.name, type(data).__name__)
        return {}
    return data


def load_settings(path: Path | None = None, **overrides: Any) -> Settings:
    """Build :class:`Settings` from YAML, environment and keyword overrides."""
    settings = Settings()
    known = {f.name for f in fields(Settings)}

    for key, value in _load_yaml(path or SETTINGS_PATH).items():
        if key in _SECRET_FIELDS:
            log.warning("Ignoring secret %r in settings.yaml — set it in .env", key)
            continue
        if key not in known:
            log.warning("Unknown setting %r in settings.yaml", key)
            continue
        setattr(settings, key, _coerce(value, getattr(settings, key)))

    for attr, env_names in _ENV_KEYS.items():
        for env_name in env_names:
            raw = get_env(env_name)
            if not raw:
                continue
            try:
                setattr(settings, attr, _coerce(raw, getattr(settings, attr)))
            except ValueError:
                log.warning("Invalid value for %s=%r, keeping %r", env_name, raw, getattr(settings, attr))
            break

    for key, value in overrides.items():
        if key not in known:
            raise TypeError(f"Unknown setting: {key}")
        setattr(settings, key, value)

    if not settings.smtp_from:
        settings.smtp_from = settings.smtp_user
    return settings
