"""Configuration management for the Enclave campaign manager."""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_DB_PATH = PROJECT_ROOT / "enclave.db"


class LLMConfig(BaseModel):
    """Language model provider configuration."""

    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    timeout: float = 120.0
    temperature: float = 0.0


class AuthConfig(BaseModel):
    """Token lifetimes for the auth service."""

    access_token_ttl: int = 60 * 60
    refresh_token_ttl: int = 60 * 60 * 24 * 30


class StorageConfig(BaseModel):
    """Object storage configuration."""

    root: Path = PROJECT_ROOT / "storage"
    class_pdf_bucket: str = "class-pdfs"
    rules_pdf_bucket: str = "rules-pdfs"
    signed_url_ttl: int = 300
    max_upload_bytes: int = 25 * 1024 * 1024


class StarterConfig(BaseModel):
    """Content unlocked for new accounts."""

    rules_pdf_id: Optional[int] = None
    class_ids: List[int] = Field(default_factory=list)
    unlock_days: int = 30


class SystemMessage(BaseModel):
    """Site-wide banner shown above every page."""

    id: str = "default"
    level: str = "info"
    text: str


class Settings(BaseModel):
    """Main application configuration."""

    database_url: str = f"sqlite:///{DEFAULT_DB_PATH}"
    secret_key: str = "enclave-dev-key"
    log_level: str = "INFO"
    llm: LLMConfig = Field(default_factory=LLMConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    starter: StarterConfig = Field(default_factory=StarterConfig)
    system_message: Optional[SystemMessage] = None


def _int_list(value: str) -> List[int]:
    return [int(part) for part in value.split(",") if part.strip()]


def load_system_message(env=None) -> Optional[SystemMessage]:
    """Read the banner settings; returns None unless enabled and non-empty."""
    env = os.environ if env is None else env
    if env.get("SYSTEM_MESSAGE_ENABLED") != "true":
        return None
    text = env.get("SYSTEM_MESSAGE_TEXT", "")
    if not text:
        return None
    return SystemMessage(
        id=env.get("SYSTEM_MESSAGE_ID", "default"),
        level=env.get("SYSTEM_MESSAGE_LEVEL", "info"),
        text=text,
    )


def load_settings(env=None) -> Settings:
    """Build settings from environment variables.

    Args:
        env: Mapping to read from (defaults to os.environ)

    Returns:
        Settings with defaults for anything not set
    """
    env = os.environ if env is None else env
    settings = Settings()

    if env.get("ENCLAVE_DATABASE_URL"):
        settings.database_url = env["ENCLAVE_DATABASE_URL"]
    if env.get("ENCLAVE_SECRET_KEY"):
        settings.secret_key = env["ENCLAVE_SECRET_KEY"]
    if env.get("ENCLAVE_LOG_LEVEL"):
        settings.log_level = env["ENCLAVE_LOG_LEVEL"].upper()

    settings.llm.api_key = env.get("OPENAI_API_KEY")
    if env.get("ENCLAVE_LLM_MODEL"):
        settings.llm.model = env["ENCLAVE_LLM_MODEL"]
    if env.get("ENCLAVE_LLM_TIMEOUT"):
        settings.llm.timeout = float(env["ENCLAVE_LLM_TIMEOUT"])

    if env.get("ENCLAVE_ACCESS_TOKEN_TTL"):
        settings.auth.access_token_ttl = int(env["ENCLAVE_ACCESS_TOKEN_TTL"])
    if env.get("ENCLAVE_REFRESH_TOKEN_TTL"):
        settings.auth.refresh_token_ttl = int(env["ENCLAVE_REFRESH_TOKEN_TTL"])

    if env.get("ENCLAVE_STORAGE_DIR"):
        settings.storage.root = Path(env["ENCLAVE_STORAGE_DIR"])
    if env.get("ENCLAVE_CLASS_PDF_BUCKET"):
        settings.storage.class_pdf_bucket = env["ENCLAVE_CLASS_PDF_BUCKET"]
    if env.get("ENCLAVE_RULES_PDF_BUCKET"):
        settings.storage.rules_pdf_bucket = env["ENCLAVE_RULES_PDF_BUCKET"]
    ttl = env.get("ENCLAVE_PDF_SIGNED_URL_TTL", "")
    if ttl.isdigit() and int(ttl) > 0:
        settings.storage.signed_url_ttl = int(ttl)

    if env.get("ENCLAVE_STARTER_RULES_PDF_ID"):
        settings.starter.rules_pdf_id = int(env["ENCLAVE_STARTER_RULES_PDF_ID"])
    if env.get("ENCLAVE_STARTER_CLASS_IDS"):
        settings.starter.class_ids = _int_list(env["ENCLAVE_STARTER_CLASS_IDS"])
    if env.get("ENCLAVE_STARTER_UNLOCK_DAYS"):
        settings.starter.unlock_days = int(env["ENCLAVE_STARTER_UNLOCK_DAYS"])

    settings.system_message = load_system_message(env)
    return settings
