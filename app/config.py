import os
from functools import lru_cache
from typing import List, Optional

from google.cloud import firestore
from pydantic import BaseModel, ConfigDict


DEFAULT_STORE_NAME = "Thunder Tactical"
DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"


class Settings(BaseModel):
    """
    Process-wide configuration, read once from the environment.
    Frozen so it can be shared between request threads.
    """

    model_config = ConfigDict(frozen=True)

    store_name: str = DEFAULT_STORE_NAME

    # Completion provider
    llm_mode: str = "openai"
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_temperature: Optional[float] = None

    # BigCommerce
    bc_store_hash: Optional[str] = None
    bc_access_token: Optional[str] = None
    bc_client_id: Optional[str] = None
    bc_api_url: Optional[str] = None
    bc_timeout_seconds: float = 10.0

    # Request handling
    intent_policy: str = "keywords"
    max_message_chars: int = 2000
    cors_origins: List[str] = ["*"]

    # Logging
    action_log_backend: str = "logging"
    log_level: str = "INFO"
    port: int = 10000

    @property
    def order_api_base_url(self) -> Optional[str]:
        if self.bc_api_url:
            return self.bc_api_url.rstrip("/")
        if self.bc_store_hash:
            return f"https://api.bigcommerce.com/stores/{self.bc_store_hash}/v3"
        return None

    @property
    def order_lookup_configured(self) -> bool:
        return bool(self.bc_access_token and self.order_api_base_url)


def _env(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def load_settings() -> Settings:
    """Build Settings from environment variables. Unset values keep their defaults."""
    values = {
        "store_name": _env("STORE_NAME"),
        "llm_mode": (_env("LLM_MODE") or "").lower() or None,
        "openai_api_key": _env("OPENAI_API_KEY"),
        "openai_model": _env("OPENAI_MODEL"),
        "openai_temperature": _env("OPENAI_TEMPERATURE"),
        "bc_store_hash": _env("BC_STORE_HASH"),
        "bc_access_token": _env("BC_ACCESS_TOKEN"),
        "bc_client_id": _env("BC_CLIENT_ID"),
        "bc_api_url": _env("BC_API_URL"),
        "bc_timeout_seconds": _env("BC_TIMEOUT_SECONDS"),
        "intent_policy": (_env("INTENT_POLICY") or "").lower() or None,
        "max_message_chars": _env("MAX_MESSAGE_CHARS"),
        "action_log_backend": (_env("ACTION_LOG_BACKEND") or "").lower() or None,
        "log_level": (_env("LOG_LEVEL") or "").upper() or None,
        "port": _env("PORT"),
    }

    origins = _env("CORS_ORIGINS")
    if origins:
        values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()] or ["*"]

    return Settings(**{k: v for k, v in values.items() if v is not None})


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_firestore_client():
    """
    Firestore client for the action log sink (ACTION_LOG_BACKEND=firestore).
    Auth is provided via GOOGLE_APPLICATION_CREDENTIALS env var.
    """
    cred_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

    if not cred_path:
        raise RuntimeError(
            "GOOGLE_APPLICATION_CREDENTIALS is not set. "
            "Point it at a service-account JSON file or use ACTION_LOG_BACKEND=logging."
        )

    return firestore.Client()
