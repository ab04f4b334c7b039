import os
from typing import Optional

from pydantic import BaseModel

from .errors import ConfigurationError

DEFAULT_MODERATION_API_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODERATION_MODEL = "google/gemini-2.5-flash"
DEFAULT_TRUSTED_EVIDENCE_DOMAIN = "drive.google.com"


class Settings(BaseModel):
    """
    Everything the engine and its clients need from the environment.
    Built once at startup and passed in explicitly, so tests can hand the
    engine a fake configuration without touching os.environ.
    """

    moderation_api_key: Optional[str] = None
    moderation_api_url: str = DEFAULT_MODERATION_API_URL
    moderation_model: str = DEFAULT_MODERATION_MODEL
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    trusted_evidence_domain: str = DEFAULT_TRUSTED_EVIDENCE_DOMAIN
    request_timeout_ms: int = 12000
    max_concurrency: int = 4
    log_level: str = "info"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            moderation_api_key=os.getenv("MODERATION_API_KEY") or os.getenv("LOVABLE_API_KEY"),
            moderation_api_url=os.getenv("MODERATION_API_URL", DEFAULT_MODERATION_API_URL),
            moderation_model=os.getenv("MODERATION_MODEL", DEFAULT_MODERATION_MODEL),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            trusted_evidence_domain=os.getenv("TRUSTED_EVIDENCE_DOMAIN", DEFAULT_TRUSTED_EVIDENCE_DOMAIN),
            request_timeout_ms=int(os.getenv("REQUEST_TIMEOUT_MS") or "12000"),
            max_concurrency=int(os.getenv("MAX_CONCURRENCY") or "4"),
            log_level=os.getenv("LOG_LEVEL", "info"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )

    @property
    def timeout_seconds(self) -> float:
        return self.request_timeout_ms / 1000.0

    def require_moderation_key(self) -> str:
        if not self.moderation_api_key or not self.moderation_api_key.strip():
            raise ConfigurationError("MODERATION_API_KEY not configured")
        return self.moderation_api_key

    def require_data_store(self) -> tuple[str, str]:
        if not self.supabase_url or not self.supabase_key:
            raise ConfigurationError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")
        return self.supabase_url.rstrip("/"), self.supabase_key
