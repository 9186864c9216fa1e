from pydantic import model_validator
from pydantic_settings import BaseSettings
from functools import lru_cache
import logging
import secrets

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Server
    port: int = 8000

    # Storage
    storage_backend: str = "memory"
    supabase_url: str = ""
    supabase_service_key: str = ""

    # Auth
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7
    bcrypt_rounds: int = 10

    # Recipe generation
    generator_backend: str = "template"
    openai_api_key: str = ""
    openai_model: str = "gpt-4.1-mini-2025-04-14"
    generator_timeout_seconds: float = 30.0
    history_limit: int = 50

    # App
    rate_limit_enabled: bool = True
    frontend_url: str = "http://localhost:3000"
    allowed_hosts: list[str] = []
    log_level: str = "INFO"
    debug: bool = False

    class Config:
        env_file = ".env"

    @model_validator(mode="after")
    def _ensure_jwt_secret(self) -> "Settings":
        if not self.jwt_secret:
            logger.warning(
                "JWT_SECRET not set. Using a random per-process secret; "
                "tokens will not survive a restart or work across workers."
            )
            self.jwt_secret = secrets.token_hex(32)
        return self

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def create_supabase_client(settings: Settings):
    """Create a Supabase admin client. Raises RuntimeError if keys are missing."""
    if not settings.supabase_configured:
        raise RuntimeError(
            "Supabase storage selected but SUPABASE_URL or SUPABASE_SERVICE_KEY is not set."
        )

    from supabase import create_client

    client = create_client(settings.supabase_url, settings.supabase_service_key)
    logger.info("Supabase client initialized successfully.")
    return client
