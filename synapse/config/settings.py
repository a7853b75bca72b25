from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""  # anon key, used to resolve user tokens
    supabase_service_role_key: Optional[str] = None  # bypasses RLS; required for admin operations

    # Evolution API (WhatsApp gateway)
    evolution_api_url: Optional[str] = None
    evolution_api_key: Optional[str] = None
    evolution_webhook_url: Optional[str] = None  # where gateway events are delivered (n8n ingest)

    # n8n
    n8n_api_url: Optional[str] = None  # e.g. https://n8n.example.com/api/v1
    n8n_api_key: Optional[str] = None

    # Stripe
    stripe_secret_key: Optional[str] = None

    # OpenAI Whisper
    openai_api_key: Optional[str] = None
    transcription_language: str = "pt"

    # Admin behaviour
    membership_identity_key: str = "user_id"  # user_id | id
    allow_debug_cleanup: bool = False  # enables debug-db ?cleanup=true

    # App
    app_name: str = "synapse-backend"
    app_base_url: str = "http://localhost:5173"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    http_timeout: float = 30.0
    cors_origins: str = "*"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def require(self, *names: str) -> None:
        """Fail fast when a credential needed by an operation is not configured."""
        missing = [n for n in names if not getattr(self, n, None)]
        if missing:
            raise RuntimeError(
                f"Missing required settings: {', '.join(n.upper() for n in missing)}"
            )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
