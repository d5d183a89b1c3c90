import re

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_SECRET_FIELDS = ("api_key", "openai_api_key", "stability_api_key", "supabase_url", "supabase_key")


def clean_secret(value: str) -> str:
    """Strip quotes and any whitespace (including line breaks) pasted into a secret."""
    return re.sub(r"[\"'\s]", "", value)


class Settings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "DEBUG"
    api_key: str = ""  # Empty = gateway auth disabled (local dev)

    openai_api_key: str = ""
    vision_model: str = "gpt-4o"
    analysis_max_tokens: int = 1500
    detection_max_tokens: int = 4000

    stability_api_key: str = ""
    stability_api_host: str = "https://api.stability.ai"
    stability_engine: str = "stable-diffusion-xl-1024-v1-0"
    stability_timeout: float = 120.0

    supabase_url: str = ""
    supabase_key: str = ""

    mock_mode: bool = False  # Canned vision/generation responses, no provider calls
    expose_client_keys: bool = False  # Gate for GET /api/get-keys

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator(*_SECRET_FIELDS)
    @classmethod
    def _clean(cls, value: str) -> str:
        return clean_secret(value)


settings = Settings()
