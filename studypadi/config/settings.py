"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Two sources, highest priority first:
#
#   1. Environment variables -- e.g. LLM_API_KEY=sk-abc123
#   2. .env file             -- key=value lines in the project root
#
# Field ``llm_api_key`` maps to env var ``LLM_API_KEY``.  Defaults apply
# when neither source sets a value.  The .env file is never committed;
# copy .env.example instead.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """StudyPadi application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === AI gateway (any OpenAI-compatible chat-completions endpoint) ===
    llm_api_key: str = ""
    llm_base_url: str = ""  # Empty = api.openai.com
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 8000
    llm_timeout_seconds: float = Field(default=60.0, gt=0)
    # False = ask for raw JSON in the message body instead of a function call.
    llm_use_function_calling: bool = True

    # === Ingestion limits ===
    max_upload_bytes: int = 10 * 1024 * 1024
    min_content_chars: int = 50
    min_pdf_text_chars: int = 20
    max_input_chars: int = 30_000
    persist_sections_concurrently: bool = False
    # Session snapshots kept for status polling; least recently updated go first.
    max_tracked_sessions: int = Field(default=500, gt=0)

    # === Storage ===
    database_path: str = "data/studypadi.db"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def is_llm_configured(self) -> bool:
        """Return ``True`` when an API key for the AI gateway is present."""
        return bool(self.llm_api_key)
