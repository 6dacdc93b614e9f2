"""
Application configuration using Pydantic Settings.
All config is loaded from environment variables / .env file.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # ── App ──────────────────────────────────────────────
    APP_NAME: str = "legal-case-tracker"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"  # comma-separated
    APP_URL: str = "http://localhost:5173"  # web client, used in invitation links

    # ── Supabase ─────────────────────────────────────────
    SUPABASE_URL: str
    SUPABASE_KEY: str  # anon/public key
    SUPABASE_SERVICE_KEY: str = ""  # service_role key (pipeline writes, bypasses RLS)
    SUPABASE_JWT_SECRET: str = ""  # verifies access tokens issued by Supabase Auth
    SUPABASE_JWT_AUDIENCE: str = "authenticated"
    STORAGE_BUCKET: str = "case-files"
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024  # 50MB

    # ── Session refresh (auth failures only) ─────────────
    SESSION_REFRESH_COOLDOWN_SECONDS: float = 10.0
    SESSION_MAX_REFRESH_FAILURES: int = 3
    SESSION_RETRY_DELAY_SECONDS: float = 1.0

    # ── LLM (Provider-Agnostic) ──────────────────────────
    LLM_PROVIDER: str = "gemini"  # gemini | openai | groq
    LLM_MODEL: str = "gemini-2.5-flash"
    LLM_API_KEY: str = ""
    LLM_TEMPERATURE: float = 0.2
    LLM_TIMEOUT_SECONDS: float = 60.0

    # Multimodal extraction (PDF OCR, images, DOCX, audio) goes straight to Gemini
    EXTRACTION_MODEL: str = "gemini-2.5-flash"

    # ── Embedding ────────────────────────────────────────
    EMBEDDING_PROVIDER: str = "gemini"
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    EMBEDDING_DIMENSIONS: int = 768
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0
    EMBEDDING_CONCURRENCY: int = 8

    # ── Chunking ─────────────────────────────────────────
    CHUNK_MAX_SIZE: int = 1000  # characters
    CHUNK_OVERLAP: int = 200  # characters

    # ── Retrieval / QA ───────────────────────────────────
    QA_MATCH_THRESHOLD: float = 0.5
    QA_MATCH_COUNT: int = 5
    QA_MAX_CHUNKS_PER_FILE: int = 1
    QA_MAX_CONTEXT_CHARS: int = 12000

    # ── Project search ───────────────────────────────────
    SEARCH_MATCH_THRESHOLD: float = 0.7
    SEARCH_MATCH_COUNT: int = 50

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
