"""
Application configuration from environment variables.
Loads .env from the backend directory so settings are found regardless of cwd.
"""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env next to backend/ (parent of uninotes/); loaded explicitly so values are set even when run from repo root
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_ENV_FILE = _BACKEND_DIR / ".env"

if _ENV_FILE.exists():
    from dotenv import load_dotenv
    load_dotenv(_ENV_FILE, override=False)

_DEFAULT_ADMIN_EMAIL = "admin@uninotes.com"


class Settings(BaseSettings):
    """Load and validate config from env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Key-value store backing table. sqlite for local use; any SQLAlchemy URL works.
    database_url: str = "sqlite:///./uninotes.db"

    env: str = ""
    debug: bool = False

    # Super admin created on first run (never demotable)
    admin_email: str = _DEFAULT_ADMIN_EMAIL
    admin_full_name: str = "Super Admin"
    admin_faculty: str = "Administrator"
    admin_prodi: str = "System Management"

    # Uploads: 10 MB per file, embedded as a data URI in the note record
    max_upload_bytes: int = 10 * 1024 * 1024
    # Per-key size cap, mirrors the ~5 MB origin quota of browser storage
    storage_quota_bytes: int = 5 * 1024 * 1024

    # Optimistic concurrency: re-read and re-apply a mutation this many times on a stale revision
    write_retry_attempts: int = 3

    # Notes in "pending" upload state older than this are treated as abandoned by cleanup
    pending_upload_ttl_hours: int = 24

    # CORS: comma-separated origins
    cors_origins: str = "http://localhost:5173"

    @field_validator("admin_email", mode="before")
    @classmethod
    def _normalize_admin_email(cls, v: str) -> str:
        s = (v or "").strip().lower()
        return s or _DEFAULT_ADMIN_EMAIL

    @property
    def is_production(self) -> bool:
        return (self.env or "").strip().lower() == "production"


settings = Settings()
