# src/ingest_enrich/config.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_repo_root(start: Path) -> Path:
    """
    Best-effort repository root discovery.
    - Prefer the closest ancestor containing `pyproject.toml`.
    - Fallback to the start directory if not found.
    """
    cur = start.resolve()
    for _ in range(20):
        if (cur / "pyproject.toml").exists():
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent
    return start.resolve()


PACKAGE_ROOT = Path(__file__).resolve().parent
REPO_ROOT = _find_repo_root(PACKAGE_ROOT)

# Load .env into process environment early so downstream clients can read it.
load_dotenv(str(REPO_ROOT / ".env"), override=False)

LOCAL_ROOT = REPO_ROOT / ".Local"


class Settings(BaseSettings):
    DEBUG: bool = False

    PROJECT_ROOT: str = str(REPO_ROOT)

    # reference index store (SQL side)
    INGEST_ENRICH_DATABASE_URL: Optional[str] = None

    # optional Elasticsearch/OpenSearch compatible search backend
    INGEST_ENRICH_SEARCH_ENDPOINT: Optional[str] = None
    INGEST_ENRICH_SEARCH_TIMEOUT_S: float = 30.0

    INGEST_ENRICH_DEFAULT_MAX_MATCHES: int = 1
    INGEST_ENRICH_LOG_LEVEL: str = "INFO"

    @property
    def local_db_path(self) -> Path:
        return LOCAL_ROOT / "ingest_enrich.db"

    model_config = SettingsConfigDict(
        env_file=str(REPO_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
