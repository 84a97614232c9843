"""Runtime configuration read from environment variables."""

import os
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

_REPO_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_CONTENT_FILE = _REPO_ROOT / "data" / "homepage.json"
DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:4200"


class Settings(BaseModel):
    content_file: Path = DEFAULT_CONTENT_FILE
    cache_ttl_ms: int = Field(default=5 * 60 * 1000, ge=0)
    default_limit: int = Field(default=6, ge=1)
    max_limit: int = Field(default=100, ge=1)
    allowed_sorts: Tuple[str, ...] = ("date", "price", "title")
    allowed_orders: Tuple[str, ...] = ("asc", "desc")
    default_sort: str = "date"
    default_order: str = "desc"
    watch: bool = True
    watch_debounce_ms: int = Field(default=200, ge=0)
    cors_origins: List[str] = Field(default_factory=lambda: _split_origins(DEFAULT_CORS_ORIGINS))
    production: bool = False
    port: int = 4200

    @property
    def cache_ttl_seconds(self) -> Optional[float]:
        """TTL in seconds, or None when disabled."""
        return self.cache_ttl_ms / 1000 if self.cache_ttl_ms > 0 else None

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        values: dict = {
            "cors_origins": _split_origins(env.get("CORS_ORIGIN", DEFAULT_CORS_ORIGINS)),
            "production": env.get("APP_ENV", "").lower() == "production",
            "watch": env.get("HOMEPAGE_WATCH", "1").lower() not in ("0", "false", "no", "off"),
        }
        if env.get("HOMEPAGE_FILE"):
            values["content_file"] = Path(env["HOMEPAGE_FILE"])
        for key, name in (
            ("cache_ttl_ms", "HOMEPAGE_CACHE_TTL_MS"),
            ("default_limit", "HOMEPAGE_DEFAULT_LIMIT"),
            ("max_limit", "HOMEPAGE_MAX_LIMIT"),
            ("watch_debounce_ms", "HOMEPAGE_WATCH_DEBOUNCE_MS"),
            ("port", "PORT"),
        ):
            raw = env.get(name, "").strip()
            if raw.isdigit():
                values[key] = int(raw)
        return cls(**values)


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
