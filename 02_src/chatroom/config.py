"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "chatroom.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# Retention policy
MAX_RETAINED_MESSAGES = 50
MESSAGE_TTL = timedelta(days=3)
HISTORY_LIMIT = 100
DEFAULT_SWEEP_SECONDS = 3600

DEFAULT_CORS_ORIGINS = ("http://localhost:5173",)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime settings read from the environment."""

    api_host: str = "localhost"
    api_port: int = 8000
    database_url: str | None = None
    session_secret: str = "change-me"
    session_ttl_minutes: int = 60 * 24 * 7
    relay_require_auth: bool = True
    retention_sweep_seconds: int = DEFAULT_SWEEP_SECONDS
    approved_emails: tuple[str, ...] = ()
    control_token: str | None = None
    cors_origins: tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (after load_dotenv)."""
        return cls(
            api_host=os.getenv("API_HOST", "localhost"),
            api_port=int(os.getenv("API_PORT", "8000")),
            database_url=os.getenv("DATABASE_URL"),
            session_secret=os.getenv("SESSION_SECRET", "change-me"),
            session_ttl_minutes=int(os.getenv("SESSION_TTL_MINUTES", str(60 * 24 * 7))),
            relay_require_auth=_env_bool("RELAY_REQUIRE_AUTH", True),
            retention_sweep_seconds=int(
                os.getenv("RETENTION_SWEEP_SECONDS", str(DEFAULT_SWEEP_SECONDS))
            ),
            approved_emails=_env_list("APPROVED_EMAILS"),
            control_token=os.getenv("CONTROL_TOKEN") or None,
            cors_origins=_env_list("CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
        )
