import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_SECRET_KEY = "change-me"


def load_env(env_path: Optional[Path] = None) -> bool:
    """Load .env from project root if present.
    Existing environment variables win over values from the file.
    """
    env_path = env_path or Path.cwd() / ".env"
    if not env_path.exists():
        return False
    return load_dotenv(dotenv_path=env_path, override=False)


@dataclass
class Config:
    db_path: Path = Path("data/jobs.db")
    secret_key: str = DEFAULT_SECRET_KEY
    token_ttl_minutes: int = 0  # 0 = tokens never expire
    host: str = "127.0.0.1"
    port: int = 2200
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_account: str = ""
    smtp_password: str = ""
    log_level: str = "INFO"

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_account and self.smtp_password)


def _get_int(key: str, default: int) -> int:
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {key} must be an integer, got {raw!r}")


def load_config() -> Config:
    """Build a Config from environment variables (call load_env first)."""
    return Config(
        db_path=Path(os.environ.get("GRADJOBS_DB_PATH", "data/jobs.db")),
        secret_key=os.environ.get("GRADJOBS_SECRET_KEY", DEFAULT_SECRET_KEY),
        token_ttl_minutes=_get_int("GRADJOBS_TOKEN_TTL_MINUTES", 0),
        host=os.environ.get("GRADJOBS_HOST", "127.0.0.1"),
        port=_get_int("GRADJOBS_PORT", 2200),
        smtp_host=os.environ.get("GRADJOBS_SMTP_HOST", "smtp.gmail.com"),
        smtp_port=_get_int("GRADJOBS_SMTP_PORT", 587),
        smtp_account=os.environ.get("GMAIL_ACCOUNT", "").strip(),
        smtp_password=os.environ.get("GMAIL_PASSWORD", "").strip(),
        log_level=os.environ.get("GRADJOBS_LOG_LEVEL", "INFO"),
    )
