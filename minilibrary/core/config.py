from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional
import os
import re

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """Parse ``"1d"``, ``"12h"``, ``"30m"``, ``"45s"`` or a bare number of seconds."""
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


def parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at startup and injected where needed."""

    host: str = "127.0.0.1"
    port: int = 3000
    database_url: str = "sqlite:///./minilibrary.db"
    log_level: str = "INFO"

    penalty_rate: float = 1.0
    max_loan_days: int = 365
    default_loan_days: int = 7

    jwt_secret: str = "mini-library-development-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiry: timedelta = timedelta(days=1)
    bcrypt_rounds: int = 12

    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: str = "library@example.com"

    scheduler_enabled: bool = True
    reminder_window_days: int = 3

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            host=env.get("HOST", defaults.host),
            port=int(env.get("PORT", defaults.port)),
            database_url=env.get("DATABASE_URL", defaults.database_url),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
            penalty_rate=float(env.get("PENALTY_RATE", defaults.penalty_rate)),
            max_loan_days=int(env.get("MAX_LOAN_DAYS", defaults.max_loan_days)),
            jwt_secret=env.get("JWT_SECRET", defaults.jwt_secret),
            jwt_expiry=parse_duration(env["JWT_EXPIRY"]) if "JWT_EXPIRY" in env else defaults.jwt_expiry,
            bcrypt_rounds=int(env.get("BCRYPT_ROUNDS", defaults.bcrypt_rounds)),
            smtp_host=env.get("SMTP_HOST", defaults.smtp_host),
            smtp_port=int(env.get("SMTP_PORT", defaults.smtp_port)),
            smtp_secure=parse_bool(env["SMTP_SECURE"]) if "SMTP_SECURE" in env else defaults.smtp_secure,
            smtp_user=env.get("SMTP_USER") or None,
            smtp_password=env.get("SMTP_PASSWORD") or None,
            smtp_from_email=env.get("SMTP_FROM_EMAIL", defaults.smtp_from_email),
            scheduler_enabled=(
                parse_bool(env["SCHEDULER_ENABLED"]) if "SCHEDULER_ENABLED" in env else defaults.scheduler_enabled
            ),
            reminder_window_days=int(env.get("REMINDER_WINDOW_DAYS", defaults.reminder_window_days)),
        )
