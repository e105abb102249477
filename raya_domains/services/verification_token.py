"""Ownership challenge tokens and their validity windows."""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

TOKEN_PREFIX = "raya-verify="


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes coming back from the store as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def generate_verification_token() -> str:
    """Single-use proof value: `raya-verify=` followed by 32 hex chars."""
    return f"{TOKEN_PREFIX}{secrets.token_hex(16)}"


def verification_expiry(days: int, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(days=days)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if expires_at is None:
        return False
    return as_utc(expires_at) < (now or utcnow())
