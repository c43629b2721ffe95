"""Opaque tokens for e-mail verification and password reset links."""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone


def generate_verification_token() -> str:
    """Return 32 random bytes as 64 hex characters."""
    return secrets.token_hex(32)


def get_token_expiration(now: Optional[datetime] = None, *, hours: Optional[int] = None) -> datetime:
    now = now or timezone.now()
    if hours is None:
        hours = settings.VERIFICATION_TOKEN_HOURS
    return now + timedelta(hours=hours)


def get_reset_token_expiration(now: Optional[datetime] = None) -> datetime:
    now = now or timezone.now()
    return now + timedelta(minutes=settings.RESET_TOKEN_MINUTES)


def is_token_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if expires_at is None:
        return True
    now = now or timezone.now()
    return now > expires_at
