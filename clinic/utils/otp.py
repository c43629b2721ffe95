"""One-time passcode helpers used for phone verification."""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

OTP_LENGTH = 6


def generate_otp() -> str:
    """Return a random six digit code (leading zeros allowed)."""
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


def get_otp_expiration(now: Optional[datetime] = None) -> datetime:
    now = now or timezone.now()
    return now + timedelta(minutes=settings.OTP_TTL_MINUTES)


def is_otp_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True once ``now`` is strictly past ``expires_at``.

    A missing expiry counts as expired.  At the exact expiry instant the
    code is still valid.
    """
    if expires_at is None:
        return True
    now = now or timezone.now()
    return now > expires_at
