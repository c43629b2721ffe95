"""
Scoped rate limits for the sensitive endpoints.

DRF's stock rates only understand ``N/second|minute|hour|day``.  The OTP
limit is expressed per 15 minutes, so ``parse_rate`` here also accepts a
multiplier in the period (``5/15m``, ``100/2h``).
"""
from __future__ import annotations

import re

from rest_framework.permissions import SAFE_METHODS
from rest_framework.throttling import SimpleRateThrottle

_PERIOD_SECONDS = {'s': 1, 'm': 60, 'h': 3600, 'd': 86400}
_PERIOD_RE = re.compile(r'^(\d*)\s*([smhd])')


class WindowedRateThrottle(SimpleRateThrottle):
    """Throttle keyed on the user id, or the client IP when anonymous."""

    def parse_rate(self, rate):
        if rate is None:
            return (None, None)
        num, period = rate.split('/')
        match = _PERIOD_RE.match(period.strip().lower())
        if not match:
            raise ValueError(f"Invalid throttle period: {period!r}")
        multiplier = int(match.group(1) or 1)
        return int(num), multiplier * _PERIOD_SECONDS[match.group(2)]

    def get_cache_key(self, request, view):
        user = getattr(request, 'user', None)
        if user and user.is_authenticated:
            ident = user.pk
        else:
            ident = self.get_ident(request)
        return self.cache_format % {'scope': self.scope, 'ident': ident}


class AuthRateThrottle(WindowedRateThrottle):
    """Login, registration and password reset attempts."""
    scope = 'auth'


class OtpRateThrottle(WindowedRateThrottle):
    """OTP send/verify and second-factor attempts."""
    scope = 'otp'


class BookingRateThrottle(WindowedRateThrottle):
    """Slot holds and bookings.  Reads on the same endpoint are not counted."""
    scope = 'booking'

    def allow_request(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().allow_request(request, view)
