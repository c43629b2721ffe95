"""
Phone OTP issuance and checking.

The same six digit code machinery backs phone verification and the SMS
second factor at login.  A code lives in ``User.otp_code`` until it is used,
expires or runs out of attempts.
"""
from __future__ import annotations

import logging
import math
import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import status

from clinic.exceptions import OtpRejected
from clinic.services.sms import SmsDeliveryError, send_otp_sms
from clinic.utils.otp import generate_otp, get_otp_expiration, is_otp_expired
from clinic.utils.phone import validate_phone

logger = logging.getLogger(__name__)

User = get_user_model()

_OTP_FIELDS = ['otp_code', 'otp_expires_at', 'otp_attempts']


def _clear(user) -> None:
    user.otp_code = None
    user.otp_expires_at = None
    user.otp_attempts = 0


def _resend_wait(user, now) -> int:
    """Seconds the user must still wait before another code may be sent."""
    if not user.otp_code or not user.otp_expires_at:
        return 0
    sent_at = user.otp_expires_at - timedelta(minutes=settings.OTP_TTL_MINUTES)
    remaining = settings.OTP_RESEND_SECONDS - (now - sent_at).total_seconds()
    return max(0, math.ceil(remaining))


def _issue(user, phone: str, now) -> dict:
    wait = _resend_wait(user, now)
    if wait:
        raise OtpRejected(
            'Please wait before requesting a new OTP',
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            retryAfter=wait,
        )
    code = generate_otp()
    try:
        send_otp_sms(phone, code)
    except SmsDeliveryError:
        # nothing stored, so an immediate retry is not held back by the resend wait
        raise OtpRejected('Failed to send OTP. Please try again.', status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    user.otp_code = code
    user.otp_expires_at = get_otp_expiration(now)
    user.otp_attempts = 0
    user.save(update_fields=_OTP_FIELDS + ['phone', 'phone_verified', 'pending_phone'])
    logger.info('OTP issued to user %s', user.id)
    payload = {
        'ok': True,
        'message': 'OTP sent successfully',
        'phone': phone,
        'expiresIn': settings.OTP_TTL_MINUTES * 60,
    }
    if settings.DEBUG:
        payload['developmentOTP'] = code
    return payload


def send_phone_otp(user, phone: str, country: str | None = None, now=None) -> dict:
    """Send a verification code to ``phone``.

    A verified number stays on file until the new one is confirmed; the new
    number waits in ``pending_phone`` meanwhile.
    """
    now = now or timezone.now()
    result = validate_phone(phone, country)
    if not result['valid']:
        raise OtpRejected(result['error'])
    formatted = result['formatted']
    if user.phone_verified and user.phone == formatted:
        return {'ok': True, 'alreadyVerified': True, 'message': 'Phone number already verified', 'phone': formatted}
    if user.phone_verified:
        user.pending_phone = formatted
    else:
        user.phone = formatted
        user.pending_phone = ''
    return _issue(user, formatted, now)


def check_otp(user, otp: str, now=None) -> None:
    """Consume ``otp`` for ``user`` or raise ``OtpRejected``.

    Wrong guesses are counted; the stored code is discarded once it expires
    or the attempt budget is spent.
    """
    now = now or timezone.now()
    if not user.otp_code:
        raise OtpRejected('No OTP requested. Please request a new code.')
    if is_otp_expired(user.otp_expires_at, now):
        _clear(user)
        user.save(update_fields=_OTP_FIELDS)
        raise OtpRejected('OTP has expired. Please request a new code.', expired=True)
    max_attempts = settings.OTP_MAX_ATTEMPTS
    if user.otp_attempts >= max_attempts:
        _clear(user)
        user.save(update_fields=_OTP_FIELDS)
        raise OtpRejected('Too many failed attempts. Please request a new code.', tooManyAttempts=True)
    if not secrets.compare_digest(str(otp).strip(), user.otp_code):
        user.otp_attempts += 1
        user.save(update_fields=['otp_attempts'])
        left = max(0, max_attempts - user.otp_attempts)
        logger.info('Wrong OTP for user %s, %s attempts left', user.id, left)
        raise OtpRejected('Invalid OTP', attemptsLeft=left)
    _clear(user)


def verify_phone_otp(user, otp: str, now=None) -> dict:
    check_otp(user, otp, now)
    if user.pending_phone:
        user.phone = user.pending_phone
        user.pending_phone = ''
    user.phone_verified = True
    user.save(update_fields=_OTP_FIELDS + ['phone', 'phone_verified', 'pending_phone'])
    return {'ok': True, 'message': 'Phone number verified successfully', 'phone': user.phone, 'phoneVerified': True}


def start_login_challenge(user, now=None) -> dict:
    """Send a second-factor code to the user's verified phone."""
    now = now or timezone.now()
    if not user.phone or not user.phone_verified:
        raise OtpRejected('Two-factor authentication requires a verified phone number')
    # a login code must not confirm a number change
    user.pending_phone = ''
    return _issue(user, user.phone, now)


def complete_login_challenge(user_id, otp: str, now=None):
    user = User.objects.filter(pk=user_id, is_active=True).first()
    if user is None or not user.two_factor_enabled:
        raise OtpRejected('Two-factor authentication is not enabled for this account')
    check_otp(user, otp, now)
    user.save(update_fields=_OTP_FIELDS)
    return user
