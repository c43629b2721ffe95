"""
Outbound SMS.

When ``SMS_GATEWAY_URL`` is configured the message is POSTed there with the
API key; otherwise it is only written to the log, which is what local
development and the test-suite rely on.
"""
from __future__ import annotations

import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class SmsDeliveryError(RuntimeError):
    pass


def send_sms(phone: str, message: str) -> bool:
    """Send ``message`` to ``phone`` (E.164).  Returns True when handed off."""
    url = getattr(settings, 'SMS_GATEWAY_URL', '')
    if not url:
        logger.info('SMS gateway not configured; message for %s: %s', phone, message)
        return False
    payload = {
        'to': phone,
        'message': message,
        'sender': getattr(settings, 'SMS_SENDER_ID', ''),
    }
    headers = {'Authorization': f"Bearer {settings.SMS_API_KEY}"} if settings.SMS_API_KEY else {}
    try:
        r = requests.post(url, json=payload, headers=headers, timeout=settings.SMS_TIMEOUT)
        r.raise_for_status()
    except requests.RequestException as exc:
        logger.warning('SMS delivery to %s failed: %s', phone, exc)
        raise SmsDeliveryError(str(exc)) from exc
    logger.info('SMS sent to %s', phone)
    return True


def send_otp_sms(phone: str, otp: str) -> bool:
    minutes = settings.OTP_TTL_MINUTES
    return send_sms(phone, f"Your HealthConnect verification code is {otp}. It expires in {minutes} minutes.")
