"""
Phone number validation backed by ``phonenumbers``.

Numbers are normalised to E.164 before they are stored or handed to the
SMS gateway, so ``+91 98765 43210`` and ``09876543210`` (region IN) end
up as the same ``+919876543210``.
"""
from __future__ import annotations

import re
from typing import Optional

import phonenumbers
from django.conf import settings

_WHITESPACE = re.compile(r'\s+')


def validate_phone(phone: Optional[str], country: Optional[str] = None) -> dict:
    """Return ``{'valid': bool, 'formatted': str|None, 'error': str|None}``."""
    region = (country or getattr(settings, 'OTP_DEFAULT_REGION', 'IN') or 'IN').upper()
    cleaned = _WHITESPACE.sub('', phone or '')
    if not cleaned:
        return {'valid': False, 'formatted': None, 'error': 'Phone number is required'}
    try:
        parsed = phonenumbers.parse(cleaned, region)
    except phonenumbers.NumberParseException:
        return {'valid': False, 'formatted': None, 'error': 'Invalid phone number format'}
    if not phonenumbers.is_valid_number(parsed):
        return {'valid': False, 'formatted': None, 'error': 'Invalid phone number'}
    return {
        'valid': True,
        'formatted': phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164),
        'error': None,
    }


def format_phone_for_display(phone: str) -> str:
    """International format for UI display; unparseable input is echoed back."""
    try:
        parsed = phonenumbers.parse(phone)
    except phonenumbers.NumberParseException:
        return phone
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.INTERNATIONAL)
