"""
Account lifecycle: registration, JWT issuance, e-mail verification and
password reset.

E-mail delivery is out of scope for this backend; verification and reset
links are written to the ``clinic`` logger so an operator (or a mail relay
tailing the log) can forward them.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.exceptions import AccountTokenInvalid, EmailAlreadyRegistered
from clinic.utils.tokens import (
    generate_verification_token,
    get_reset_token_expiration,
    get_token_expiration,
    is_token_expired,
)

logger = logging.getLogger(__name__)

User = get_user_model()


def normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def serialize_user(user) -> dict:
    return {
        'id': user.id,
        'name': user.name or user.get_full_name() or user.email,
        'email': user.email,
        'role': user.role,
        'phone': user.phone or None,
        'phoneVerified': user.phone_verified,
        'pendingPhone': user.pending_phone or None,
        'emailVerified': user.email_verified,
        'twoFactorEnabled': user.two_factor_enabled,
    }


def issue_tokens(user) -> dict:
    """Return an access/refresh pair whose claims carry the user's role."""
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    refresh['email'] = user.email
    return {'token': str(refresh.access_token), 'refresh': str(refresh)}


def _log_link(kind: str, email: str, path: str, token: str) -> None:
    base = getattr(settings, 'FRONTEND_URL', '').rstrip('/')
    logger.info('%s link for %s: %s/%s?token=%s', kind, email, base, path, token)


def register_user(*, name: str, email: str, password: str, role: str = 'user', phone: str = ''):
    """Create an unverified account and log its verification link.

    Raises ``EmailAlreadyRegistered`` when the address is taken, also when
    a concurrent registration wins the unique index.
    """
    email = normalize_email(email)
    if User.objects.filter(email__iexact=email).exists():
        raise EmailAlreadyRegistered()
    token = generate_verification_token()
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=email,
                email=email,
                password=password,
                name=name,
                role=role,
                phone=phone or '',
                email_verified=False,
                email_verification_token=token,
                token_expires_at=get_token_expiration(),
            )
    except IntegrityError:
        raise EmailAlreadyRegistered()
    _log_link('Verification', email, 'verify-email', token)
    logger.info('Registered user %s (%s)', user.id, role)
    return user


def verify_email(token: str):
    user = User.objects.filter(email_verification_token=token).first() if token else None
    if user is None or is_token_expired(user.token_expires_at):
        raise AccountTokenInvalid('Invalid or expired verification token')
    user.email_verified = True
    user.email_verification_token = None
    user.token_expires_at = None
    user.save(update_fields=['email_verified', 'email_verification_token', 'token_expires_at'])
    return user


def resend_verification(email: str) -> Optional[object]:
    """Issue a fresh verification token.  Returns None for unknown addresses."""
    user = User.objects.filter(email__iexact=normalize_email(email)).first()
    if user is None:
        return None
    if user.email_verified:
        raise AccountTokenInvalid('Email is already verified')
    user.email_verification_token = generate_verification_token()
    user.token_expires_at = get_token_expiration()
    user.save(update_fields=['email_verification_token', 'token_expires_at'])
    _log_link('Verification', user.email, 'verify-email', user.email_verification_token)
    return user


def request_password_reset(email: str) -> Optional[object]:
    """Issue a reset token when the account exists.

    Callers answer identically either way so the endpoint does not reveal
    which addresses are registered.
    """
    user = User.objects.filter(email__iexact=normalize_email(email), is_active=True).first()
    if user is None:
        return None
    user.reset_password_token = generate_verification_token()
    user.reset_token_expires_at = get_reset_token_expiration()
    user.save(update_fields=['reset_password_token', 'reset_token_expires_at'])
    _log_link('Password reset', user.email, 'reset-password', user.reset_password_token)
    return user


def user_for_reset_token(token: str):
    user = User.objects.filter(reset_password_token=token).first() if token else None
    if user is None or is_token_expired(user.reset_token_expires_at):
        raise AccountTokenInvalid('Invalid or expired reset token')
    return user


def reset_password(token: str, new_password: str):
    user = user_for_reset_token(token)
    user.set_password(new_password)
    user.reset_password_token = None
    user.reset_token_expires_at = None
    # following the reset link proves control of the mailbox
    user.email_verified = True
    user.save(update_fields=['password', 'reset_password_token', 'reset_token_expires_at', 'email_verified'])
    logger.info('Password reset for user %s at %s', user.id, timezone.now().isoformat())
    return user
