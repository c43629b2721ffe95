"""
Bearer JWT authentication.

Subclasses simplejwt's ``JWTAuthentication`` so that a rejected token
tells the client whether it expired or is simply invalid.  Kept apart
from any view module so DRF can import it during settings initialisation
without circular imports.
"""
from __future__ import annotations

from datetime import datetime, timezone as dt_timezone

import jwt
from rest_framework import exceptions
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken


class TokenExpired(exceptions.AuthenticationFailed):
    default_detail = 'Token expired.'
    default_code = 'token_expired'


class TokenInvalid(exceptions.AuthenticationFailed):
    default_detail = 'Invalid token.'
    default_code = 'token_invalid'


def token_has_expired(raw_token: bytes | str) -> bool:
    """Return True when the token's ``exp`` claim lies in the past.

    The signature is not checked here; callers only use this to word the
    error for a token that already failed validation.
    """
    try:
        claims = jwt.decode(raw_token, options={'verify_signature': False, 'verify_exp': False})
    except jwt.PyJWTError:
        return False
    exp = claims.get('exp')
    if not isinstance(exp, (int, float)):
        return False
    return datetime.now(tz=dt_timezone.utc).timestamp() > exp


class BearerJWTAuthentication(JWTAuthentication):
    """``Authorization: Bearer <jwt>`` authentication."""

    def get_validated_token(self, raw_token):
        try:
            return super().get_validated_token(raw_token)
        except InvalidToken:
            if token_has_expired(raw_token):
                raise TokenExpired()
            raise TokenInvalid()
