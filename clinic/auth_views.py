"""
Authentication views.

Registration, password login with an optional SMS second factor, e-mail
verification, password reset and JWT refresh/logout.  Kept apart from the
authentication class (see ``clinic.authentication``) so DRF can import that
class during settings initialisation without circular imports.
"""
from __future__ import annotations

from django.conf import settings
from django.contrib.auth import authenticate
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.authentication import TokenInvalid
from clinic.exceptions import EmailNotVerified
from clinic.serializers.auth import (
    EmailSerializer,
    LoginSerializer,
    RegisterSerializer,
    ResetPasswordSerializer,
    TokenSerializer,
    TwoFactorVerifySerializer,
)
from clinic.services import accounts
from clinic.services.audit import client_ip, log_action
from clinic.services.doctors import register_doctor
from clinic.services.otp import complete_login_challenge, start_login_challenge
from clinic.throttling import AuthRateThrottle, OtpRateThrottle

GENERIC_RESET_MESSAGE = 'If an account exists with that email, you will receive a password reset link shortly.'


def _audit(user, action: str, request, **detail) -> None:
    try:
        log_action(user=user, action=action, object_type='user', object_id=getattr(user, 'id', None),
                   detail={'ip': client_ip(request), **detail})
    except Exception:
        pass


def _login_payload(user) -> dict:
    tokens = accounts.issue_tokens(user)
    return {'ok': True, **tokens, 'user': accounts.serialize_user(user)}


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def register_view(request):
    """Create an account.  The e-mail must be verified before login."""
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    if vd['role'] == 'doctor':
        doctor = register_doctor(name=vd['name'], email=vd['email'], password=vd['password'],
                                 phone=vd.get('phone', ''))
        user = doctor.user
    else:
        user = accounts.register_user(name=vd['name'], email=vd['email'], password=vd['password'],
                                      role='user', phone=vd.get('phone', ''))
    _audit(user, 'register', request, role=user.role)
    return Response({
        'ok': True,
        'message': 'Registration successful! Please check your email to verify your account before logging in.',
        'user': accounts.serialize_user(user),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def login_view(request):
    """
    Password login by e-mail.

    Returns ``{token, refresh, user}``; the access token carries the
    ``role`` claim.  Accounts with two-factor enabled get
    ``{require2FA: true, userId, role}`` instead and finish through
    ``/api/auth/2fa/verify``.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = accounts.normalize_email(s.validated_data['email'])
    password = s.validated_data['password']

    user = authenticate(request, username=email, password=password)
    if not user:
        _audit(None, 'login', request, result='fail', email=email)
        return Response({'ok': False, 'message': 'Invalid credentials'}, status=status.HTTP_400_BAD_REQUEST)

    if settings.REQUIRE_EMAIL_VERIFICATION and not user.email_verified and not user.is_superuser:
        _audit(user, 'login', request, result='unverified')
        raise EmailNotVerified()

    if user.two_factor_enabled:
        start_login_challenge(user)
        _audit(user, 'login', request, result='2fa_required')
        return Response({
            'ok': True,
            'require2FA': True,
            'userId': user.id,
            'role': user.role,
            'message': 'Two-factor authentication required',
        })

    _audit(user, 'login', request, result='ok')
    return Response(_login_payload(user))


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([OtpRateThrottle])
def two_factor_verify_view(request):
    s = TwoFactorVerifySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = complete_login_challenge(s.validated_data['userId'], s.validated_data['otp'])
    _audit(user, 'login', request, result='ok', factor='sms')
    return Response(_login_payload(user))


@api_view(['POST'])
@permission_classes([AllowAny])
def verify_email_view(request):
    s = TokenSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.verify_email(s.validated_data['token'])
    _audit(user, 'verify_email', request)
    return Response({'ok': True, 'message': 'Email verified successfully! You can now log in.',
                     'user': accounts.serialize_user(user)})


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def resend_verification_view(request):
    s = EmailSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.resend_verification(s.validated_data['email'])
    if user is None:
        return Response({'ok': False, 'message': 'User not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'ok': True, 'message': 'Verification email sent successfully'})


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def forgot_password_view(request):
    s = EmailSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.request_password_reset(s.validated_data['email'])
    if user is not None:
        _audit(user, 'forgot_password', request)
    return Response({'ok': True, 'message': GENERIC_RESET_MESSAGE})


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def reset_password_view(request):
    s = ResetPasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.reset_password(s.validated_data['token'], s.validated_data['password'])
    _audit(user, 'reset_password', request)
    return Response({'ok': True, 'message': 'Password has been reset successfully. You can now log in.'})


@api_view(['GET'])
@permission_classes([AllowAny])
def verify_reset_token_view(request, token: str):
    user = accounts.user_for_reset_token(token)
    return Response({'ok': True, 'valid': True, 'user': {'email': user.email, 'name': user.name}})


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    s = TokenRefreshSerializer(data=request.data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError:
        raise TokenInvalid()
    data = dict(s.validated_data)
    return Response({'ok': True, 'token': data['access'], **({'refresh': data['refresh']} if 'refresh' in data else {})})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the user."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError:
            raise TokenInvalid()
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    _audit(request.user, 'logout', request, blacklisted=count)
    return Response({'ok': True, 'blacklisted': count})
