"""Endpoints for the signed-in user's own account."""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import OtpRejected
from clinic.serializers.auth import ChangePasswordSerializer, ProfileUpdateSerializer, TwoFactorToggleSerializer
from clinic.services.accounts import serialize_user
from clinic.services.audit import client_ip, log_action
from clinic.throttling import AuthRateThrottle


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def profile(request):
    user = request.user
    if request.method == 'PUT':
        s = ProfileUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        if 'name' in s.validated_data:
            user.name = s.validated_data['name']
            user.save(update_fields=['name'])
            if user.role == 'doctor' and hasattr(user, 'doctor_profile'):
                user.doctor_profile.name = user.name
                user.doctor_profile.save(update_fields=['name', 'updated_at'])
    return Response({'ok': True, 'user': serialize_user(user)})


@api_view(['PUT', 'POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AuthRateThrottle])
def change_password(request):
    s = ChangePasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = request.user
    if not user.check_password(s.validated_data['currentPassword']):
        return Response({'ok': False, 'message': 'Current password is incorrect'}, status=status.HTTP_400_BAD_REQUEST)
    user.set_password(s.validated_data['newPassword'])
    user.save(update_fields=['password'])
    try:
        log_action(user=user, action='change_password', object_type='user', object_id=user.id,
                   detail={'ip': client_ip(request)})
    except Exception:
        pass
    return Response({'ok': True, 'message': 'Password changed successfully'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def two_factor(request):
    """Turn the SMS second factor on or off.  Enabling needs a verified phone."""
    s = TwoFactorToggleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = request.user
    enabled = s.validated_data['enabled']
    if enabled and not user.phone_verified:
        raise OtpRejected('Verify your phone number before enabling two-factor authentication')
    user.two_factor_enabled = enabled
    user.save(update_fields=['two_factor_enabled'])
    try:
        log_action(user=user, action='two_factor', object_type='user', object_id=user.id,
                   detail={'enabled': enabled})
    except Exception:
        pass
    return Response({'ok': True, 'twoFactorEnabled': enabled})
