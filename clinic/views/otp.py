"""Phone verification by SMS one-time passcode."""
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.serializers.auth import OtpSendSerializer, OtpVerifySerializer
from clinic.services.otp import send_phone_otp, verify_phone_otp
from clinic.throttling import OtpRateThrottle


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([OtpRateThrottle])
def send_otp(request):
    """Send a code to ``phone`` (normalised to E.164).

    Answers 429 with ``retryAfter`` when a code was sent less than
    ``OTP_RESEND_SECONDS`` ago.  With ``DEBUG`` on the code is echoed as
    ``developmentOTP``.
    """
    s = OtpSendSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    payload = send_phone_otp(request.user, s.validated_data['phone'], s.validated_data.get('country'))
    return Response(payload)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([OtpRateThrottle])
def verify_otp(request):
    s = OtpVerifySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return Response(verify_phone_otp(request.user, s.validated_data['otp']))
