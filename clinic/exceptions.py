import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class BookingError(exceptions.APIException):
    """Base class for slot and appointment rule violations."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Booking request rejected.'
    default_code = 'booking_error'


class SlotNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Slot not found'
    default_code = 'slot_not_found'


class SlotUnavailable(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Slot already booked'
    default_code = 'slot_unavailable'


class SlotInPast(BookingError):
    default_detail = 'Slot has already started'
    default_code = 'slot_in_past'


class IncompatibleAppointmentType(BookingError):
    default_detail = 'Doctor does not offer this consultation type'
    default_code = 'incompatible_type'


class AppointmentNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Appointment not found'
    default_code = 'appointment_not_found'


class AppointmentStateError(BookingError):
    default_detail = 'Appointment cannot change to the requested status'
    default_code = 'invalid_transition'


class CancellationWindowClosed(BookingError):
    default_detail = 'Cannot cancel within 24 hours'
    default_code = 'cancellation_window_closed'


class DoctorProfileMissing(exceptions.APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Doctor profile not found'
    default_code = 'doctor_profile_missing'


class EmailAlreadyRegistered(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'User already exists'
    default_code = 'email_taken'


class AccountTokenInvalid(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid or expired token'
    default_code = 'account_token_invalid'


class EmailNotVerified(exceptions.APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Please verify your email before logging in.'
    default_code = 'email_not_verified'


class OtpRejected(exceptions.APIException):
    """OTP request or check refused.  Keyword extras are merged into the body."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid OTP'
    default_code = 'otp_rejected'

    def __init__(self, detail=None, *, status_code=None, **extra):
        super().__init__(detail)
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('Unhandled error in %s', getattr(view, '__class__', type(view)).__name__, exc_info=exc)
        return Response(
            {'ok': False, 'message': 'Server error', 'error': {'code': 'server_error', 'message': 'Server error'}},
            status=500,
        )
    if isinstance(exc, exceptions.NotAuthenticated):
        message = 'Access denied. No token provided.'
    else:
        message = _first_message(resp.data.get('detail', resp.data) if isinstance(resp.data, dict) else resp.data)
    codes = exc.get_codes() if isinstance(exc, exceptions.APIException) else 'api_error'
    payload = {
        'ok': False,
        'message': message,
        'error': {'code': codes if isinstance(codes, str) else 'invalid', 'message': message},
    }
    if isinstance(exc, exceptions.ValidationError):
        payload['errors'] = resp.data
    elif isinstance(exc, exceptions.Throttled) and exc.wait is not None:
        payload['retryAfter'] = int(exc.wait)
    payload.update(getattr(exc, 'extra', None) or {})
    return Response(payload, status=resp.status_code, headers=dict(resp.items()))
