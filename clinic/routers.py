"""
URL mappings for the HealthConnect API.

Paths mirror the ones the Angular front-end calls.  Trailing slashes are
deliberately omitted (``APPEND_SLASH`` is off).  Literal segments such as
``/api/doctors/profile`` are listed before the ``<int:...>`` routes they
share a prefix with.
"""
from datetime import date

from django.urls import include, path, register_converter

from .auth_views import (
    forgot_password_view,
    jwt_logout_view,
    jwt_refresh_view,
    login_view,
    register_view,
    resend_verification_view,
    reset_password_view,
    two_factor_verify_view,
    verify_email_view,
    verify_reset_token_view,
)
from .views import appointments, availability, calendar, doctors, health, otp, slots, users


class IsoDateConverter:
    regex = r'\d{4}-\d{2}-\d{2}'

    def to_python(self, value: str) -> date:
        # ValueError for impossible dates (2024-02-30) makes the route not match
        return date.fromisoformat(value)

    def to_url(self, value) -> str:
        return value.isoformat() if isinstance(value, date) else str(value)


register_converter(IsoDateConverter, 'isodate')


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Authentication
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/2fa/verify', two_factor_verify_view, name='two_factor_verify_view'),
    path('api/auth/verify-email', verify_email_view, name='verify_email_view'),
    path('api/auth/resend-verification', resend_verification_view, name='resend_verification_view'),
    path('api/auth/forgot-password', forgot_password_view, name='forgot_password_view'),
    path('api/auth/reset-password', reset_password_view, name='reset_password_view'),
    path('api/auth/verify-reset-token/<str:token>', verify_reset_token_view, name='verify_reset_token_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),

    # Own account
    path('api/users/profile', users.profile, name='user_profile'),
    path('api/users/change-password', users.change_password, name='change_password'),
    path('api/users/2fa', users.two_factor, name='two_factor'),

    # Phone OTP
    path('api/otp/send', otp.send_otp, name='send_otp'),
    path('api/otp/verify', otp.verify_otp, name='verify_otp'),

    # Doctors
    path('api/doctors', doctors.doctor_list, name='doctor_list'),
    path('api/doctors/register', doctors.register_doctor, name='register_doctor'),
    path('api/doctors/profile', doctors.my_profile, name='doctor_profile'),
    path('api/doctors/availability', availability.set_availability, name='set_availability'),
    path('api/doctors/availability/exceptions', availability.set_date_exceptions, name='set_date_exceptions'),
    path('api/doctors/availability/exceptions/<isodate:day>', availability.delete_date_exception,
         name='delete_date_exception'),
    path('api/doctors/my-availability/exceptions', availability.my_date_exceptions, name='my_date_exceptions'),
    path('api/doctors/<int:doctor_id>', doctors.doctor_detail, name='doctor_detail'),
    path('api/doctors/<int:doctor_id>/availability', availability.doctor_availability, name='doctor_availability'),
    path('api/doctors/<int:doctor_id>/availability/exceptions', availability.doctor_date_exceptions,
         name='doctor_date_exceptions'),
    path('api/doctors/<int:doctor_id>/slots', slots.doctor_slots, name='doctor_slots'),
    path('api/doctors/<int:doctor_id>/slots/range', slots.doctor_slot_range, name='doctor_slot_range'),

    # Admin
    path('api/admin/doctors', doctors.admin_create_doctor, name='admin_create_doctor'),
    path('api/admin/doctors/<int:doctor_id>/verify', doctors.admin_verify_doctor, name='admin_verify_doctor'),

    # Slots & holds
    path('api/slots', slots.slot_list, name='slot_list'),
    path('api/slots/lock', slots.lock_slot, name='lock_slot'),
    path('api/slots/release', slots.release_slot, name='release_slot'),

    # Appointments
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/appointments/doctor', appointments.doctor_appointments, name='doctor_appointments'),
    path('api/appointments/stats', appointments.appointment_stats, name='appointment_stats'),
    path('api/appointments/<int:appointment_id>', appointments.appointment_detail, name='appointment_detail'),
    path('api/appointments/<int:appointment_id>/cancel', appointments.cancel_appointment,
         name='cancel_appointment'),
    path('api/appointments/<int:appointment_id>/complete', appointments.complete_appointment,
         name='complete_appointment'),

    # Calendar
    path('api/calendar/events', calendar.events, name='calendar_events'),
    path('api/calendar/events/<int:event_id>', calendar.event_detail, name='calendar_event_detail'),
    path('api/calendar/log', calendar.log_activity, name='calendar_log'),
    path('api/calendar/heatmap', calendar.symptom_heatmap, name='calendar_heatmap'),
]
