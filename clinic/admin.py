"""
Django admin registrations for the clinic models.

Superusers can inspect accounts, doctor listings, schedules, slots and
appointments through ``/admin/``.  Slot holds are shown read-only in the
list so a stuck hold is easy to spot; the sweeper command clears them.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    Appointment,
    CalendarEvent,
    Doctor,
    DoctorAvailability,
    DoctorDateException,
    Slot,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'role', 'email_verified', 'phone_verified', 'is_staff', 'is_superuser')
    list_filter = ('role', 'email_verified', 'phone_verified', 'two_factor_enabled')
    search_fields = ('email', 'name', 'phone')
    exclude = ('password', 'otp_code', 'email_verification_token', 'reset_password_token')


class DoctorAvailabilityInline(admin.TabularInline):
    model = DoctorAvailability
    extra = 0


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'specialization', 'mode', 'consultation_fee', 'is_verified')
    list_filter = ('mode', 'is_verified', 'specialization')
    search_fields = ('name', 'specialization', 'user__email')
    inlines = [DoctorAvailabilityInline]


@admin.register(DoctorDateException)
class DoctorDateExceptionAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'date', 'is_available', 'start_time', 'end_time')
    list_filter = ('is_available',)
    search_fields = ('doctor__name',)


@admin.register(Slot)
class SlotAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'start_time', 'end_time', 'is_booked', 'locked_until', 'locked_by')
    list_filter = ('is_booked',)
    search_fields = ('doctor__name',)
    readonly_fields = ('locked_until', 'locked_by')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'doctor', 'slot', 'type', 'status', 'created_at')
    list_filter = ('status', 'type')
    search_fields = ('id', 'user__email', 'doctor__name')
    raw_id_fields = ('slot',)


@admin.register(CalendarEvent)
class CalendarEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'title', 'type', 'status', 'start_time')
    list_filter = ('type', 'status', 'sub_type')
    search_fields = ('title', 'user__email')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action',)
    search_fields = ('action', 'user__email')
