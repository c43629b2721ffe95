"""
Database models for the HealthConnect backend.

These models capture accounts, doctors and their published availability,
bookable slots with their reservation hold, appointments and the
per-user wellness calendar.  Field names follow Django conventions; the
JSON shapes returned by the API are built in the service layer.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone


class User(AbstractUser):
    """Account with a role and the phone/email verification state.

    Roles mirror the front-end roles: 'user' (patient), 'doctor' and
    'admin'.  The e-mail address is the login identifier; ``username`` is
    kept for Django admin compatibility and defaults to the e-mail.
    """
    ROLE_USER = 'user'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_USER, 'User'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_USER, db_index=True)

    phone = models.CharField(max_length=20, blank=True)
    phone_verified = models.BooleanField(default=False)
    # number awaiting OTP confirmation while a verified one is on file
    pending_phone = models.CharField(max_length=20, blank=True)
    otp_code = models.CharField(max_length=6, blank=True, null=True)
    otp_expires_at = models.DateTimeField(blank=True, null=True)
    otp_attempts = models.PositiveSmallIntegerField(default=0)

    email_verified = models.BooleanField(default=False)
    email_verification_token = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    token_expires_at = models.DateTimeField(blank=True, null=True)
    reset_password_token = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    reset_token_expires_at = models.DateTimeField(blank=True, null=True)

    two_factor_enabled = models.BooleanField(default=False)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class Doctor(models.Model):
    """A doctor listing, optionally linked to a ``doctor`` account.

    Records created by administrators may stand alone; self-registered
    doctors are linked to their user.  Doctors are never hard-deleted by
    the API; ``is_verified`` controls whether they are promoted.
    """
    MODE_ONLINE = 'online'
    MODE_IN_PERSON = 'in-person'
    MODE_BOTH = 'both'
    MODE_CHOICES = [
        (MODE_ONLINE, 'Online'),
        (MODE_IN_PERSON, 'In person'),
        (MODE_BOTH, 'Both'),
    ]
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctor_profile'
    )
    name = models.CharField(max_length=255)
    specialization = models.CharField(max_length=255, blank=True, null=True, db_index=True)
    mode = models.CharField(max_length=10, choices=MODE_CHOICES, default=MODE_BOTH)
    experience = models.PositiveIntegerField(default=0)
    image = models.CharField(max_length=512, blank=True, null=True)
    about = models.TextField(blank=True, null=True)
    qualifications = models.CharField(max_length=512, blank=True, null=True)
    consultation_fee = models.PositiveIntegerField(default=500)
    languages = models.CharField(max_length=255, blank=True, null=True, default='English, Hindi')
    is_verified = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def supports(self, appointment_type: str) -> bool:
        return self.mode == self.MODE_BOTH or self.mode == appointment_type

    def __str__(self) -> str:
        return f"{self.name} ({self.specialization or 'general'})"


class DoctorAvailability(models.Model):
    """Weekly availability rule.  ``day_of_week`` counts from Sunday (0)."""
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='availability')
    day_of_week = models.PositiveSmallIntegerField(validators=[MaxValueValidator(6)])
    start_time = models.TimeField()
    end_time = models.TimeField()
    slot_duration = models.PositiveIntegerField(default=30)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['day_of_week', 'start_time']

    def __str__(self) -> str:
        return f"{self.doctor_id} d{self.day_of_week} {self.start_time:%H:%M}-{self.end_time:%H:%M}"


class DoctorDateException(models.Model):
    """Per-date override of the weekly schedule (day off or custom hours)."""
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='date_exceptions')
    date = models.DateField()
    is_available = models.BooleanField(default=False)
    start_time = models.TimeField(blank=True, null=True)
    end_time = models.TimeField(blank=True, null=True)
    slot_duration = models.PositiveIntegerField(default=30)

    class Meta:
        ordering = ['date']
        constraints = [
            models.UniqueConstraint(fields=['doctor', 'date'], name='uniq_doctor_exception_date'),
        ]

    def __str__(self) -> str:
        return f"{self.doctor_id} {self.date:%F} available={self.is_available}"


class Slot(models.Model):
    """A bookable interval for a doctor.

    ``locked_until``/``locked_by`` form a temporary hold placed while a user
    completes checkout.  A hold whose ``locked_until`` is in the past counts
    as released.  ``locked_by`` stores the user id, not a foreign key, so the
    hold survives user deletion without cascading.
    """
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='slots')
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    is_booked = models.BooleanField(default=False)
    locked_until = models.DateTimeField(blank=True, null=True)
    locked_by = models.PositiveBigIntegerField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['start_time']
        constraints = [
            models.UniqueConstraint(fields=['doctor', 'start_time'], name='uniq_doctor_slot_start'),
        ]
        indexes = [
            models.Index(fields=['doctor', 'start_time', 'is_booked'], name='slot_doctor_start_idx'),
            models.Index(fields=['locked_until'], name='slot_locked_until_idx'),
        ]

    def is_held(self, now=None) -> bool:
        now = now or timezone.now()
        return bool(self.locked_until and self.locked_until > now)

    def is_held_by_other(self, user_id: int, now=None) -> bool:
        return self.is_held(now) and self.locked_by != user_id

    def __str__(self) -> str:
        return f"Slot({self.doctor_id}, {self.start_time:%F %H:%M})"


class Appointment(models.Model):
    STATUS_BOOKED = 'booked'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_BOOKED, 'Booked'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    TYPE_ONLINE = 'online'
    TYPE_IN_PERSON = 'in-person'
    TYPE_CHOICES = [
        (TYPE_ONLINE, 'Online'),
        (TYPE_IN_PERSON, 'In person'),
    ]
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='appointments')
    slot = models.ForeignKey(Slot, on_delete=models.PROTECT, related_name='appointments')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_BOOKED, db_index=True)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    notes = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            # MySQL ignores conditional constraints; the booking transaction covers it there
            models.UniqueConstraint(
                fields=['slot'], condition=Q(status='booked'), name='uniq_active_appointment_per_slot'
            ),
        ]
        indexes = [
            models.Index(fields=['user', 'created_at'], name='appt_user_created_idx'),
            models.Index(fields=['doctor', 'status'], name='appt_doctor_status_idx'),
        ]

    def __str__(self) -> str:
        return f"Appointment #{self.pk} u={self.user_id} d={self.doctor_id} ({self.status})"


class CalendarEvent(models.Model):
    """Wellness, medication and vitals log entry scoped to one user."""
    TYPE_CHOICES = [
        ('appointment', 'Appointment'),
        ('order', 'Order'),
        ('ritual', 'Ritual'),
        ('medication', 'Medication'),
        ('activity', 'Activity'),
        ('vital', 'Vital'),
        ('weather_alert', 'Weather alert'),
    ]
    SUB_TYPE_CHOICES = [
        ('ayurveda', 'Ayurveda'),
        ('allopathy', 'Allopathy'),
        ('general', 'General'),
    ]
    STATUS_CHOICES = [
        ('planned', 'Planned'),
        ('completed', 'Completed'),
        ('skipped', 'Skipped'),
        ('active', 'Active'),
    ]
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='calendar_events')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(blank=True, null=True)
    type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    sub_type = models.CharField(max_length=16, choices=SUB_TYPE_CHOICES, default='general')
    category = models.CharField(max_length=100, blank=True, null=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='planned')
    value = models.CharField(max_length=100, blank=True, null=True)
    unit = models.CharField(max_length=32, blank=True, null=True)
    is_system_generated = models.BooleanField(default=False)
    intensity = models.PositiveSmallIntegerField(
        blank=True, null=True, validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    medication_info = models.JSONField(blank=True, null=True)
    metadata = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'calendar_events'
        indexes = [
            models.Index(fields=['user', 'start_time'], name='calevent_user_start_idx'),
            models.Index(fields=['user', 'type', 'start_time'], name='calevent_user_type_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.type}:{self.title} u={self.user_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.BigIntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
