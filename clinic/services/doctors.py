from __future__ import annotations

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Q

from clinic.exceptions import DoctorProfileMissing, EmailAlreadyRegistered
from clinic.models import Doctor
from clinic.services.accounts import register_user

logger = logging.getLogger(__name__)

User = get_user_model()

LIST_CACHE_SECONDS = 60
_VERSION_KEY = 'doctors:version'

# profile fields a doctor may edit about themselves
PROFILE_FIELDS = ('name', 'specialization', 'mode', 'experience', 'about',
                  'qualifications', 'consultation_fee', 'languages', 'image')


def format_doctor(d: Doctor) -> dict:
    return {
        'id': d.id,
        'userId': d.user_id,
        'name': d.name,
        'specialization': d.specialization,
        'mode': d.mode,
        'experience': d.experience,
        'image': d.image,
        'about': d.about,
        'qualifications': d.qualifications,
        'consultationFee': d.consultation_fee,
        'languages': d.languages,
        'isVerified': d.is_verified,
        'email': d.user.email if d.user_id and d.user else None,
    }


def list_cache_version() -> int:
    return cache.get_or_set(_VERSION_KEY, 1, None)


def invalidate_list_cache() -> None:
    try:
        cache.incr(_VERSION_KEY)
    except ValueError:
        cache.set(_VERSION_KEY, 2, None)


def list_doctors(*, specializations: Optional[list[str]] = None, mode: Optional[str] = None,
                 search: Optional[str] = None, max_fee: Optional[int] = None,
                 min_experience: Optional[int] = None, verified_only: bool = False,
                 page: Optional[int] = None, page_size: Optional[int] = None) -> tuple[list[dict], int]:
    qs = Doctor.objects.select_related('user')
    if specializations:
        qs = qs.filter(specialization__in=specializations)
    if mode and mode != Doctor.MODE_BOTH:
        qs = qs.filter(Q(mode=mode) | Q(mode=Doctor.MODE_BOTH))
    if search:
        qs = qs.filter(name__icontains=search)
    if max_fee is not None:
        qs = qs.filter(consultation_fee__lte=max_fee)
    if min_experience is not None:
        qs = qs.filter(experience__gte=min_experience)
    if verified_only:
        qs = qs.filter(is_verified=True)

    qs = qs.order_by('-is_verified', 'name', 'id')
    total = qs.count()
    if page and page_size:
        start = (page - 1) * page_size
        qs = qs[start:start + page_size]
    return [format_doctor(d) for d in qs], total


def get_doctor(doctor_id) -> Optional[Doctor]:
    return Doctor.objects.select_related('user').filter(pk=doctor_id).first()


def doctor_for_user(user) -> Doctor:
    """Return the Doctor row linked to ``user`` or raise ``DoctorProfileMissing``."""
    doctor = Doctor.objects.select_related('user').filter(user_id=getattr(user, 'pk', None)).first()
    if doctor is None:
        raise DoctorProfileMissing()
    return doctor


def register_doctor(*, name: str, email: str, password: str, specialization: str = '',
                    phone: str = '', mode: str = Doctor.MODE_BOTH) -> Doctor:
    """Create a ``doctor`` account together with its profile row."""
    email = (email or '').strip().lower()
    if User.objects.filter(email__iexact=email).exists():
        raise EmailAlreadyRegistered()
    try:
        with transaction.atomic():
            user = register_user(name=name, email=email, password=password, role=User.ROLE_DOCTOR, phone=phone)
            doctor = Doctor.objects.create(
                user=user,
                name=name,
                specialization=specialization or None,
                mode=mode or Doctor.MODE_BOTH,
            )
    except IntegrityError:
        raise EmailAlreadyRegistered()
    invalidate_list_cache()
    logger.info('Doctor %s registered for user %s', doctor.id, user.id)
    return doctor


def create_doctor(**fields) -> Doctor:
    """Admin path: a standalone listing not tied to an account."""
    doctor = Doctor.objects.create(**fields)
    invalidate_list_cache()
    return doctor


def is_profile_complete(d: Doctor) -> bool:
    return bool(
        d.specialization
        and d.experience is not None
        and d.qualifications
        and d.consultation_fee
        and d.languages
    )


def update_profile(doctor: Doctor, changes: dict) -> tuple[Doctor, bool]:
    """Apply ``changes`` and auto-verify a newly complete profile.

    Returns the doctor and whether this update verified it.
    """
    for field in PROFILE_FIELDS:
        if field in changes:
            setattr(doctor, field, changes[field])
    verified_now = False
    if not doctor.is_verified and is_profile_complete(doctor):
        doctor.is_verified = True
        verified_now = True
    doctor.save()
    if doctor.user_id and 'name' in changes:
        User.objects.filter(pk=doctor.user_id).update(name=doctor.name)
    invalidate_list_cache()
    return doctor, verified_now


def set_verified(doctor: Doctor, verified: bool) -> Doctor:
    doctor.is_verified = verified
    doctor.save(update_fields=['is_verified', 'updated_at'])
    invalidate_list_cache()
    return doctor
