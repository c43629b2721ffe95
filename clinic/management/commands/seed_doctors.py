"""
Management command to seed demo doctors with weekly availability and slots.

Accounts are created verified with the password given by ``--password`` so
they can log in straight away.  Re-running is safe: existing doctors are
updated and slot generation skips slots that already exist.
"""
from datetime import time

from django.core.management.base import BaseCommand
from django.db import transaction

from clinic.models import Doctor, DoctorAvailability, User
from clinic.services.availability import generate_slots
from clinic.services.doctors import invalidate_list_cache

DEMO_DOCTORS = [
    {
        'name': 'Dr. Ananya Sharma', 'email': 'ananya.sharma@healthconnect.test',
        'specialization': 'Cardiology', 'mode': Doctor.MODE_BOTH, 'experience': 14,
        'qualifications': 'MBBS, MD (Medicine), DM (Cardiology)', 'consultation_fee': 900,
        'languages': 'English, Hindi', 'about': 'Interventional cardiologist focused on preventive care.',
    },
    {
        'name': 'Dr. Rahul Verma', 'email': 'rahul.verma@healthconnect.test',
        'specialization': 'Dermatology', 'mode': Doctor.MODE_ONLINE, 'experience': 8,
        'qualifications': 'MBBS, MD (Dermatology)', 'consultation_fee': 600,
        'languages': 'English, Hindi, Marathi', 'about': 'Teledermatology for acne, eczema and hair loss.',
    },
    {
        'name': 'Dr. Meera Iyer', 'email': 'meera.iyer@healthconnect.test',
        'specialization': 'Pediatrics', 'mode': Doctor.MODE_IN_PERSON, 'experience': 11,
        'qualifications': 'MBBS, DCH, MD (Pediatrics)', 'consultation_fee': 700,
        'languages': 'English, Tamil, Hindi', 'about': 'Child health, vaccination and growth monitoring.',
    },
    {
        'name': 'Dr. Arjun Nair', 'email': 'arjun.nair@healthconnect.test',
        'specialization': 'General Medicine', 'mode': Doctor.MODE_BOTH, 'experience': 6,
        'qualifications': 'MBBS', 'consultation_fee': 500,
        'languages': 'English, Malayalam', 'about': 'Primary care and chronic disease follow-up.',
    },
]

# Monday..Saturday mornings and Monday/Wednesday/Friday evenings (0 = Sunday)
WEEKLY_RULES = [(d, time(9, 0), time(13, 0)) for d in range(1, 7)] + \
               [(d, time(17, 0), time(20, 0)) for d in (1, 3, 5)]


class Command(BaseCommand):
    help = 'Seed demo doctors, their weekly availability and upcoming slots'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='Doctor@123')
        parser.add_argument('--days', type=int, default=14, help='How many days of slots to generate')

    def handle(self, *args, **options):
        total_slots = 0
        for entry in DEMO_DOCTORS:
            with transaction.atomic():
                doctor = self.ensure_doctor(entry, options['password'])
                if not doctor.availability.exists():
                    DoctorAvailability.objects.bulk_create([
                        DoctorAvailability(doctor=doctor, day_of_week=d, start_time=s, end_time=e, slot_duration=30)
                        for d, s, e in WEEKLY_RULES
                    ])
                created = generate_slots(doctor, options['days'])
            total_slots += created
            self.stdout.write(f'  {doctor.name}: {created} new slots')
        invalidate_list_cache()
        self.stdout.write(self.style.SUCCESS(f'Seeded {len(DEMO_DOCTORS)} doctors, {total_slots} new slots'))

    def ensure_doctor(self, entry: dict, password: str) -> Doctor:
        fields = {k: v for k, v in entry.items() if k != 'email'}
        email = entry['email']
        user, created = User.objects.get_or_create(
            email=email,
            defaults={'username': email, 'name': entry['name'], 'role': User.ROLE_DOCTOR, 'email_verified': True},
        )
        if created:
            user.set_password(password)
            user.save(update_fields=['password'])
        doctor, _ = Doctor.objects.update_or_create(user=user, defaults={**fields, 'is_verified': True})
        return doctor
