from django.core.management.base import BaseCommand

from clinic.models import Doctor, User


class Command(BaseCommand):
    help = "Set a known password on a test account, creating it (verified) when missing. Idempotent."

    def add_arguments(self, parser):
        parser.add_argument("--email", default="testdoc@example.com")
        parser.add_argument("--password", default="password123")
        parser.add_argument("--role", choices=[r for r, _ in User.ROLE_CHOICES], default=User.ROLE_DOCTOR)

    def handle(self, *args, **opts):
        email = opts["email"].strip().lower()
        role = opts["role"]
        u, created = User.objects.get_or_create(
            email=email,
            defaults={"username": email, "name": email.split("@")[0], "role": role},
        )
        u.set_password(opts["password"])
        u.email_verified = True
        u.is_active = True
        u.role = role
        u.save()
        if u.role == User.ROLE_DOCTOR and not Doctor.objects.filter(user=u).exists():
            Doctor.objects.create(user=u, name=u.name or email)
        verb = "created" if created else "updated"
        self.stdout.write(self.style.SUCCESS(f"ok: {email} ({u.role}) {verb}"))
