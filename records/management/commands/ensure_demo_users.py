from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password

from records.models import User

DEMO_SET = [
    ("admin1", "admin"),
    ("doctor1", "doctor"),
    ("nurse1", "nurse"),
    ("pharmacist1", "pharmacist"),
    ("reception1", "receptionist"),
    ("lab1", "lab"),
]


class Command(BaseCommand):
    help = "Ensure one demo user per staff role exists with the given password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument('--password', default='demo12345')

    def handle(self, *args, **opts):
        password = make_password(opts['password'])
        for username, role in DEMO_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": password, "is_active": True},
            )
            if not created:
                # reset password, role and active flag
                u.password = password
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
