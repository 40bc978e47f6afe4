# incidents/management/commands/ensure_test_users.py
from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password

from incidents.models import User

TEST_SET = [
    ("driver1", "driver1@example.com", User.ROLE_DRIVER),
    ("hospital1", "hospital1@example.com", User.ROLE_HOSPITAL),
]


class Command(BaseCommand):
    help = "Ensure demo driver and hospital accounts exist with the given password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="dispatch123")

    def handle(self, *args, **opts):
        password = make_password(opts["password"])
        for username, email, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"email": email, "role": role, "password": password, "is_active": True},
            )
            if not created:
                # reset password, role and activation for an existing demo account
                u.email = email
                u.password = password
                u.role = role
                u.is_active = True
                u.save(update_fields=["email", "password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} <{email}> ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
