from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from availability.models import Room, RoomBlock


SEED_PASSWORD = "Harbourview123!"
SUPERUSER_EMAIL = "admin@harbourview.test"
SUPERUSER_PASSWORD = "AdminHarbourview123!"

ROOMS = [
    # room_number, name, room_type, nightly rate in paise, max guests
    ("101", "Garden Standard", "standard", 250000, 2),
    ("102", "Garden Standard", "standard", 250000, 2),
    ("201", "Harbour Deluxe", "deluxe", 420000, 3),
    ("202", "Harbour Deluxe", "deluxe", 420000, 3),
    ("301", "Lighthouse Suite", "suite", 780000, 4),
]


class Command(BaseCommand):
    help = "Populate the local development database with rooms, a guest and an admin."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Creating rooms"))
            rooms = [self._ensure_room(*row) for row in ROOMS]

            self.stdout.write(self.style.MIGRATE_HEADING("Creating users"))
            admin = self._ensure_superuser()
            self._ensure_user(
                email="guest@harbourview.test",
                first_name="Gia",
                last_name="Guest",
                phone="9800000001",
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Blocking a room for maintenance"))
            start = timezone.localdate() + timedelta(days=14)
            RoomBlock.objects.get_or_create(
                room=rooms[-1],
                start_date=start,
                defaults={
                    "end_date": start + timedelta(days=2),
                    "reason": "maintenance",
                    "notes": "Deep clean and AC service.",
                    "created_by": admin,
                },
            )

        self.stdout.write(self.style.SUCCESS("Seed data ready."))
        self.stdout.write(f"Guest login: guest@harbourview.test / {SEED_PASSWORD}")
        self.stdout.write(f"Admin login: {SUPERUSER_EMAIL} / {SUPERUSER_PASSWORD}")

    def _ensure_room(self, room_number, name, room_type, price_cents, max_guests) -> Room:
        room, _ = Room.objects.update_or_create(
            room_number=room_number,
            defaults={
                "name": name,
                "room_type": room_type,
                "base_price_cents": price_cents,
                "max_guests": max_guests,
                "is_active": True,
                "is_available": True,
            },
        )
        return room

    def _ensure_user(self, email: str, first_name: str, last_name: str, phone: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "display_name": f"{first_name} {last_name}",
                "phone": phone,
            },
        )
        if created:
            user.set_password(SEED_PASSWORD)
            user.save()
        return user

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "first_name": "Front",
                "last_name": "Desk",
                "display_name": "Front Desk",
                "is_staff": True,
                "is_superuser": True,
            },
        )
        flag_updates = {}
        if not user.is_staff:
            flag_updates["is_staff"] = True
        if not user.is_superuser:
            flag_updates["is_superuser"] = True
        if flag_updates:
            for attr, value in flag_updates.items():
                setattr(user, attr, value)
            user.save(update_fields=list(flag_updates.keys()))
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user
