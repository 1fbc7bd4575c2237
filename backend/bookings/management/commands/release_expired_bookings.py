from datetime import timedelta

from django.core.management.base import BaseCommand

from bookings.services.expiry import release_expired


class Command(BaseCommand):
    help = "Release rooms held by pending bookings whose payment window has passed. Run from cron."

    def add_arguments(self, parser):
        parser.add_argument(
            "--minutes",
            type=int,
            default=None,
            help="Hold window in minutes (defaults to BOOKING_HOLD_MINUTES).",
        )

    def handle(self, *args, **options):
        minutes = options["minutes"]
        window = timedelta(minutes=minutes) if minutes is not None else None
        released = release_expired(window)
        if released:
            self.stdout.write(self.style.SUCCESS(f"Released {len(released)} booking(s): {', '.join(map(str, released))}"))
        else:
            self.stdout.write("No expired bookings.")
