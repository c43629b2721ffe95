import time

from django.core.management.base import BaseCommand

from clinic.services.slots import release_expired_locks


class Command(BaseCommand):
    help = "Clear slot holds whose deadline has passed. Runs once, or every N seconds with --interval."

    def add_arguments(self, parser):
        parser.add_argument("--interval", type=int, default=0,
                            help="Repeat every N seconds until interrupted (0 = run once).")

    def handle(self, *args, **opts):
        interval = opts["interval"]
        while True:
            count = release_expired_locks()
            self.stdout.write(self.style.SUCCESS(f"Released {count} expired slot holds"))
            if interval <= 0:
                break
            try:
                time.sleep(interval)
            except KeyboardInterrupt:
                self.stdout.write("Stopped.")
                break
