from django.core.management.base import BaseCommand
from django.utils import timezone

from records.services.integrity import (
    INTEGRITY_CACHE_KEY,
    broadcast_refresh,
    integrity_payload,
    record_snapshot,
)
from records.services.snapshot import current_revenue_report


class Command(BaseCommand):
    help = "Scan for unbilled services, store a revenue snapshot, refresh the dashboard cache and notify clients."

    def add_arguments(self, parser):
        parser.add_argument('--no-broadcast', action='store_true', help="Skip the WebSocket refresh event.")

    def handle(self, *args, **options):
        now = timezone.now()
        report = current_revenue_report()
        snap = record_snapshot(report)
        integrity_payload(refresh=True)

        if not options['no_broadcast']:
            broadcast_refresh([INTEGRITY_CACHE_KEY], now=now)

        self.stdout.write(self.style.SUCCESS(
            f"Snapshot {snap.id}: {snap.unbilled_count} unbilled services, "
            f"{snap.unbilled_amount} unbilled, leakage {snap.leakage_percentage:.1f}% at {now}"
        ))
