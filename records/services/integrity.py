import logging
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from records.models import RevenueSnapshot
from records.services.reconciliation import RevenueReport
from records.services.snapshot import current_revenue_report

logger = logging.getLogger(__name__)

INTEGRITY_CACHE_KEY = 'revenue:integrity'
UPDATES_GROUP = 'updates'


def integrity_payload(refresh: bool = False) -> dict:
    """Dashboard payload for the whole hospital, served from cache when warm."""
    if not refresh:
        cached = cache.get(INTEGRITY_CACHE_KEY)
        if cached is not None:
            return cached
    report = current_revenue_report()
    payload = {'ok': True, 'generatedAt': timezone.now().isoformat(), 'data': report.to_dict()}
    cache.set(INTEGRITY_CACHE_KEY, payload, settings.REVENUE_CACHE_SECONDS)
    return payload


def invalidate_integrity() -> None:
    cache.delete(INTEGRITY_CACHE_KEY)


def broadcast_refresh(keys: list[str], now=None) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    now = now or timezone.now()
    event = {"type": "revenue.refresh", "version": int(now.timestamp()), "ts": now.isoformat(), "keys": keys[:50]}
    async_to_sync(channel_layer.group_send)(UPDATES_GROUP, event)


def record_snapshot(report: RevenueReport) -> RevenueSnapshot:
    snap = RevenueSnapshot.objects.create(
        expected_revenue=report.expected_revenue,
        captured_revenue=report.captured_revenue,
        unbilled_amount=report.unbilled_amount,
        leakage_percentage=report.leakage_percentage,
        unbilled_count=len(report.findings),
        completed_appointments=report.completed_appointments,
        completed_lab_orders=report.completed_lab_orders,
        approved_prescriptions=report.approved_prescriptions,
    )
    logger.info("revenue scan: %d unbilled worth %s, leakage %.1f%%",
                snap.unbilled_count, snap.unbilled_amount, snap.leakage_percentage)
    return snap


def snapshot_payload(snap: RevenueSnapshot) -> dict:
    return {
        'id': snap.id,
        'expectedRevenue': snap.expected_revenue,
        'capturedRevenue': snap.captured_revenue,
        'unbilledAmount': snap.unbilled_amount,
        'leakagePercentage': round(snap.leakage_percentage, 2),
        'unbilledCount': snap.unbilled_count,
        'completedAppointments': snap.completed_appointments,
        'completedLabOrders': snap.completed_lab_orders,
        'approvedPrescriptions': snap.approved_prescriptions,
        'createdAt': snap.created_at.isoformat(),
    }


def latest_snapshots(limit: Optional[int] = None) -> list[RevenueSnapshot]:
    return list(RevenueSnapshot.objects.order_by('-created_at', '-id')[:limit or 20])
