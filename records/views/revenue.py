"""
Revenue integrity endpoints.

Administrators see every completed service that has no matching bill,
the expected versus captured revenue and the resulting leakage rate.
Receptionists can turn a finding into a bill.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.models import Patient
from records.permissions import IsAdminRole, CanBill
from records.serializers.revenue import (
    IntegrityQuerySerializer,
    UnbilledQuerySerializer,
    GenerateBillSerializer,
    SnapshotListQuerySerializer,
)
from records.services.billing import bill_unbilled_service, bill_payload
from records.services.integrity import (
    integrity_payload,
    invalidate_integrity,
    broadcast_refresh,
    latest_snapshots,
    snapshot_payload,
    INTEGRITY_CACHE_KEY,
)
from records.services.snapshot import current_revenue_report


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def revenue_integrity(request):
    q = IntegrityQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response(integrity_payload(refresh=q.validated_data.get('refresh', False)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def unbilled_for_patient(request):
    q = UnbilledQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    pid = q.validated_data['patientId']
    if not Patient.objects.filter(id=pid).exists():
        return Response({'ok': False, 'detail': 'patient not found'}, status=404)
    report = current_revenue_report(patient_id=pid)
    return Response({
        'ok': True,
        'data': [f.to_dict() for f in report.findings],
        'unbilledAmount': report.unbilled_amount,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanBill])
def generate_bill(request):
    s = GenerateBillSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    bill = bill_unbilled_service(s.validated_data['serviceType'], s.validated_data['id'], request.user)
    invalidate_integrity()
    broadcast_refresh([INTEGRITY_CACHE_KEY])
    return Response({'ok': True, 'data': bill_payload(bill)}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def revenue_snapshots(request):
    q = SnapshotListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    snaps = latest_snapshots(q.validated_data.get('limit'))
    return Response({'ok': True, 'data': [snapshot_payload(s) for s in snaps]})
