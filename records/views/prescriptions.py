"""
Prescription listing and pharmacy processing.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.models import Prescription
from records.permissions import IsStaffRole, IsPharmacyRole
from records.serializers.clinical import ClinicalListQuerySerializer, PrescriptionProcessSerializer
from records.services.workflow import process_prescription
from records.views.paging import paginate


def prescription_payload(rx: Prescription) -> dict:
    return {
        'id': rx.id,
        'patientId': rx.patient_id,
        'patientName': rx.patient.name,
        'doctorName': rx.doctor.display_name if rx.doctor else None,
        'medicines': rx.medicines,
        'status': rx.status,
        'notes': rx.notes,
        'processedBy': rx.processed_by.display_name if rx.processed_by else None,
        'processedAt': rx.processed_at.isoformat() if rx.processed_at else None,
        'createdAt': rx.created_at.isoformat(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def list_prescriptions(request):
    q = ClinicalListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = Prescription.objects.select_related('patient', 'doctor', 'processed_by').order_by('-created_at', '-id')
    if q.validated_data.get('patientId'):
        qs = qs.filter(patient_id=q.validated_data['patientId'])
    if q.validated_data.get('status'):
        qs = qs.filter(status=q.validated_data['status'])
    rows, pagination = paginate(qs, q.validated_data)
    return Response({'ok': True, 'data': [prescription_payload(r) for r in rows], 'pagination': pagination})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPharmacyRole])
def process_prescription_view(request):
    """Approve or reject a pending prescription (pharmacist)."""
    s = PrescriptionProcessSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rx = process_prescription(s.validated_data['id'], s.validated_data['action'] == 'approve',
                              request.user, s.validated_data.get('notes', ''))
    return Response({'ok': True, 'data': prescription_payload(rx)})
