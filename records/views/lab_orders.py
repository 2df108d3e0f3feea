from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.models import LabOrder
from records.permissions import IsStaffRole
from records.serializers.clinical import ClinicalListQuerySerializer, LabOrderStatusSerializer
from records.services.workflow import transition_lab_order
from records.views.paging import paginate


def lab_order_payload(o: LabOrder) -> dict:
    return {
        'id': o.id,
        'patientId': o.patient_id,
        'patientName': o.patient.name,
        'orderedBy': o.ordered_by.display_name if o.ordered_by else None,
        'technicianName': o.technician.display_name if o.technician else None,
        'tests': o.tests,
        'totalAmount': o.total_amount,
        'status': o.status,
        'billGenerated': o.bill_generated,
        'orderedAt': o.ordered_at.isoformat(),
        'completedAt': o.completed_at.isoformat() if o.completed_at else None,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def list_lab_orders(request):
    q = ClinicalListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = LabOrder.objects.select_related('patient', 'ordered_by', 'technician').order_by('-ordered_at', '-id')
    if q.validated_data.get('patientId'):
        qs = qs.filter(patient_id=q.validated_data['patientId'])
    if q.validated_data.get('status'):
        qs = qs.filter(status=q.validated_data['status'])
    rows, pagination = paginate(qs, q.validated_data)
    return Response({'ok': True, 'data': [lab_order_payload(o) for o in rows], 'pagination': pagination})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def update_lab_order_status(request):
    s = LabOrderStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    order = transition_lab_order(s.validated_data['id'], s.validated_data['status'],
                                 request.user, s.validated_data.get('reason', ''))
    return Response({'ok': True, 'data': lab_order_payload(order)})
