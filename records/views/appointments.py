from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.models import Appointment
from records.permissions import IsStaffRole
from records.serializers.clinical import ClinicalListQuerySerializer, AppointmentStatusSerializer
from records.services.workflow import transition_appointment
from records.views.paging import paginate


def appointment_payload(a: Appointment) -> dict:
    return {
        'id': a.id,
        'patientId': a.patient_id,
        'patientName': a.patient.name,
        'doctorId': a.doctor_id,
        'doctorName': a.doctor.display_name if a.doctor else None,
        'department': a.department,
        'date': a.date.isoformat(),
        'time': a.time,
        'type': a.type,
        'status': a.status,
        'consultationEndTime': a.consultation_end_time.isoformat() if a.consultation_end_time else None,
        'billId': a.bill_id,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def list_appointments(request):
    q = ClinicalListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = Appointment.objects.select_related('patient', 'doctor').order_by('-date', '-id')
    if q.validated_data.get('patientId'):
        qs = qs.filter(patient_id=q.validated_data['patientId'])
    if q.validated_data.get('status'):
        qs = qs.filter(status=q.validated_data['status'])
    # doctors see their own schedule
    if request.user.role == 'doctor':
        qs = qs.filter(doctor=request.user)
    rows, pagination = paginate(qs, q.validated_data)
    return Response({'ok': True, 'data': [appointment_payload(a) for a in rows], 'pagination': pagination})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def update_appointment_status(request):
    s = AppointmentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    apt = transition_appointment(s.validated_data['id'], s.validated_data['status'],
                                 request.user, s.validated_data.get('reason', ''))
    return Response({'ok': True, 'data': appointment_payload(apt)})
