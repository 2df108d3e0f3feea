import logging

import requests
from django.conf import settings
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.models import Patient
from records.permissions import IsClinician
from records.services.insights import assess_patient_risk

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinician])
def patient_insights(request, pk: int):
    if not settings.INSIGHTS_ENABLE:
        return Response({'ok': False, 'detail': 'AI insights are disabled'}, status=501)
    patient = Patient.objects.filter(id=pk).first()
    if not patient:
        return Response({'ok': False, 'detail': 'patient not found'}, status=404)
    try:
        data = assess_patient_risk(patient)
    except (requests.RequestException, RuntimeError) as e:
        logger.warning("risk assessment failed for patient %s: %s", pk, e)
        return Response({'ok': False, 'detail': f'AI assessment failed: {e}'}, status=502)
    return Response({'ok': True, 'data': data})
