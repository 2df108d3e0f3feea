"""
Medicine catalog endpoints used while writing prescriptions.
"""
import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.serializers.medicine import RecommendationQuerySerializer, AutocompleteQuerySerializer
from records.services.medicines import find_medicine, autocomplete
from records.services.recommendations import recommend_for_name, default_recommendations

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def medicine_recommendations(request):
    """Suggested dosage, frequency and duration for ``?name=``.

    Always answers 200 once a name is given; lookup problems fall back
    to the defaults with ``source: "default"``.
    """
    q = RecommendationQuerySerializer(data=request.query_params)
    if not q.is_valid() or not q.validated_data.get('name'):
        return Response({'error': 'Medicine name is required'}, status=400)
    name = q.validated_data['name']
    try:
        rec = recommend_for_name(name, find_medicine)
    except Exception:
        logger.exception("recommendation failed for %r", name)
        rec = default_recommendations(name)
    return Response(rec.to_dict())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def medicine_autocomplete(request):
    q = AutocompleteQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    term = q.validated_data.get('q') or ''
    if not term:
        return Response({'results': []})
    try:
        results = autocomplete(term, q.validated_data.get('limit') or 10)
    except Exception:
        logger.exception("medicine autocomplete failed for %r", term)
        return Response({'error': 'Failed to fetch medicine suggestions', 'results': []}, status=500)
    return Response({'results': results})


medicine_autocomplete.cls.throttle_scope = 'autocomplete'
