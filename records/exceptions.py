import logging

from django.core.exceptions import ObjectDoesNotExist
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        if isinstance(exc, ObjectDoesNotExist):
            return Response({'ok': False, 'error': {'code': 'not_found', 'message': str(exc)}},
                            status=status.HTTP_404_NOT_FOUND)
        if isinstance(exc, ValueError):
            return Response({'ok': False, 'error': {'code': 'invalid', 'message': str(exc)}},
                            status=status.HTTP_400_BAD_REQUEST)
        logger.exception("unhandled error in %s", context.get('view').__class__.__name__ if context.get('view') else 'view')
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)
