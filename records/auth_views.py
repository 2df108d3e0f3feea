"""
Username/password login.

Returns a DRF token for the ``Authorization: Token <key>`` header along
with the user's role so the front-end can pick the right dashboard.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from records.serializers.auth import LoginSerializer
from records.services.audit import log_action


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Login with username/password.  The role always comes from the stored
    user; any ``role`` sent by the client is ignored.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if not user:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'ip': request.META.get('REMOTE_ADDR')})
        return Response({'ok': False, 'detail': 'invalid username or password'}, status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})
    token_obj, _ = Token.objects.get_or_create(user=user)

    return Response({
        'ok': True,
        'token': token_obj.key,
        'role': user.role,
        'user': {
            'id': user.id,
            'username': user.username,
            'name': user.display_name,
            'role': user.role,
            'department': user.department,
        },
    }, status=200)

# ScopedRateThrottle reads the scope from the wrapped APIView class
login_view.cls.throttle_scope = 'login'
