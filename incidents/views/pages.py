"""
Entry points of the role route trees.

The browser client is served elsewhere; these views give it what it
needs to boot each tree: who is signed in, where its API lives and the
static form data.  The route gate middleware has already redirected
anyone who may not open the tree.
"""
from __future__ import annotations

from django.http import JsonResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .. import reference
from ..session import LOGIN_PATH


def login_page(request):
    identity = getattr(request, 'identity', None)
    return JsonResponse({
        'ok': True,
        'page': 'login',
        'signedIn': identity.as_dict() if identity else None,
        'endpoints': {'login': '/api/auth/login', 'register': '/api/auth/register'},
    })


def driver_home(request):
    return JsonResponse({
        'ok': True,
        'page': 'driver',
        'user': request.identity.as_dict(),
        'views': ['submit', 'status'],
        'reference': reference.as_payload(),
        'endpoints': {'submit': '/api/driver/reports', 'status': '/api/driver/reports/latest'},
        'logout': LOGIN_PATH,
    })


def hospital_home(request):
    return JsonResponse({
        'ok': True,
        'page': 'hospital',
        'user': request.identity.as_dict(),
        'endpoints': {
            'reports': '/api/hospital/reports',
            'accept': '/api/hospital/reports/{id}/accept',
            'reject': '/api/hospital/reports/{id}/reject',
        },
        'realtime': '/ws/reports/',
        'logout': LOGIN_PATH,
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def reference_data(request):
    """Locations with their hospitals, incident types and consciousness states."""
    return Response({'ok': True, 'data': reference.as_payload()})
