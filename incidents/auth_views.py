"""
Authentication views: sign up, sign in, token refresh and sign out.

Sign-in failures are reported as :class:`AuthError` with a message the
login form can show as is.  The role returned to the client, and the
page it is routed to, always come from the stored account.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate, login, logout
from django.db import IntegrityError, transaction
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from .exceptions import AuthError, ValidationError
from .models import User
from .realtime.feed import announce_sign_out
from .serializers.auth import LoginSerializer, RegisterSerializer
from .services.audit import log_action
from .session import Identity

logger = logging.getLogger(__name__)

WRONG_CREDENTIALS = 'Wrong credentials. Please check your email and password.'
ALREADY_REGISTERED = 'This email is already registered. Please sign in instead.'
SIGNUP_FAILED = 'Sign-up failed. Please try again later.'


def _validated(serializer_class, data) -> dict:
    s = serializer_class(data=data)
    if not s.is_valid():
        raise ValidationError('Please check the highlighted fields', detail=s.errors)
    return s.validated_data


# ---------------------------------------------------------------------
# Sign up
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def register_view(request):
    vd = _validated(RegisterSerializer, request.data)
    if User.objects.filter(email__iexact=vd['email']).exists():
        raise AuthError(ALREADY_REGISTERED, code='duplicate_registration', status_code=409)
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=vd['username'],
                email=vd['email'],
                password=vd['password'],
                role=vd['role'],
            )
    except IntegrityError as exc:
        # email raced another sign-up, or the username is taken
        if User.objects.filter(email__iexact=vd['email']).exists():
            raise AuthError(ALREADY_REGISTERED, code='duplicate_registration', status_code=409) from exc
        raise AuthError(SIGNUP_FAILED, code='signup_failed', status_code=400) from exc

    log_action(user=user, action='register', object_type='user', object_id=user.id, detail={'role': user.role})
    logger.info("registered %s as %s", user.username, user.role)
    return Response({
        'ok': True,
        'message': 'Account created successfully! You can now sign in.',
        'user': Identity.from_user(user).as_dict(),
    }, status=201)

register_view.cls.throttle_scope = 'register'


# ---------------------------------------------------------------------
# Sign in
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def login_view(request):
    vd = _validated(LoginSerializer, request.data)
    account = User.objects.filter(email__iexact=vd['email']).first()
    user = None
    if account is not None:
        user = authenticate(request, username=account.username, password=vd['password'])
    if user is None:
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'email': vd['email'], 'ip': request.META.get('REMOTE_ADDR')})
        raise AuthError(WRONG_CREDENTIALS, code='invalid_credentials')

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})
    # session for page routes and the WebSocket, tokens for API clients
    login(request._request, user)
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    identity = Identity.from_user(user)

    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'redirect': identity.home,
        'user': identity.as_dict(),
    }, status=200)

login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    identity = Identity.from_user(request.user)
    return Response({'ok': True, 'user': identity.as_dict(), 'redirect': identity.home})


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    if isinstance(resp, Response):
        data = dict(resp.data)
        if 'access' in data and 'jwt_access' not in data:
            data['jwt_access'] = data.pop('access')
        return Response(data, status=resp.status_code)
    return resp


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token (or all of the user's) and end the session."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError as exc:
            logger.info("logout with unusable refresh token for %s: %s", request.user.pk, exc)
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    user_id = request.user.pk
    Token.objects.filter(user=request.user).delete()
    logout(request._request)
    # open report feed sockets of this account close themselves
    announce_sign_out(user_id)
    return Response({'ok': True, 'blacklisted': count})
