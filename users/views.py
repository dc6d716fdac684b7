import logging

from django.contrib.auth import get_user_model, login, logout
from rest_framework import permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView

from .permissions import IsAdmin
from .serializers import (
    ClaimsTokenObtainPairSerializer,
    CustomClaimsSerializer,
    ImitationSerializer,
    SignInSerializer,
    session_payload,
)
from .services import set_custom_claims
from .session import get_auth_session

logger = logging.getLogger(__name__)

User = get_user_model()


class ClaimsTokenObtainPairView(TokenObtainPairView):
    serializer_class = ClaimsTokenObtainPairSerializer


@api_view(['POST'])
@permission_classes([permissions.AllowAny])
def sign_in_view(request):
    """Sign in with email and password and start a Django session."""
    serializer = SignInSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    session = get_auth_session(request)
    identity = session.sign_in(serializer.validated_data['email'], serializer.validated_data['password'])
    login(request._request, User.objects.get(pk=identity.user_id))
    return Response(session_payload(session))


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def sign_out_view(request):
    session = get_auth_session(request)
    session.sign_out()
    logout(request._request)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def me_view(request):
    return Response(session_payload(get_auth_session(request)))


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def refresh_claims_view(request):
    session = get_auth_session(request)
    session.refresh_claims()
    return Response(session_payload(session))


@api_view(['POST', 'DELETE'])
@permission_classes([IsAdmin])
def imitation_view(request):
    """Start (POST) or stop (DELETE) imitating another staff member."""
    session = get_auth_session(request)
    if request.method == 'DELETE':
        duration = session.stop_imitate()
        return Response({'durationMinutes': duration})

    serializer = ImitationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    imitation = session.start_imitate(serializer.validated_data['targetUid'], serializer.validated_data['asRole'])
    return Response(imitation.to_dict(), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def audit_context_view(request):
    return Response(get_auth_session(request).get_audit_context().to_dict())


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def school_context_view(request):
    refresh = request.query_params.get('refresh') in ('1', 'true')
    ctx = get_auth_session(request).get_school_context(force_refresh=refresh)
    return Response({'schoolId': ctx.school_id, 'staff': ctx.staff})


@api_view(['POST'])
@permission_classes([IsAdmin])
def custom_claims_view(request):
    serializer = CustomClaimsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    result = set_custom_claims(get_auth_session(request), data['uid'], data['roles'], data['schoolId'])
    return Response({'claims': result.data, 'audited': result.audited})
