from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .identity import get_identity_provider
from .roles import ROLE_CHOICES


class ClaimsTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Access tokens carry the tracker claims next to the user id."""

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        provider = get_identity_provider()
        claims = provider.get_claims(provider.identity_for(user), force_refresh=True)
        token['roles'] = [role.value for role in claims.roles]
        token['schoolId'] = claims.school_id
        return token


class SignInSerializer(serializers.Serializer):
    email = serializers.CharField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class ImitationSerializer(serializers.Serializer):
    targetUid = serializers.CharField()
    asRole = serializers.ChoiceField(choices=ROLE_CHOICES)


class CustomClaimsSerializer(serializers.Serializer):
    uid = serializers.CharField()
    roles = serializers.ListField(child=serializers.ChoiceField(choices=ROLE_CHOICES), allow_empty=False)
    schoolId = serializers.CharField()


def session_payload(session):
    """Public view of an ``AuthSession``."""
    identity = session.identity
    payload = {
        'state': session.state.value,
        'uid': identity.uid if identity else None,
        'email': identity.email if identity else None,
        'roles': [role.value for role in session.roles],
        'schoolId': session.claims.school_id if session.claims else None,
        'imitation': session.imitation.to_dict() if session.imitation else None,
    }
    return payload
