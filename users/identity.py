"""
Identity provider backed by Django auth users and ``Profile`` claims.

The uid of an identity is the Django username; staff documents are keyed by
it. Claims are kept in the Django cache per uid for ``CLAIMS_CACHE_TIMEOUT``
seconds; changing them through the provider deletes the shared entry.
"""

import logging
from functools import lru_cache

from django.conf import settings
from django.contrib.auth import authenticate, get_user_model
from django.core.cache import cache
from django.db import DatabaseError

from store.exceptions import NotFound
from .models import Profile
from .roles import Role, parse_roles

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Failure reported by the identity provider, tagged with a provider code."""

    def __init__(self, code, message=''):
        super().__init__(message or code)
        self.code = code


class Identity:
    def __init__(self, uid, email='', user_id=None):
        self.uid = uid
        self.email = email or ''
        self.user_id = user_id

    def __eq__(self, other):
        return isinstance(other, Identity) and other.uid == self.uid

    def __hash__(self):
        return hash(self.uid)

    def __repr__(self):
        return f"<Identity {self.uid}>"


class Claims:
    def __init__(self, roles=(), school_id=None):
        self.roles = parse_roles(roles)
        self.school_id = school_id or None

    @classmethod
    def from_profile(cls, profile):
        roles = []
        for value in profile.roles or []:
            try:
                roles.append(Role(value))
            except ValueError:
                logger.warning(f"Ignoring unknown role {value!r} for {profile.user.username}")
        return cls(roles, profile.school_id)

    def to_dict(self):
        return {
            'roles': [role.value for role in self.roles],
            'schoolId': self.school_id,
        }

    def __repr__(self):
        return f"<Claims roles={[r.value for r in self.roles]} schoolId={self.school_id}>"


def claims_cache_key(uid):
    return f"tracker_claims_{uid}"


def claims_cache_timeout():
    return getattr(settings, 'CLAIMS_CACHE_TIMEOUT', 300)


class DjangoIdentityProvider:
    def authenticate(self, email, password):
        User = get_user_model()
        try:
            user = User.objects.filter(email__iexact=email).first()
        except DatabaseError as e:
            raise IdentityError('network-request-failed', str(e)) from e
        if user is None:
            raise IdentityError('user-not-found')
        if not user.is_active:
            raise IdentityError('user-disabled')
        authenticated = authenticate(username=user.get_username(), password=password)
        if authenticated is None:
            raise IdentityError('wrong-password')
        return self.identity_for(authenticated)

    def identity_for(self, user):
        if user is None or not getattr(user, 'is_authenticated', False):
            return None
        return Identity(uid=user.get_username(), email=user.email, user_id=user.pk)

    def get_claims(self, identity, force_refresh=False):
        cache_key = claims_cache_key(identity.uid)
        if not force_refresh:
            cached = cache.get(cache_key)
            if cached is not None:
                return Claims(cached['roles'], cached['schoolId'])
        profile = Profile.objects.select_related('user').filter(user__username=identity.uid).first()
        claims = Claims.from_profile(profile) if profile else Claims()
        cache.set(cache_key, claims.to_dict(), claims_cache_timeout())
        return claims

    def set_claims(self, uid, roles, school_id):
        roles = parse_roles(roles)
        User = get_user_model()
        user = User.objects.filter(username=uid).first()
        if user is None:
            raise NotFound(f"No user with uid {uid}")
        Profile.objects.update_or_create(
            user=user,
            defaults={'roles': [role.value for role in roles], 'school_id': school_id or ''},
        )
        cache.delete(claims_cache_key(uid))
        logger.info(f"Claims set for {uid}: roles={[r.value for r in roles]} schoolId={school_id}")
        return Claims(roles, school_id)

    def sign_out(self, identity):
        cache.delete(claims_cache_key(identity.uid))


@lru_cache(maxsize=None)
def get_identity_provider():
    return DjangoIdentityProvider()
