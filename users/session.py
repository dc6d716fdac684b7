"""
Per-user authentication context.

An ``AuthSession`` holds who is signed in, their claims, an optional
admin imitation session and the memoized school context. Views get one per
request through ``get_auth_session``; other callers construct it directly
with their own identity provider and durable storage.

States::

    UNAUTHENTICATED -> AUTHENTICATED -> IMITATING
                 ^            |  ^          |
                 +-- sign_out-+  +-- stop --+
"""

import json
import logging
import threading
import time
from collections import namedtuple
from collections.abc import Mapping
from datetime import datetime, timezone as dt_timezone
from enum import Enum
from urllib.parse import urlencode

from django.conf import settings

from schools.loaders import load_staff
from store.audit import audit
from store.exceptions import (
    AuthTimeout,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    TrackerError,
)
from .identity import IdentityError, get_identity_provider
from .roles import Role, has_any_role, has_role, parse_roles
from .signals import imitation_active, imitation_stopped

logger = logging.getLogger(__name__)

IMITATION_STORAGE_KEY = 'imitation'
DEFAULT_AUTH_TIMEOUT = 10.0  # seconds

SIGN_IN_MESSAGES = {
    'user-not-found': 'Invalid email or password',
    'wrong-password': 'Invalid email or password',
    'too-many-requests': 'Too many failed attempts. Please try again later.',
    'network-request-failed': 'Network error. Please check your connection.',
}
DEFAULT_SIGN_IN_MESSAGE = 'Sign in failed. Please try again.'


class AuthState(Enum):
    UNAUTHENTICATED = 'unauthenticated'
    AUTHENTICATED = 'authenticated'
    IMITATING = 'imitating'


class ImitationSession:
    def __init__(self, target_uid, as_role, start_time):
        self.target_uid = target_uid
        self.as_role = as_role
        self.start_time = start_time  # epoch milliseconds

    def to_dict(self):
        return {
            'targetUid': self.target_uid,
            'asRole': self.as_role,
            'startTime': self.start_time,
        }

    def __repr__(self):
        return f"<ImitationSession {self.target_uid} as {self.as_role}>"


class ValidImitation(namedtuple('ValidImitation', 'session')):
    valid = True


class InvalidImitation(namedtuple('InvalidImitation', 'reason')):
    valid = False


def parse_imitation_session(raw):
    """
    Parse a stored imitation blob. The blob comes from an earlier session and
    is treated as untrusted: anything but a complete
    ``{targetUid, asRole, startTime}`` object is invalid.
    """
    if raw is None or raw == '':
        return InvalidImitation('absent')
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            return InvalidImitation('malformed JSON')
    if not isinstance(raw, Mapping):
        return InvalidImitation('not an object')

    target_uid = raw.get('targetUid')
    as_role = raw.get('asRole')
    start_time = raw.get('startTime')
    if not target_uid or not isinstance(target_uid, str):
        return InvalidImitation('missing targetUid')
    if not as_role or not isinstance(as_role, str):
        return InvalidImitation('missing asRole')
    if isinstance(start_time, bool) or not isinstance(start_time, (int, float)) or start_time <= 0:
        return InvalidImitation('missing startTime')
    return ValidImitation(ImitationSession(target_uid, as_role, start_time))


class AuditContext:
    """The ``{actedBy, asRole, asUserId}`` triple attached to every write."""

    def __init__(self, acted_by, as_role, as_user_id):
        self.acted_by = acted_by
        self.as_role = as_role
        self.as_user_id = as_user_id

    @property
    def imitating(self):
        return self.as_user_id != self.acted_by

    def to_dict(self):
        return {
            'actedBy': self.acted_by,
            'asRole': self.as_role,
            'asUserId': self.as_user_id,
        }

    def __repr__(self):
        return f"<AuditContext actedBy={self.acted_by} asRole={self.as_role} asUserId={self.as_user_id}>"


class SchoolContext:
    def __init__(self, school_id, identity, claims, staff):
        self.school_id = school_id
        self.identity = identity
        self.claims = claims
        self.staff = staff


def _iso(ms):
    return datetime.fromtimestamp(ms / 1000, tz=dt_timezone.utc).isoformat()


class AuthSession:
    def __init__(self, provider=None, storage=None, store=None, clock=time.time):
        self.provider = provider or get_identity_provider()
        self.storage = storage if storage is not None else {}
        self.store = store
        self._clock = clock
        self.identity = None
        self.claims = None
        self.imitation = None
        self.app_ready = False
        self._school_ctx = None
        self._auth_ready = threading.Event()

    # === state ===

    @property
    def state(self):
        if self.identity is None:
            return AuthState.UNAUTHENTICATED
        if self.imitation is not None:
            return AuthState.IMITATING
        return AuthState.AUTHENTICATED

    @property
    def is_imitating(self):
        return self.imitation is not None

    @property
    def roles(self):
        return self.claims.roles if self.claims else ()

    def has_role(self, role):
        return has_role(self.roles, role)

    def _now_ms(self):
        return int(self._clock() * 1000)

    def _audit_school_id(self):
        return (self.claims and self.claims.school_id) or settings.DEFAULT_SCHOOL_ID

    # === sign in / out ===

    def sign_in(self, email, password):
        if not email or not isinstance(email, str) or '@' not in email:
            raise InvalidArgument('Invalid email address')
        if not password or not isinstance(password, str) or len(password) < 6:
            raise InvalidArgument('Invalid password')

        try:
            identity = self.provider.authenticate(email, password)
        except IdentityError as e:
            logger.error(f"Sign in failed: {e.code}")
            raise PermissionDenied(SIGN_IN_MESSAGES.get(e.code, DEFAULT_SIGN_IN_MESSAGE)) from e

        logger.info(f"Sign in successful for {identity.uid}")
        self.on_auth_state_changed(identity)
        return identity

    def on_auth_state_changed(self, identity):
        """Adopt ``identity`` (or none) and fire the auth-ready signal."""
        try:
            self.identity = identity
            self._school_ctx = None
            if identity is not None:
                try:
                    self.claims = self.provider.get_claims(identity)
                except Exception as e:
                    logger.error(f"Failed to get claims for {identity.uid}: {e}")
                    self.claims = None
                self._load_imitation_state()
            else:
                self.claims = None
                self._clear_imitation_state()
        finally:
            self._auth_ready.set()

    def sign_out(self):
        try:
            self.stop_imitate()
            self.clear_school_context()
            if self.identity is not None:
                self.provider.sign_out(self.identity)
        except Exception:
            logger.error("Sign out failed, clearing local state", exc_info=True)
            self._clear_imitation_state()
            self.clear_school_context()
            self.on_auth_state_changed(None)
            raise
        self.on_auth_state_changed(None)
        logger.info("Sign out successful")

    def refresh_claims(self, force_refresh=True):
        if self.identity is None:
            raise InvalidArgument('No authenticated user')
        self.claims = self.provider.get_claims(self.identity, force_refresh=force_refresh)
        logger.debug(f"Claims refreshed for {self.identity.uid}")
        return self.claims

    def require_auth(self, timeout=None):
        if timeout is None:
            timeout = getattr(settings, 'AUTH_TIMEOUT', DEFAULT_AUTH_TIMEOUT)
        if not self._auth_ready.wait(timeout):
            logger.error("requireAuth failed: auth timeout")
            raise AuthTimeout('Auth timeout')
        if self.identity is None:
            raise AuthTimeout('Not authenticated')
        return self.identity

    def guard_route(self, required_roles=(), redirect_url=None, current_path=None):
        """
        Check that the session may render a route.

        Returns None when allowed (and sets ``app_ready``), otherwise the URL
        to redirect to. Never raises.
        """
        redirect_url = redirect_url or settings.LOGIN_URL
        self.app_ready = False
        try:
            required = parse_roles(required_roles)
            self.require_auth()
            if required and not has_any_role(self.roles, required):
                logger.warning(
                    f"User lacks required role: required={[r.value for r in required]} "
                    f"actual={[r.value for r in self.roles]}"
                )
                return redirect_url
        except TrackerError as e:
            logger.error(f"Route guard failed: {e}")
            if current_path and current_path != redirect_url:
                return f"{redirect_url}?{urlencode({'return': current_path})}"
            return redirect_url

        self.app_ready = True
        return None

    # === imitation ===

    def _load_imitation_state(self):
        raw = self.storage.get(IMITATION_STORAGE_KEY)
        if raw is None:
            self.imitation = None
            return

        result = parse_imitation_session(raw)
        if not result.valid:
            logger.warning(f"Invalid imitation state, clearing: {result.reason}")
            self._clear_imitation_state()
            return
        if not self.has_role(Role.ADMIN):
            logger.warning(f"Discarding stored imitation for non-admin {self.identity.uid}")
            self._clear_imitation_state()
            return

        self.imitation = result.session

    def _clear_imitation_state(self):
        self.imitation = None
        self.storage.pop(IMITATION_STORAGE_KEY, None)

    def start_imitate(self, target_uid, as_role):
        if not self.has_role(Role.ADMIN):
            logger.error("Only admins can imitate")
            raise PermissionDenied('Insufficient permissions: admin role required')
        if not target_uid or not isinstance(target_uid, str):
            raise InvalidArgument('Invalid targetUid: must be a non-empty string')
        if not as_role or not isinstance(as_role, str):
            raise InvalidArgument('Invalid asRole: must be a non-empty string')

        imitation = ImitationSession(target_uid, as_role, self._now_ms())
        self.imitation = imitation
        self.storage[IMITATION_STORAGE_KEY] = json.dumps(imitation.to_dict())
        imitation_active.send(sender=AuthSession, session=self, imitation=imitation)

        audit(self._audit_school_id(), {
            'action': 'imitation_started',
            'actorId': self.identity.uid,
            'targetId': target_uid,
            'role': as_role,
            'details': {
                'targetUid': target_uid,
                'asRole': as_role,
                'startTime': _iso(imitation.start_time),
            },
        }, store=self.store)

        logger.info(f"Imitation started: {self.identity.uid} as {target_uid} ({as_role})")
        return imitation

    def stop_imitate(self):
        """Leave imitation mode. Returns the duration in minutes, or None if not imitating."""
        if self.imitation is None:
            return None

        imitation = self.imitation
        end_time = self._now_ms()
        duration_ms = max(0, end_time - imitation.start_time)
        duration_minutes = int(duration_ms / 60000 + 0.5)

        audit(self._audit_school_id(), {
            'action': 'imitation_stopped',
            'actorId': self.identity.uid if self.identity else None,
            'targetId': imitation.target_uid,
            'role': imitation.as_role,
            'duration': duration_minutes,
            'details': {
                'targetUid': imitation.target_uid,
                'asRole': imitation.as_role,
                'startTime': _iso(imitation.start_time),
                'endTime': _iso(end_time),
                'durationMs': duration_ms,
                'durationMinutes': duration_minutes,
            },
        }, store=self.store)

        self._clear_imitation_state()
        imitation_stopped.send(sender=AuthSession, session=self, imitation=imitation)
        logger.info(f"Imitation stopped - duration: {duration_minutes} minutes")
        return duration_minutes

    # === contexts ===

    def get_audit_context(self):
        if self.identity is None:
            raise InvalidArgument('No authenticated user for audit context')
        uid = self.identity.uid
        if self.imitation is not None:
            return AuditContext(uid, self.imitation.as_role, self.imitation.target_uid)
        roles = self.roles
        return AuditContext(uid, roles[0].value if roles else 'unknown', uid)

    def get_school_context(self, force_refresh=False):
        if self._school_ctx is not None and not force_refresh:
            return self._school_ctx
        if self.identity is None:
            raise InvalidArgument('No user authenticated')

        uid = self.identity.uid
        school_id = self.claims.school_id if self.claims else None
        if school_id:
            staff = load_staff(school_id, uid, store=self.store)
            if staff is None:
                logger.warning(f"Staff profile not found for {uid} in {school_id}")
        else:
            logger.warning(f"No schoolId in claims for {uid}, using fallback")
            school_id = settings.DEFAULT_SCHOOL_ID
            staff = load_staff(school_id, uid, store=self.store)
            if staff is None:
                raise NotFound('Staff record not found. Please contact your administrator.')
            school_id = staff.get('schoolId') or school_id

        self._school_ctx = SchoolContext(school_id, self.identity, self.claims, staff)
        logger.debug(f"School context loaded: {school_id} hasStaff={staff is not None}")
        return self._school_ctx

    def clear_school_context(self):
        self._school_ctx = None


def get_auth_session(request):
    """
    The ``AuthSession`` of a request, built once per request from the
    authenticated user. Imitation state is kept in the Django session.
    """
    session = getattr(request, '_tracker_auth_session', None)
    if session is None:
        session = AuthSession(storage=request.session)
        session.on_auth_state_changed(session.provider.identity_for(getattr(request, 'user', None)))
        request._tracker_auth_session = session
    return session
