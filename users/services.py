import logging

from store.access import WriteResult, guarded_call
from store.audit import audit
from store.client import SERVER_TIMESTAMP, get_store
from store.exceptions import InvalidArgument, PermissionDenied
from store.validation import validate_doc_params
from .roles import Role, parse_roles

logger = logging.getLogger(__name__)


def set_custom_claims(session, uid, roles, school_id, store=None):
    """
    Give a user roles and a school. Admin only.

    The identity claims are written first, then the staff document is
    merged so the two agree, and the change is audited.
    """
    if not session.has_role(Role.ADMIN):
        raise PermissionDenied('Only admins can set custom claims')
    validate_doc_params(school_id, uid)
    roles = parse_roles(roles)
    if not roles:
        raise InvalidArgument('At least one role is required')
    store = store or get_store()

    claims = session.provider.set_claims(uid, roles, school_id)
    role_values = [role.value for role in roles]
    guarded_call(
        lambda: store.doc('schools', school_id, 'staff', uid).set({
            'roles': role_values,
            'schoolId': school_id,
            'claimsUpdatedAt': SERVER_TIMESTAMP,
            'updatedBy': session.identity.uid,
        }, merge=True),
        'Failed to update staff record',
    )

    audited = audit(school_id, {
        'action': 'claims_updated',
        'actorId': session.identity.uid,
        'targetId': uid,
        'details': {'roles': role_values, 'schoolId': school_id},
    }, store=store)
    logger.info(f"Custom claims set for {uid} by {session.identity.uid}")
    return WriteResult(audited, claims.to_dict())
