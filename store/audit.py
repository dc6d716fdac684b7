# store/audit.py

import json
import logging
import traceback
from collections.abc import Mapping

from .client import SERVER_TIMESTAMP, get_store
from .exceptions import InvalidArgument
from .models import Document
from .validation import validate_audit_entry, validate_doc_params

audit_logger = logging.getLogger("tracker_audit")
logger = logging.getLogger(__name__)

AUDIT_COLLECTION = 'audit_logs'
AUDIT_ERRORS_COLLECTION = '_audit_errors'


def _json_safe(value):
    return json.loads(json.dumps(value, default=str))


def audit(school_id, entry, store=None):
    """
    Append an entry to the school's audit log.

    The entry is validated and sanitized first. When that or the write fails,
    the original entry and the error are recorded in the school's
    ``_audit_errors`` collection instead. Never raises.

    Returns:
        bool: True when the entry reached the audit log.
    """
    store = store or get_store()
    try:
        validate_doc_params(school_id)
        sanitized = validate_audit_entry(entry)
        store.collection('schools', school_id, AUDIT_COLLECTION).add({
            'ts': SERVER_TIMESTAMP,
            **sanitized,
        })
        audit_logger.info(f"{sanitized['action']} by {sanitized.get('actedBy') or sanitized.get('actorId')} in {school_id}")
        return True
    except Exception as e:
        logger.error(f"Failed to write audit log: {e}", exc_info=True)
        error, stack = e, traceback.format_exc()

    try:
        store.collection('schools', school_id, AUDIT_ERRORS_COLLECTION).add({
            'ts': SERVER_TIMESTAMP,
            'error': str(error),
            'originalEntry': _json_safe(entry),
            'stack': stack,
        })
    except Exception as fallback_error:
        logger.error(f"Failed to write to audit errors fallback: {fallback_error}")
    return False


def audit_log_queryset(school_id):
    """Audit entries of a school, newest first."""
    validate_doc_params(school_id)
    path = f"schools/{school_id}/{AUDIT_COLLECTION}"
    return Document.objects.filter(collection=path).order_by('-created_at', '-id')


def _context_fields(ctx):
    if isinstance(ctx, Mapping):
        return ctx.get('actedBy'), ctx.get('asRole'), ctx.get('asUserId')
    return (
        getattr(ctx, 'acted_by', None),
        getattr(ctx, 'as_role', None),
        getattr(ctx, 'as_user_id', None),
    )


def require_audit_context(ctx):
    if ctx is None or not _context_fields(ctx)[0]:
        raise InvalidArgument("Audit context is required")


def context_entry(ctx, action, target=None, details=None):
    """
    Build an audit entry for a write made under ``ctx``.

    ``asUserId`` is not an audit log field, so the imitated user is kept in
    the details whenever it differs from the real actor.
    """
    acted_by, as_role, as_user_id = _context_fields(ctx)
    entry = {'action': action, 'actedBy': acted_by}
    if as_role:
        entry['asRole'] = as_role
    if target:
        entry['target'] = target
    details = dict(details or {})
    if as_user_id and as_user_id != acted_by:
        details['asUserId'] = as_user_id
    if details:
        entry['details'] = details
    return entry
