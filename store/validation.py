import json
import logging
import re
from collections.abc import Mapping

from django.conf import settings

from .exceptions import InvalidArgument, PayloadTooLarge

logger = logging.getLogger(__name__)

ALLOWED_AUDIT_FIELDS = (
    'action', 'actorId', 'actedBy', 'targetId', 'target',
    'details', 'role', 'asRole', 'duration', 'error',
)

# Keys that could corrupt object models downstream when merged
DANGEROUS_KEYS = frozenset({'__proto__', 'constructor', 'prototype'})

DAY_KEY_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def max_audit_entry_size():
    return getattr(settings, 'AUDIT_MAX_ENTRY_SIZE', 10000)


def max_audit_details_size():
    return getattr(settings, 'AUDIT_MAX_DETAILS_SIZE', 5000)


def serialized_size(value):
    """Size in bytes of the compact JSON form of ``value``."""
    encoded = json.dumps(value, separators=(',', ':'), ensure_ascii=False, default=str)
    return len(encoded.encode('utf-8'))


def validate_doc_params(school_id, doc_id=None):
    if not school_id or not isinstance(school_id, str):
        raise InvalidArgument("Invalid schoolId: must be a non-empty string")
    if "/" in school_id:
        raise InvalidArgument("Invalid schoolId: must not contain '/'")
    if doc_id is not None and (not doc_id or not isinstance(doc_id, str)):
        raise InvalidArgument("Invalid document ID: must be a non-empty string")
    if doc_id is not None and "/" in doc_id:
        raise InvalidArgument("Invalid document ID: must not contain '/'")


def validate_day_key(day_key):
    if not isinstance(day_key, str) or not DAY_KEY_RE.match(day_key):
        raise InvalidArgument("Invalid dayKey format: expected YYYY-MM-DD")


def sanitize_object(obj):
    """
    Deep-copy a plain object graph, dropping prototype-polluting keys at
    every level. Scalars are returned as is.
    """
    if isinstance(obj, Mapping):
        sanitized = {}
        for key, value in obj.items():
            if key in DANGEROUS_KEYS:
                continue
            sanitized[key] = sanitize_object(value)
        return sanitized
    if isinstance(obj, (list, tuple)):
        return [sanitize_object(item) for item in obj]
    return obj


def validate_audit_entry(entry):
    """
    Validate an audit entry and return a sanitized copy holding only the
    allow-listed fields.

    Oversized ``details`` are replaced by a truncation marker; an entry that
    is still too large after that is rejected with ``PayloadTooLarge``.
    """
    if not isinstance(entry, Mapping):
        raise InvalidArgument("Audit entry must be an object")

    action = entry.get('action')
    if not action or not isinstance(action, str):
        raise InvalidArgument('Audit entry must have an "action" field')

    if not entry.get('actorId') and not entry.get('actedBy'):
        raise InvalidArgument('Audit entry must have "actorId" or "actedBy" field')

    sanitized = {key: entry[key] for key in ALLOWED_AUDIT_FIELDS if key in entry}

    details = sanitized.get('details')
    if isinstance(details, Mapping):
        details = sanitize_object(details)
        details_size = serialized_size(details)
        if details_size > max_audit_details_size():
            logger.warning(f"Audit details truncated: {details_size} bytes for action {action}")
            details = {
                'truncated': True,
                'size': details_size,
                'summary': 'Details truncated due to size limit',
            }
        sanitized['details'] = details

    entry_size = serialized_size(sanitized)
    limit = max_audit_entry_size()
    if entry_size > limit:
        raise PayloadTooLarge(f"Audit entry too large: {entry_size} bytes (max {limit})")

    return sanitized
