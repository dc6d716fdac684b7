import logging
from collections.abc import Mapping

from store.access import WriteResult, guarded_call
from store.audit import audit, context_entry, require_audit_context
from store.client import SERVER_TIMESTAMP, get_store
from store.exceptions import InvalidArgument
from store.validation import sanitize_object, validate_doc_params

logger = logging.getLogger(__name__)


def _validate_theme(theme):
    if not isinstance(theme, Mapping):
        raise InvalidArgument('Invalid theme object')
    mode = theme.get('mode')
    if mode is not None and not isinstance(mode, str):
        raise InvalidArgument('Theme mode must be a string')
    variables = theme.get('vars')
    if variables is not None:
        if not isinstance(variables, Mapping):
            raise InvalidArgument('Theme vars must be an object')
        for key, value in variables.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise InvalidArgument(f"Invalid theme variable: {key!r}")


def set_theme(school_id, theme, ctx=None, store=None):
    """
    Replace the theme of a school. Callers are expected to restrict this to
    admins; only the shape of the theme is checked here.

    The change is audited when an audit context is supplied. The returned
    ``WriteResult`` says whether the audit entry was written (None without
    a context).
    """
    validate_doc_params(school_id)
    _validate_theme(theme)
    if ctx is not None:
        require_audit_context(ctx)
    store = store or get_store()
    theme = sanitize_object(theme)

    logger.info(f"Updating theme for school {school_id}")
    guarded_call(
        lambda: store.doc('schools', school_id).update({
            'theme': theme,
            'lastModified': SERVER_TIMESTAMP,
        }),
        'Failed to set theme',
    )

    if ctx is None:
        return WriteResult(None)
    audited = audit(school_id, context_entry(
        ctx,
        'theme_update',
        target=f"schools/{school_id}",
        details={'mode': theme.get('mode'), 'varCount': len(theme.get('vars') or {})},
    ), store=store)
    return WriteResult(audited)
