import logging
import math
import time
import uuid
from collections.abc import Mapping

from store.access import WriteResult, guarded_call
from store.audit import audit, context_entry, require_audit_context
from store.client import SERVER_TIMESTAMP, ArrayAppend, get_store
from store.exceptions import InvalidArgument
from store.validation import validate_day_key, validate_doc_params

from .totals import recalculate_day_totals

logger = logging.getLogger(__name__)

INCIDENT_SOURCES = ('teacher', 'specials')
DEFAULT_INCIDENT_COLOR = '#000000'


def _day_ref(store, school_id, plan_id, day_key):
    return store.doc('schools', school_id, 'plans', plan_id, 'days', day_key)


def _validate_field_id(name, value):
    # Ids become segments of a dotted field path
    if not value or not isinstance(value, str) or '.' in value:
        raise InvalidArgument(f"Invalid {name}: must be a non-empty string without '.'")


def _validate_cell_value(value):
    if isinstance(value, bool):
        return
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidArgument("Cell value must be a number or boolean")


def save_matrix_cell(school_id, plan_id, day_key, period_id, goal_id, value, ctx, store=None):
    """
    Record one grade in the day matrix, then refresh the day totals.

    Only the addressed cell is written; the rest of the matrix is left as
    is. The returned ``WriteResult`` carries the recalculated totals (None
    when the recalculation failed).
    """
    validate_doc_params(school_id, plan_id)
    validate_day_key(day_key)
    _validate_field_id('periodId', period_id)
    _validate_field_id('goalId', goal_id)
    _validate_cell_value(value)
    require_audit_context(ctx)
    store = store or get_store()

    logger.info(f"Saving matrix cell {plan_id}/{day_key} {period_id}.{goal_id}={value!r}")
    day_ref = _day_ref(store, school_id, plan_id, day_key)
    guarded_call(
        lambda: day_ref.set({
            f"matrix.{period_id}.{goal_id}": value,
            'lastModified': SERVER_TIMESTAMP,
        }, merge=True),
        'Failed to save matrix cell',
    )

    totals = recalculate_day_totals(school_id, plan_id, day_key, store=store)

    audited = audit(school_id, context_entry(
        ctx,
        'matrix_cell_update',
        target=f"{plan_id}/{day_key}",
        details={'periodId': period_id, 'goalId': goal_id, 'value': value},
    ), store=store)
    return WriteResult(audited, {'totals': totals})


def save_comment(school_id, plan_id, day_key, role, text, ctx, store=None):
    """Store the teacher comment, or the comment of a specials role, for a day."""
    validate_doc_params(school_id, plan_id)
    validate_day_key(day_key)
    _validate_field_id('role', role)
    if not isinstance(text, str):
        raise InvalidArgument("Comment text must be a string")
    require_audit_context(ctx)
    store = store or get_store()

    field = 'comments.teacher' if role == 'teacher' else f"comments.specials.{role}"
    guarded_call(
        lambda: _day_ref(store, school_id, plan_id, day_key).set({
            field: text,
            'lastModified': SERVER_TIMESTAMP,
        }, merge=True),
        'Failed to save comment',
    )

    audited = audit(school_id, context_entry(
        ctx,
        'comment_save',
        target=f"{plan_id}/{day_key}",
        details={'role': role, 'textLength': len(text)},
    ), store=store)
    return WriteResult(audited)


def new_incident(button, note, source, now=None):
    ts = int((now if now is not None else time.time()) * 1000)
    return {
        'id': f"inc_{ts}_{uuid.uuid4().hex[:9]}",
        'label': button['label'],
        'colorHex': button.get('colorHex') or DEFAULT_INCIDENT_COLOR,
        'note': note or None,
        'ts': ts,
        'source': source,
    }


def log_custom_incident(school_id, plan_id, day_key, button, note, source, ctx, store=None):
    """
    Append an incident to the day. The append happens inside the write, so
    concurrent incidents on the same day are all kept.
    """
    validate_doc_params(school_id, plan_id)
    validate_day_key(day_key)
    if not isinstance(button, Mapping) or not button.get('label') or not isinstance(button['label'], str):
        raise InvalidArgument("Invalid button: a label is required")
    if source not in INCIDENT_SOURCES:
        raise InvalidArgument('Source must be "teacher" or "specials"')
    if note is not None and not isinstance(note, str):
        raise InvalidArgument("Incident note must be a string")
    require_audit_context(ctx)
    store = store or get_store()

    incident = new_incident(button, note, source)
    logger.info(f"Logging incident {incident['id']} on {plan_id}/{day_key}")
    guarded_call(
        lambda: _day_ref(store, school_id, plan_id, day_key).set({
            'incidents': ArrayAppend(incident),
            'lastModified': SERVER_TIMESTAMP,
        }, merge=True),
        'Failed to log incident',
    )

    audited = audit(school_id, context_entry(
        ctx,
        'incident_log',
        target=f"{plan_id}/{day_key}",
        details={'label': incident['label'], 'source': source, 'hasNote': bool(note)},
    ), store=store)
    return WriteResult(audited, incident)
