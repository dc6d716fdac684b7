import logging

from store.access import guarded_call, with_id
from store.client import get_store
from store.exceptions import InvalidArgument, TrackerError
from store.validation import validate_day_key, validate_doc_params

logger = logging.getLogger(__name__)


def load_teacher_students(school_id, teacher_uid, store=None):
    validate_doc_params(school_id)
    if not teacher_uid or not isinstance(teacher_uid, str):
        raise InvalidArgument("Invalid teacherUid: must be a non-empty string")
    store = store or get_store()

    logger.debug(f"Loading students for teacher: {teacher_uid}")
    query = store.collection('schools', school_id, 'students').where('teacherId', '==', teacher_uid)
    snapshots = guarded_call(query.get, 'Failed to load students')
    return [with_id(snapshot) for snapshot in snapshots]


def load_plan(school_id, plan_id, store=None):
    validate_doc_params(school_id, plan_id)
    store = store or get_store()

    snapshot = guarded_call(store.doc('schools', school_id, 'plans', plan_id).get, 'Failed to load plan')
    if not snapshot.exists:
        logger.warning(f"Plan not found: {plan_id}")
        return None
    return with_id(snapshot)


def load_day(school_id, plan_id, day_key, store=None):
    """Day document data, or None when nothing was recorded for that day yet."""
    validate_doc_params(school_id, plan_id)
    validate_day_key(day_key)
    store = store or get_store()

    snapshot = guarded_call(
        store.doc('schools', school_id, 'plans', plan_id, 'days', day_key).get,
        'Failed to load day',
    )
    if not snapshot.exists:
        logger.info(f"No day data yet for {plan_id}/{day_key}")
        return None
    return snapshot.to_dict()


def load_accommodations(school_id, student_id, store=None):
    validate_doc_params(school_id, student_id)
    store = store or get_store()

    snapshot = guarded_call(
        store.doc('schools', school_id, 'accommodations', student_id).get,
        'Failed to load accommodations',
    )
    if not snapshot.exists:
        return None
    return snapshot.to_dict()


def _period_matches(period, day_code):
    return period.get('label') == day_code or period.get('id') == day_code


def load_specials_day(school_id, day_code, subject_id=None, store=None):
    """
    Students whose active plan schedules a period for ``day_code`` (matched
    on period label or id), each with the plan attached under ``plan``.

    ``subject_id`` is only logged; it does not filter the result, which holds
    every scheduled student regardless of subject.

    A plan that fails to load is logged and its student skipped so one bad
    record does not hide the rest.
    """
    validate_doc_params(school_id)
    if not day_code or not isinstance(day_code, str):
        raise InvalidArgument("Invalid dayCode: must be a non-empty string")
    store = store or get_store()

    logger.info(f"Loading specials day {day_code} (subject={subject_id})")
    snapshots = guarded_call(store.collection('schools', school_id, 'students').get, 'Failed to load specials day')

    students = []
    for snapshot in snapshots:
        student = with_id(snapshot)
        plan_id = student.get('activePlanId')
        if not plan_id:
            continue
        try:
            plan = load_plan(school_id, plan_id, store=store)
        except TrackerError as e:
            logger.warning(f"Failed to load plan {plan_id} for student {student['id']}: {e}")
            continue
        if plan is None:
            continue
        if any(_period_matches(period, day_code) for period in plan.get('schedule') or []):
            students.append({**student, 'plan': plan})
    return students
