import logging

from store.access import guarded_call, with_id
from store.client import get_store
from store.validation import validate_doc_params

logger = logging.getLogger(__name__)


def load_school(school_id, store=None):
    validate_doc_params(school_id)
    store = store or get_store()

    logger.debug(f"Loading school: {school_id}")
    snapshot = guarded_call(store.doc('schools', school_id).get, 'Failed to load school')
    if not snapshot.exists:
        logger.warning(f"School not found: {school_id}")
        return None
    return with_id(snapshot)


def load_staff(school_id, uid, store=None):
    validate_doc_params(school_id, uid)
    store = store or get_store()

    logger.debug(f"Loading staff: {uid}")
    snapshot = guarded_call(store.doc('schools', school_id, 'staff', uid).get, 'Failed to load staff')
    if not snapshot.exists:
        logger.warning(f"Staff not found: {uid}")
        return None
    return with_id(snapshot)
