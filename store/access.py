import logging

from .exceptions import NON_RETRYABLE_ERRORS, StorageError
from .retry import retry_with_backoff

logger = logging.getLogger(__name__)


def guarded_call(operation, failure):
    """
    Run ``operation`` through the retry wrapper.

    Caller errors (invalid argument, permission, not found) pass through
    unchanged; anything else is raised as ``StorageError`` prefixed with
    ``failure``, e.g. "Failed to load plan: <reason>".
    """
    try:
        return retry_with_backoff(operation)
    except NON_RETRYABLE_ERRORS:
        raise
    except Exception as e:
        logger.error(f"{failure}: {e}")
        raise StorageError(f"{failure}: {e}") from e


def with_id(snapshot):
    return {'id': snapshot.id, **snapshot.to_dict()}


class WriteResult:
    """Outcome of a writer: whether the audit entry landed, plus any derived data."""

    def __init__(self, audited, data=None):
        self.audited = audited
        self.data = data

    def __repr__(self):
        return f"<WriteResult audited={self.audited}>"
