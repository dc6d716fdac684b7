import logging
import time

from django.conf import settings

from .exceptions import NON_RETRYABLE_ERRORS

logger = logging.getLogger(__name__)

MAX_RETRY_ATTEMPTS = 3
RETRY_DELAY = 1.0  # seconds


def retry_with_backoff(operation, max_attempts=None, initial_delay=None):
    """
    Call ``operation`` until it succeeds, waiting ``initial_delay * attempt``
    seconds between attempts.

    Permission, not-found and invalid-argument errors are re-raised at once;
    anything else is retried and the last error re-raised once
    ``max_attempts`` is reached.
    """
    if max_attempts is None:
        max_attempts = getattr(settings, 'STORE_RETRY_ATTEMPTS', MAX_RETRY_ATTEMPTS)
    if initial_delay is None:
        initial_delay = getattr(settings, 'STORE_RETRY_DELAY', RETRY_DELAY)

    attempt = 1
    while True:
        try:
            return operation()
        except NON_RETRYABLE_ERRORS:
            raise
        except Exception as e:
            if attempt >= max_attempts:
                raise
            logger.warning(f"Retry attempt {attempt}/{max_attempts} after error: {e}")
            time.sleep(initial_delay * attempt)
            attempt += 1
