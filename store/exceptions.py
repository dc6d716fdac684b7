"""
Error taxonomy shared by the store, loaders, writers and the auth session.

Each error carries a short machine-readable ``code`` which the API layer
renders next to the human-readable message.
"""


class TrackerError(Exception):
    code = 'internal'

    def __init__(self, message='', *args):
        super().__init__(message, *args)
        self.message = message

    def __str__(self):
        return self.message


class InvalidArgument(TrackerError, ValueError):
    """Bad caller input. Never retried."""
    code = 'invalid-argument'


class NotFound(TrackerError):
    """A required document is absent. Never retried."""
    code = 'not-found'


class PermissionDenied(TrackerError):
    """Authorization failure. Never retried."""
    code = 'permission-denied'


class PayloadTooLarge(TrackerError):
    code = 'payload-too-large'


class StorageError(TrackerError):
    """Wrapped failure of the underlying database. Retried."""
    code = 'unavailable'


class AuthTimeout(TrackerError, TimeoutError):
    code = 'unauthenticated'


# Errors that are semantic rather than transient
NON_RETRYABLE_ERRORS = (PermissionDenied, NotFound, InvalidArgument)
