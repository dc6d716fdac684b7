import logging

from django.core.cache import cache
from django.db.models.signals import post_save
from django.dispatch import Signal, receiver

from store.exceptions import TrackerError
from store.models import Document
from .identity import claims_cache_key, get_identity_provider
from .models import Profile

logger = logging.getLogger(__name__)

# Sent with ``session`` and ``imitation`` when an admin starts an imitation
# session and when it ends. Restoring a stored session sends nothing.
imitation_active = Signal()
imitation_stopped = Signal()


def _staff_path(path):
    """Return (school_id, uid) for a ``schools/{id}/staff/{uid}`` path, else None."""
    parts = path.split('/')
    if len(parts) == 4 and parts[0] == 'schools' and parts[2] == 'staff':
        return parts[1], parts[3]
    return None


@receiver(post_save, sender=Document)
def sync_staff_claims(sender, instance, created, **kwargs):
    """
    Keep identity claims in step with staff documents. Claims are only
    rewritten when the roles or the school of the staff member changed.
    """
    match = _staff_path(instance.path)
    if match is None:
        return
    school_id, uid = match

    roles = (instance.data or {}).get('roles') or []
    profile = Profile.objects.filter(user__username=uid).first()
    if profile is not None and profile.roles == roles and profile.school_id == school_id:
        logger.debug(f"No role/schoolId changes for {uid}, skipping claim sync")
        return

    try:
        get_identity_provider().set_claims(uid, roles, school_id)
    except TrackerError as e:
        logger.error(f"Error syncing claims for {uid}: {e}")
        return
    logger.info(f"Claims synced for {uid}: roles={roles} schoolId={school_id}")


@receiver(post_save, sender=Profile)
def drop_cached_claims(sender, instance, **kwargs):
    cache.delete(claims_cache_key(instance.user.get_username()))
