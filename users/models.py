from django.conf import settings
from django.db import models


class Profile(models.Model):
    """
    Authorization claims of an auth user: the roles held and the school the
    user belongs to. Staff documents mirror these values and re-sync them
    when they change.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='profile')
    school_id = models.CharField(max_length=255, blank=True, default='')
    roles = models.JSONField(default=list, blank=True)
    claims_updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.username} - {', '.join(self.roles) or 'no roles'}"

    class Meta:
        indexes = [
            models.Index(fields=['school_id'], name='users_profile_school_idx'),
        ]
