from django.contrib import admin

from .models import Profile


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'school_id', 'roles', 'claims_updated_at']
    search_fields = ['user__username', 'user__email', 'school_id']
    list_filter = ['school_id']
    readonly_fields = ['claims_updated_at']
