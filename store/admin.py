from django.contrib import admin

from .models import Document


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['path', 'collection', 'created_at', 'updated_at']
    search_fields = ['path', 'doc_id']
    list_filter = ['collection']
    readonly_fields = ['created_at', 'updated_at']
