from rest_framework import serializers

from .models import Document


class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = Document
        fields = ['doc_id', 'data', 'created_at']

    def to_representation(self, obj):
        return {'id': obj.doc_id, **(obj.data or {})}
