from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class Document(models.Model):
    """
    A single JSON document addressed by a slash separated path, e.g.
    ``schools/school_001/plans/plan_1/days/2025-03-04``.
    ``collection`` is the path of the parent collection.
    """
    path = models.CharField(max_length=512, unique=True)
    collection = models.CharField(max_length=512, db_index=True)
    doc_id = models.CharField(max_length=255)
    data = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['collection', 'created_at'], name='store_doc_collection_idx'),
        ]

    def __str__(self):
        return self.path
