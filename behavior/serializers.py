from rest_framework import serializers

from .writers import INCIDENT_SOURCES


class MatrixCellSerializer(serializers.Serializer):
    periodId = serializers.CharField()
    goalId = serializers.CharField()
    # int, float or bool; checked by the writer
    value = serializers.JSONField()


class CommentSerializer(serializers.Serializer):
    role = serializers.CharField()
    text = serializers.CharField(allow_blank=True, trim_whitespace=False)


class IncidentSerializer(serializers.Serializer):
    button = serializers.DictField()
    note = serializers.CharField(allow_blank=True, allow_null=True, required=False, default=None)
    source = serializers.ChoiceField(choices=INCIDENT_SOURCES)
