from rest_framework import serializers


class ThemeSerializer(serializers.Serializer):
    mode = serializers.CharField(required=False)
    vars = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False)
