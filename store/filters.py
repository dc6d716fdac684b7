import django_filters
from django.db.models import Q

from .models import Document


class AuditLogFilter(django_filters.FilterSet):
    action = django_filters.CharFilter(field_name='data__action')
    actor = django_filters.CharFilter(method='filter_actor')
    since = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='gte')
    until = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = Document
        fields = ['action', 'actor', 'since', 'until']

    def filter_actor(self, queryset, name, value):
        return queryset.filter(Q(data__actorId=value) | Q(data__actedBy=value))
