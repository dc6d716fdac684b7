from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics

from users.permissions import IsAdmin, IsSchoolMember
from .audit import audit_log_queryset
from .filters import AuditLogFilter
from .serializers import AuditLogSerializer


class AuditLogListView(generics.ListAPIView):
    """Audit log of a school, newest first. Admins of that school only."""
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdmin, IsSchoolMember]
    filter_backends = [DjangoFilterBackend]
    filterset_class = AuditLogFilter

    def get_queryset(self):
        return audit_log_queryset(self.kwargs['school_id'])
