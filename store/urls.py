from django.urls import path

from .views import AuditLogListView

urlpatterns = [
    path('schools/<str:school_id>/audit-logs/', AuditLogListView.as_view(), name='audit-logs'),
]
