import logging

from django.http import JsonResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from behavior.dates import get_today_key
from store.client import get_store
from store.exceptions import NotFound
from users.decorators import guarded
from users.permissions import IsAdmin, IsSchoolMember, RolePermission
from users.roles import Role
from users.session import get_auth_session
from .loaders import load_school, load_staff
from .serializers import ThemeSerializer
from .writers import set_theme

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([RolePermission, IsSchoolMember])
def school_detail(request, school_id):
    school = load_school(school_id)
    if school is None:
        raise NotFound('School not found')
    return Response(school)


@api_view(['PUT'])
@permission_classes([IsAdmin, IsSchoolMember])
def school_theme(request, school_id):
    serializer = ThemeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    ctx = get_auth_session(request).get_audit_context()
    result = set_theme(school_id, serializer.validated_data, ctx=ctx)
    return Response({'theme': serializer.validated_data, 'audited': result.audited})


@api_view(['GET'])
@permission_classes([RolePermission, IsSchoolMember])
def staff_detail(request, school_id, uid):
    staff = load_staff(school_id, uid)
    if staff is None:
        raise NotFound('Staff not found')
    return Response(staff)


def school_summary(school_id, store=None):
    """Counts for the dashboard and the average score of today's days."""
    store = store or get_store()
    school = load_school(school_id, store=store)
    day_key = get_today_key()

    today_pcts = []
    for plan in store.collection('schools', school_id, 'plans').where('active', '==', True).stream():
        day = store.doc('schools', school_id, 'plans', plan.id, 'days', day_key).get()
        pct = day.get('totals.pct')
        if pct is not None:
            today_pcts.append(pct)

    return {
        'school_id': school_id,
        'school_name': school.get('name') if school else None,
        'students_count': store.collection('schools', school_id, 'students').queryset().count(),
        'staff_count': store.collection('schools', school_id, 'staff').queryset().count(),
        'day_key': day_key,
        'days_recorded_today': len(today_pcts),
        'average_pct_today': round(sum(today_pcts) / len(today_pcts)) if today_pcts else None,
    }


@guarded(required_roles=[Role.ADMIN, Role.ACHIEVEMENT])
def dashboard_summary(request):
    """
    Summary of the signed-in user's school for admin and achievement
    dashboards.
    """
    try:
        ctx = get_auth_session(request).get_school_context()
    except NotFound as e:
        return JsonResponse({'error': e.code, 'detail': e.message}, status=404)
    return JsonResponse(school_summary(ctx.school_id))
