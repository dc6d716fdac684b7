from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from store.exceptions import NotFound
from users.permissions import IsSchoolMember, RolePermission
from users.session import get_auth_session
from .dates import get_today_key, get_week
from .loaders import (
    load_accommodations,
    load_day,
    load_plan,
    load_specials_day,
    load_teacher_students,
)
from .serializers import CommentSerializer, IncidentSerializer, MatrixCellSerializer
from .totals import recalculate_day_totals
from .writers import log_custom_incident, save_comment, save_matrix_cell


@api_view(['GET'])
@permission_classes([RolePermission, IsSchoolMember])
def today_view(request, school_id):
    return Response({'dayKey': get_today_key(), 'week': get_week()})


@api_view(['GET'])
@permission_classes([RolePermission, IsSchoolMember])
def teacher_students(request, school_id, teacher_uid):
    return Response(load_teacher_students(school_id, teacher_uid))


@api_view(['GET'])
@permission_classes([RolePermission, IsSchoolMember])
def specials_day(request, school_id, day_code):
    subject_id = request.query_params.get('subject')
    return Response(load_specials_day(school_id, day_code, subject_id))


@api_view(['GET'])
@permission_classes([RolePermission, IsSchoolMember])
def plan_detail(request, school_id, plan_id):
    plan = load_plan(school_id, plan_id)
    if plan is None:
        raise NotFound('Plan not found')
    return Response(plan)


@api_view(['GET'])
@permission_classes([RolePermission, IsSchoolMember])
def accommodations_detail(request, school_id, student_id):
    accommodations = load_accommodations(school_id, student_id)
    if accommodations is None:
        raise NotFound('No accommodations recorded')
    return Response(accommodations)


@api_view(['GET'])
@permission_classes([RolePermission, IsSchoolMember])
def day_detail(request, school_id, plan_id, day_key):
    day = load_day(school_id, plan_id, day_key)
    if day is None:
        raise NotFound('No data recorded for this day')
    return Response(day)


@api_view(['PUT'])
@permission_classes([RolePermission, IsSchoolMember])
def matrix_cell(request, school_id, plan_id, day_key):
    serializer = MatrixCellSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    ctx = get_auth_session(request).get_audit_context()
    result = save_matrix_cell(school_id, plan_id, day_key, data['periodId'], data['goalId'], data['value'], ctx)
    return Response({'totals': result.data['totals'], 'audited': result.audited})


@api_view(['PUT'])
@permission_classes([RolePermission, IsSchoolMember])
def day_comment(request, school_id, plan_id, day_key):
    serializer = CommentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    ctx = get_auth_session(request).get_audit_context()
    result = save_comment(school_id, plan_id, day_key, data['role'], data['text'], ctx)
    return Response({'audited': result.audited})


@api_view(['POST'])
@permission_classes([RolePermission, IsSchoolMember])
def day_incident(request, school_id, plan_id, day_key):
    serializer = IncidentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    ctx = get_auth_session(request).get_audit_context()
    result = log_custom_incident(school_id, plan_id, day_key, data['button'], data['note'], data['source'], ctx)
    return Response({'incident': result.data, 'audited': result.audited}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([RolePermission, IsSchoolMember])
def day_recalculate(request, school_id, plan_id, day_key):
    totals = recalculate_day_totals(school_id, plan_id, day_key)
    if totals is None:
        raise NotFound('Totals could not be recalculated')
    return Response({'totals': totals})
