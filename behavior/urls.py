from django.urls import path

from .views import (
    accommodations_detail,
    day_comment,
    day_detail,
    day_incident,
    day_recalculate,
    matrix_cell,
    plan_detail,
    specials_day,
    teacher_students,
    today_view,
)

day_prefix = 'schools/<str:school_id>/plans/<str:plan_id>/days/<str:day_key>/'

urlpatterns = [
    path('schools/<str:school_id>/today/', today_view, name='today'),
    path('schools/<str:school_id>/teachers/<str:teacher_uid>/students/', teacher_students, name='teacher-students'),
    path('schools/<str:school_id>/specials/<str:day_code>/', specials_day, name='specials-day'),
    path('schools/<str:school_id>/plans/<str:plan_id>/', plan_detail, name='plan-detail'),
    path('schools/<str:school_id>/accommodations/<str:student_id>/', accommodations_detail, name='accommodations-detail'),
    path(day_prefix, day_detail, name='day-detail'),
    path(day_prefix + 'matrix/', matrix_cell, name='matrix-cell'),
    path(day_prefix + 'comments/', day_comment, name='day-comment'),
    path(day_prefix + 'incidents/', day_incident, name='day-incident'),
    path(day_prefix + 'recalculate/', day_recalculate, name='day-recalculate'),
]
