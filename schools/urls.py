from django.urls import path

from .views import school_detail, school_theme, staff_detail

urlpatterns = [
    path('schools/<str:school_id>/', school_detail, name='school-detail'),
    path('schools/<str:school_id>/theme/', school_theme, name='school-theme'),
    path('schools/<str:school_id>/staff/<str:uid>/', staff_detail, name='staff-detail'),
]
