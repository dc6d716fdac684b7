from django.contrib import admin
from django.urls import path, include

from schools.views import dashboard_summary

urlpatterns = [
    path('admin/', admin.site.urls),
    path('dashboard/', dashboard_summary, name='dashboard'),
    path('api/users/', include('users.urls')),
    path('api/', include('schools.urls')),
    path('api/', include('behavior.urls')),
    path('api/', include('store.urls')),
]
