from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    ClaimsTokenObtainPairView,
    audit_context_view,
    custom_claims_view,
    imitation_view,
    me_view,
    refresh_claims_view,
    school_context_view,
    sign_in_view,
    sign_out_view,
)

urlpatterns = [
    path('token/', ClaimsTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('sign-in/', sign_in_view, name='sign-in'),
    path('sign-out/', sign_out_view, name='sign-out'),
    path('me/', me_view, name='current-user'),
    path('me/refresh-claims/', refresh_claims_view, name='refresh-claims'),
    path('imitation/', imitation_view, name='imitation'),
    path('audit-context/', audit_context_view, name='audit-context'),
    path('school-context/', school_context_view, name='school-context'),
    path('claims/', custom_claims_view, name='custom-claims'),
]
