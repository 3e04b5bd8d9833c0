"""
URL configuration for CampusFix Authentication API.

All authentication endpoints are under /api/v1/auth/
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    LoginView,
    RegistrationView,
    CurrentUserView,
    ChangePasswordView,
    CreateStaffView,
)

app_name = 'authentication'

urlpatterns = [
    path('login/', LoginView.as_view(), name='login'),
    path('register/', RegistrationView.as_view(), name='register'),

    # Token management
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),

    # Current user
    path('me/', CurrentUserView.as_view(), name='current-user'),
    path('change-password/', ChangePasswordView.as_view(), name='change-password'),

    # Staff provisioning
    path('staff/', CreateStaffView.as_view(), name='create-staff'),
]
