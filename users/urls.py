"""
URL configuration for the authentication API.
"""

from django.urls import path
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.views import TokenRefreshView

from users.views import (
    BusinessLoginView,
    BusinessRegisterView,
    CreateTeamMemberView,
    CustomerRegisterView,
    LogoutView,
    ProfileView,
    ResendOTPView,
    VerifyOTPView,
)

urlpatterns = [
    path("business/register/", BusinessRegisterView.as_view(), name="auth_business_register"),
    path("business/login/", BusinessLoginView.as_view(), name="auth_business_login"),
    path("customer/register/", CustomerRegisterView.as_view(), name="auth_customer_register"),
    path("customer/verify-otp/", VerifyOTPView.as_view(), name="auth_customer_verify_otp"),
    path("customer/resend-otp/", ResendOTPView.as_view(), name="auth_customer_resend_otp"),
    # Standard JWT Refresh (returns new access token)
    path("refresh/", TokenRefreshView.as_view(permission_classes=[AllowAny]), name="auth_refresh"),
    path("logout/", LogoutView.as_view(), name="auth_logout"),
    path("profile/", ProfileView.as_view(), name="auth_profile"),
    # Create new employee user for the business
    path("team/", CreateTeamMemberView.as_view(), name="auth_team_create"),
]
