"""
URL routing for the loyalty application API.
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from loyalty.views import (
    BusinessAnalyticsView,
    BusinessCustomersView,
    BusinessDashboardView,
    BusinessProfileView,
    CustomerPointsView,
    CustomerProfileView,
    CustomerRedemptionsView,
    CustomerVisitsView,
    LoyaltySettingsView,
    RewardViewSet,
    VisitViewSet,
)

router = DefaultRouter()
router.register(r"visits", VisitViewSet, basename="visits")
router.register(r"rewards", RewardViewSet, basename="rewards")  # + redeem / redemptions / verify

urlpatterns = [
    path("customer/profile/", CustomerProfileView.as_view(), name="customer_profile"),
    path("customer/visits/", CustomerVisitsView.as_view(), name="customer_visits"),
    path("customer/redemptions/", CustomerRedemptionsView.as_view(), name="customer_redemptions"),
    path("customer/points/", CustomerPointsView.as_view(), name="customer_points"),
    path("business/profile/", BusinessProfileView.as_view(), name="business_profile"),
    path("business/loyalty-settings/", LoyaltySettingsView.as_view(), name="business_loyalty_settings"),
    path("business/dashboard/", BusinessDashboardView.as_view(), name="business_dashboard"),
    path("business/analytics/", BusinessAnalyticsView.as_view(), name="business_analytics"),
    path("business/customers/", BusinessCustomersView.as_view(), name="business_customers"),
] + router.urls
