"""
Unit tests for counters, dashboard and analytics aggregation.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from django.core.cache import cache

from loyalty import stats
from loyalty.models import Redemption
from tests.factories.loyalty import CustomerFactory, RedemptionFactory, RewardFactory, VisitFactory
from tests.factories.users import BusinessFactory


class TestRefreshStatistics:
    def test_refresh_recomputes_from_ledgers(self):
        business = BusinessFactory(total_visits=999, total_points_issued=999)
        first, second = CustomerFactory(), CustomerFactory()
        VisitFactory(business=business, customer=first, points_earned=10)
        VisitFactory(business=business, customer=second, points_earned=20)

        result = stats.refresh_all_statistics()

        business.refresh_from_db()
        assert result == {"businesses": 1, "customers": 2}
        assert business.total_visits == 2
        assert business.total_points_issued == 30
        assert business.total_customers == 2

    def test_customer_without_visits_resets_to_zero(self):
        customer = CustomerFactory(total_visits=5, total_points_earned=50)

        stats.refresh_customer_statistics(customer.pk)

        customer.refresh_from_db()
        assert customer.total_visits == 0
        assert customer.total_points_earned == 0
        assert customer.last_business_visited is None


class TestBusinessDashboard:
    def teardown_method(self):
        cache.clear()

    def test_dashboard_contents(self):
        business = BusinessFactory()
        VisitFactory(business=business, service_type="Haircut")
        VisitFactory(business=business, visit_date=datetime(2020, 1, 1, tzinfo=timezone.utc))
        RewardFactory(business=business)
        RewardFactory(business=business, is_active=False)
        RedemptionFactory(reward=RewardFactory(business=business))
        RedemptionFactory(reward=RewardFactory(business=business), status=Redemption.STATUS_USED)

        data = stats.business_dashboard(business)

        assert data["stats"]["today_visits"] == 1
        assert data["stats"]["active_rewards"] == 3
        assert data["stats"]["open_redemptions"] == 1
        assert len(data["recent_visits"]) == 2
        assert data["recent_visits"][0]["service_type"] == "Haircut"

    def test_dashboard_is_cached(self):
        business = BusinessFactory()
        stats.business_dashboard(business)

        VisitFactory(business=business)

        # Cache is only cleared by the commit-time signal, which does not run in this test
        assert stats.business_dashboard(business)["stats"]["today_visits"] == 0


class TestBusinessAnalytics:
    def test_daily_aggregates(self):
        business = BusinessFactory()
        day_one = datetime(2025, 3, 1, 10, tzinfo=timezone.utc)
        day_two = datetime(2025, 3, 2, 10, tzinfo=timezone.utc)
        customer = CustomerFactory()

        VisitFactory(business=business, customer=customer, visit_date=day_one, points_earned=10, amount=Decimal("20"))
        VisitFactory(business=business, customer=customer, visit_date=day_one, points_earned=10, amount=Decimal("40"))
        VisitFactory(business=business, visit_date=day_two, points_earned=5)
        VisitFactory(visit_date=day_two)  # other business
        RedemptionFactory(reward=RewardFactory(business=business, points_required=50), redemption_date=day_two)

        result = stats.business_analytics(business, start=day_one - timedelta(days=1), end=day_two + timedelta(days=1))

        assert result["summary"] == {
            "total_days": 2,
            "total_visits": 3,
            "total_points": 25,
            "average_visits_per_day": 2,
        }
        first_day = result["visits"][0]
        assert first_day["visits"] == 2
        assert first_day["unique_customers"] == 1
        assert first_day["average_amount"] == Decimal("30")
        assert result["redemptions"][0]["points_used"] == 50

    def test_defaults_to_last_thirty_days(self):
        business = BusinessFactory()
        VisitFactory(business=business)
        VisitFactory(business=business, visit_date=datetime(2000, 1, 1, tzinfo=timezone.utc))

        result = stats.business_analytics(business)

        assert result["summary"]["total_visits"] == 1
        assert result["period"]["end"] - result["period"]["start"] == timedelta(days=30)
