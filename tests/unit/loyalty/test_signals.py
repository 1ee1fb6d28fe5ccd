"""
Tests for Django Signals: counter refresh and dashboard cache invalidation.
"""

from unittest.mock import patch

from django.core.cache import cache

from loyalty.models import Redemption
from loyalty.services import RedemptionService
from loyalty.stats import business_dashboard, dashboard_cache_key
from tests.factories.loyalty import CustomerFactory, RedemptionFactory, RewardFactory, VisitFactory
from tests.factories.users import BusinessFactory


class TestStatisticsRefreshSignals:
    """
    Verifies that ledger writes recompute the cached counters once the transaction commits.
    """

    def teardown_method(self):
        cache.clear()

    def test_visit_refreshes_counters_after_commit(self, django_capture_on_commit_callbacks):
        business = BusinessFactory()
        customer = CustomerFactory()

        with django_capture_on_commit_callbacks(execute=True):
            VisitFactory(business=business, customer=customer, points_earned=10)
            VisitFactory(business=business, customer=customer, points_earned=15)

        business.refresh_from_db()
        customer.refresh_from_db()
        assert business.total_visits == 2
        assert business.total_points_issued == 25
        assert business.total_customers == 1
        assert customer.total_visits == 2
        assert customer.total_points_earned == 25
        assert customer.last_business_visited_id == business.pk
        assert customer.last_visit_date is not None

    def test_counters_are_not_touched_before_commit(self, django_capture_on_commit_callbacks):
        business = BusinessFactory()

        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            VisitFactory(business=business)

        business.refresh_from_db()
        assert len(callbacks) == 1
        assert business.total_visits == 0

    def test_deleting_a_visit_recomputes_counters(self, django_capture_on_commit_callbacks):
        business = BusinessFactory()
        with django_capture_on_commit_callbacks(execute=True):
            visit = VisitFactory(business=business)
            VisitFactory(business=business)

        with django_capture_on_commit_callbacks(execute=True):
            visit.delete()

        business.refresh_from_db()
        assert business.total_visits == 1

    def test_redemption_updates_redemption_counters(self, django_capture_on_commit_callbacks):
        reward = RewardFactory()
        customer = CustomerFactory()

        with django_capture_on_commit_callbacks(execute=True):
            RedemptionFactory(reward=reward, customer=customer, status=Redemption.STATUS_CANCELLED)

        reward.business.refresh_from_db()
        customer.refresh_from_db()
        assert reward.business.total_redemptions == 1
        assert customer.total_redemptions == 1

    def test_ledger_write_clears_dashboard_cache(self, django_capture_on_commit_callbacks):
        business = BusinessFactory()
        business_dashboard(business)
        assert cache.get(dashboard_cache_key(business.pk)) is not None

        with django_capture_on_commit_callbacks(execute=True):
            VisitFactory(business=business)

        assert cache.get(dashboard_cache_key(business.pk)) is None

    def test_refresh_failure_is_logged_not_raised(self, django_capture_on_commit_callbacks, caplog):
        business = BusinessFactory()

        with patch("loyalty.signals.refresh_business_statistics", side_effect=RuntimeError("db down")):
            with django_capture_on_commit_callbacks(execute=True):
                VisitFactory(business=business)

        assert "Failed to refresh statistics" in caplog.text

    def test_cache_outage_does_not_fail_a_committed_redemption(self, django_capture_on_commit_callbacks, caplog):
        """
        The refresh runs after commit; a cache error there must not reach the caller.
        """
        reward = RewardFactory(points_required=100)
        customer = CustomerFactory()
        VisitFactory(business=reward.business, customer=customer, points_earned=100)

        with patch("loyalty.signals.cache.delete", side_effect=ConnectionError("redis down")):
            with django_capture_on_commit_callbacks(execute=True):
                redemption = RedemptionService().redeem(customer, reward)

        assert Redemption.objects.filter(pk=redemption.pk).exists()
        assert "Failed to clear the dashboard cache" in caplog.text
