"""
Unit tests for RewardEligibilityEvaluator.
"""

from datetime import datetime, timedelta, timezone

from loyalty.eligibility import ELIGIBLE, RewardEligibilityEvaluator
from loyalty.models import Redemption
from tests.factories.loyalty import CustomerFactory, RedemptionFactory, RewardFactory

MONDAY_NOON = datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc)
TUESDAY_NOON = datetime(2025, 1, 7, 12, 0, tzinfo=timezone.utc)
LONG_AGO = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestRewardEligibility:
    def setup_method(self):
        self.evaluator = RewardEligibilityEvaluator(tz_name="UTC")
        self.customer = CustomerFactory()

    def _reward(self, **kwargs):
        kwargs.setdefault("valid_from", LONG_AGO)
        return RewardFactory(**kwargs)

    def test_plain_active_reward_is_eligible(self):
        reward = self._reward()

        assert self.evaluator.evaluate(reward, self.customer.pk, MONDAY_NOON) == ELIGIBLE

    def test_inactive_reward(self):
        reward = self._reward(is_active=False)

        result = self.evaluator.evaluate(reward, self.customer.pk, MONDAY_NOON)

        assert result.eligible is False
        assert result.reason == "Reward is not active"

    def test_validity_window(self):
        upcoming = self._reward(valid_from=MONDAY_NOON + timedelta(days=1))
        ended = self._reward(valid_until=MONDAY_NOON - timedelta(seconds=1))

        assert self.evaluator.evaluate(upcoming, self.customer.pk, MONDAY_NOON).reason == "Reward is not yet available"
        assert self.evaluator.evaluate(ended, self.customer.pk, MONDAY_NOON).reason == "Reward has expired"

    def test_global_redemption_limit(self):
        reward = self._reward(max_total_redemptions=2, total_redemptions=2)

        result = self.evaluator.evaluate(reward, self.customer.pk, MONDAY_NOON)

        assert result.reason == "Reward redemption limit reached"

    def test_per_customer_limit_counts_every_status(self):
        reward = self._reward(max_redemptions_per_customer=1)
        RedemptionFactory(reward=reward, customer=self.customer, status=Redemption.STATUS_CANCELLED)

        result = self.evaluator.evaluate(reward, self.customer.pk, MONDAY_NOON)
        assert result.reason == "You have reached the redemption limit for this reward"

        # Another customer is unaffected
        assert self.evaluator.is_eligible(reward, CustomerFactory().pk, MONDAY_NOON) is True

    def test_weekday_restriction(self):
        """
        Scenario: reward available on Mondays only.
        Expected: eligible on Monday, not on Tuesday.
        """
        reward = self._reward(available_days=["monday"])

        assert self.evaluator.is_eligible(reward, self.customer.pk, MONDAY_NOON) is True

        result = self.evaluator.evaluate(reward, self.customer.pk, TUESDAY_NOON)
        assert result.eligible is False
        assert result.reason == "Reward is not available today"

    def test_weekday_uses_configured_timezone(self):
        """
        Tuesday 03:00 UTC is still Monday evening in New York.
        """
        reward = self._reward(available_days=["monday"])
        tuesday_early_utc = datetime(2025, 1, 7, 3, 0, tzinfo=timezone.utc)

        utc = RewardEligibilityEvaluator(tz_name="UTC")
        new_york = RewardEligibilityEvaluator(tz_name="America/New_York")

        assert utc.is_eligible(reward, self.customer.pk, tuesday_early_utc) is False
        assert new_york.is_eligible(reward, self.customer.pk, tuesday_early_utc) is True

    def test_time_window_is_inclusive(self):
        reward = self._reward(lunch_hours=True)

        def at(hour, minute):
            return MONDAY_NOON.replace(hour=hour, minute=minute)

        assert self.evaluator.is_eligible(reward, self.customer.pk, at(12, 0)) is True
        assert self.evaluator.is_eligible(reward, self.customer.pk, at(14, 0)) is True
        assert self.evaluator.evaluate(reward, self.customer.pk, at(14, 1)).reason == (
            "Reward is not available at this time"
        )
        assert self.evaluator.is_eligible(reward, self.customer.pk, at(11, 59)) is False

    def test_first_failing_check_wins(self):
        """
        An inactive reward outside its weekday reports inactivity, not the weekday.
        """
        reward = self._reward(is_active=False, available_days=["monday"])

        result = self.evaluator.evaluate(reward, self.customer.pk, TUESDAY_NOON)

        assert result.reason == "Reward is not active"
