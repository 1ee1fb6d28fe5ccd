"""
Reward availability rules.
"""

from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone

from loyalty.models import Redemption, Weekday


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: Optional[str] = None


ELIGIBLE = EligibilityResult(eligible=True)


class RewardEligibilityEvaluator:
    """
    Decides whether a reward can be redeemed right now by a given customer.

    Checks run in a fixed order and stop at the first failure:
    active flag, validity window, global limit, per-customer limit,
    weekday, time of day. The points balance is checked by the caller.
    """

    def __init__(self, tz_name=None):
        self.tz = ZoneInfo(tz_name or settings.LOYALTY["LOYALTY_TIMEZONE"])

    def evaluate(self, reward, customer_id, now=None) -> EligibilityResult:
        now = now or timezone.now()

        if not reward.is_active:
            return EligibilityResult(False, "Reward is not active")

        if reward.valid_from and now < reward.valid_from:
            return EligibilityResult(False, "Reward is not yet available")
        if reward.valid_until and now > reward.valid_until:
            return EligibilityResult(False, "Reward has expired")

        if reward.max_total_redemptions is not None and reward.total_redemptions >= reward.max_total_redemptions:
            return EligibilityResult(False, "Reward redemption limit reached")

        if reward.max_redemptions_per_customer is not None:
            redeemed = Redemption._base_manager.filter(reward_id=reward.pk, customer_id=customer_id).count()
            if redeemed >= reward.max_redemptions_per_customer:
                return EligibilityResult(False, "You have reached the redemption limit for this reward")

        local_now = now.astimezone(self.tz)

        if reward.available_days and Weekday.of(local_now).value not in reward.available_days:
            return EligibilityResult(False, "Reward is not available today")

        if reward.available_time_start and reward.available_time_end:
            current_time = local_now.strftime("%H:%M")
            if not reward.available_time_start <= current_time <= reward.available_time_end:
                return EligibilityResult(False, "Reward is not available at this time")

        return ELIGIBLE

    def is_eligible(self, reward, customer_id, now=None) -> bool:
        return self.evaluate(reward, customer_id, now).eligible
