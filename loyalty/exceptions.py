"""
Business-rule errors raised by the loyalty services.

All of them are DRF exceptions, so views let them propagate and the
envelope exception handler renders them.
"""

from core.exceptions import DomainError, RateLimitError


class InsufficientPoints(DomainError):
    default_detail = "Insufficient points."
    default_code = "insufficient_points"

    def __init__(self, required, available):
        super().__init__(
            f"Insufficient points. Required: {required}, available: {available}",
            data={"required": required, "available": available},
        )
        self.required = required
        self.available = available


class RewardNotAvailable(DomainError):
    default_detail = "Reward is not available."
    default_code = "reward_not_available"


class NotRedeemable(DomainError):
    default_detail = "Redemption cannot be used."
    default_code = "not_redeemable"


class InvalidTimeRange(DomainError):
    default_detail = "Invalid availability time range."
    default_code = "invalid_time_range"


class MinimumPurchaseNotMet(DomainError):
    default_detail = "Minimum purchase amount not met."
    default_code = "minimum_purchase_not_met"


class NoOTP(DomainError):
    default_detail = "No verification code found. Please request a new one."
    default_code = "no_otp"


class OTPExpired(DomainError):
    default_detail = "Verification code has expired. Please request a new one."
    default_code = "otp_expired"


class TooManyAttempts(DomainError):
    default_detail = "Too many failed attempts. Please request a new code."
    default_code = "too_many_attempts"


class InvalidOTP(DomainError):
    default_detail = "Invalid verification code."
    default_code = "invalid_otp"

    def __init__(self, attempts_remaining):
        super().__init__(
            f"Invalid verification code. {attempts_remaining} attempts remaining.",
            data={"attempts_remaining": attempts_remaining},
        )
        self.attempts_remaining = attempts_remaining


class OTPRateLimited(RateLimitError):
    default_detail = "Please wait before requesting a new verification code."
    default_code = "otp_rate_limited"
