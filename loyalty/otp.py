"""
One-time code issuing and verification for customer phone numbers.
"""

import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from core.notifications import NotificationResult, get_notifier
from core.phone import mask_phone_number
from loyalty.exceptions import InvalidOTP, NoOTP, OTPExpired, OTPRateLimited, TooManyAttempts

logger = logging.getLogger(__name__)

OTP_FIELDS = ["otp_code", "otp_expires_at", "otp_attempts", "updated_at"]


class OTPState:
    ABSENT = "absent"
    ACTIVE = "active"
    EXPIRED = "expired"
    VERIFIED = "verified"


class OTPService:
    """
    Issues and checks the per-customer verification code.

    The code, its expiry and the failed-attempt counter live on the Customer row
    and are always persisted together.
    """

    def __init__(self, length=None, expire_minutes=None, max_attempts=None, resend_cooldown=None):
        config = settings.LOYALTY
        self.length = length or config["OTP_LENGTH"]
        self.expire_minutes = expire_minutes or config["OTP_EXPIRE_MINUTES"]
        self.max_attempts = max_attempts or config["OTP_MAX_ATTEMPTS"]
        self.resend_cooldown = resend_cooldown or config["OTP_RESEND_COOLDOWN_SECONDS"]

    def generate_code(self) -> str:
        return str(secrets.randbelow(10**self.length)).zfill(self.length)

    def issue(self, customer) -> str:
        """
        Generates a fresh code for the customer, replacing any previous one.
        """
        code = self.generate_code()
        customer.otp_code = code
        customer.otp_expires_at = timezone.now() + timedelta(minutes=self.expire_minutes)
        customer.otp_attempts = 0
        customer.save(update_fields=OTP_FIELDS)

        logger.info("Issued verification code for %s", mask_phone_number(customer.phone_number))
        return code

    def send(self, customer, notifier=None) -> NotificationResult:
        """
        Issues a code and delivers it over the customer's preferred channel.
        A failed delivery leaves the issued code in place.
        """
        code = self.issue(customer)

        use_email = customer.preferred_contact_method == customer.CONTACT_EMAIL and bool(customer.email)
        destination = customer.email if use_email else customer.phone_number
        notifier = notifier or get_notifier("email" if use_email else "sms")

        result = notifier.send(destination, code)
        if not result.success:
            logger.warning(
                "Verification code delivery failed for %s: %s", mask_phone_number(customer.phone_number), result.error
            )
        return result

    def verify(self, customer, code) -> None:
        """
        Checks a submitted code.

        Raises:
            NoOTP: no code was issued (or it was already used).
            OTPExpired: the code is past its expiry.
            TooManyAttempts: the attempt limit was reached before this submission.
            InvalidOTP: the code does not match; the failed attempt is recorded.
        """
        if not customer.otp_code:
            raise NoOTP()

        if timezone.now() > customer.otp_expires_at:
            raise OTPExpired()

        # Checked before comparing, so a correct code cannot be brute-forced after the limit
        if customer.otp_attempts >= self.max_attempts:
            raise TooManyAttempts()

        if not secrets.compare_digest(str(code), customer.otp_code):
            customer.otp_attempts += 1
            customer.save(update_fields=["otp_attempts", "updated_at"])
            raise InvalidOTP(attempts_remaining=max(self.max_attempts - customer.otp_attempts, 0))

        customer.otp_code = None
        customer.otp_expires_at = None
        customer.otp_attempts = 0
        customer.is_phone_verified = True
        customer.save(update_fields=OTP_FIELDS + ["is_phone_verified"])

        logger.info("Verified phone %s", mask_phone_number(customer.phone_number))

    def ensure_can_resend(self, customer) -> None:
        """
        Raises OTPRateLimited if the previous code was issued less than the cooldown ago.
        """
        if not customer.otp_expires_at:
            return

        issued_at = customer.otp_expires_at - timedelta(minutes=self.expire_minutes)
        elapsed = (timezone.now() - issued_at).total_seconds()
        if elapsed < self.resend_cooldown:
            raise OTPRateLimited(wait=self.resend_cooldown - elapsed)

    def state(self, customer) -> str:
        if customer.otp_code:
            if timezone.now() > customer.otp_expires_at:
                return OTPState.EXPIRED
            return OTPState.ACTIVE
        if customer.is_phone_verified:
            return OTPState.VERIFIED
        return OTPState.ABSENT
