"""
Thin delivery adapters for one-time codes (SMS via Twilio, e-mail via Django).
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.mail import send_mail
from django.utils.module_loading import import_string
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from core.phone import mask_phone_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class BaseNotifier:
    """
    Delivers a verification code to a destination (phone number or e-mail).
    Implementations never raise for delivery problems; they report them in the result.
    """

    def send(self, destination: str, code: str) -> NotificationResult:
        raise NotImplementedError

    @staticmethod
    def build_message(code: str) -> str:
        minutes = settings.LOYALTY["OTP_EXPIRE_MINUTES"]
        return f"Your verification code is: {code}. Valid for {minutes} minutes."


class SMSNotifier(BaseNotifier):
    def __init__(self, account_sid=None, auth_token=None, from_number=None):
        self.account_sid = account_sid or settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token or settings.TWILIO_AUTH_TOKEN
        self.from_number = from_number or settings.TWILIO_PHONE_NUMBER

    @property
    def is_configured(self) -> bool:
        return all([self.account_sid, self.auth_token, self.from_number])

    def send(self, destination: str, code: str) -> NotificationResult:
        body = self.build_message(code)

        if not self.is_configured:
            if settings.DEBUG:
                logger.info("[DEV] SMS to %s: %s", destination, body)
                return NotificationResult(success=True, message_id=f"dev_{uuid.uuid4().hex[:12]}")
            logger.warning("Twilio is not configured, SMS to %s not sent", mask_phone_number(destination))
            return NotificationResult(success=False, error="SMS service not configured")

        try:
            client = Client(self.account_sid, self.auth_token)
            message = client.messages.create(to=destination, from_=self.from_number, body=body)
        except (TwilioException, OSError) as e:
            # OSError covers transport failures, requests.RequestException included
            logger.error("Twilio SMS error for %s: %s", mask_phone_number(destination), e)
            return NotificationResult(success=False, error=str(e))

        logger.info("SMS sent to %s (sid=%s)", mask_phone_number(destination), message.sid)
        return NotificationResult(success=True, message_id=message.sid)


class EmailNotifier(BaseNotifier):
    subject = "Your verification code"

    def send(self, destination: str, code: str) -> NotificationResult:
        try:
            sent = send_mail(
                self.subject,
                self.build_message(code),
                settings.DEFAULT_FROM_EMAIL,
                [destination],
            )
        except OSError as e:
            logger.error("E-mail delivery to %s failed: %s", destination, e)
            return NotificationResult(success=False, error=str(e))

        if not sent:
            return NotificationResult(success=False, error="E-mail was not accepted for delivery")
        return NotificationResult(success=True, message_id=f"email_{uuid.uuid4().hex[:12]}")


def get_notifier(channel: str = "sms") -> BaseNotifier:
    """
    Instantiates the notifier configured for a channel in settings.NOTIFIERS,
    e.g. {"sms": "core.notifications.SMSNotifier"}.
    """
    try:
        path = settings.NOTIFIERS[channel]
    except KeyError:
        raise ValueError(f"No notifier configured for channel '{channel}'") from None
    return import_string(path)()
