import pytest
from rest_framework.test import APIClient

from core.context import reset_current_business_id
from core.notifications import BaseNotifier, NotificationResult


@pytest.fixture
def api_client():
    """
    Fixture to provide an instance of DRF APIClient.
    """
    return APIClient()


@pytest.fixture(autouse=True)
def enable_db_access_for_all_tests(db):
    """
    Automatically enables database access for all tests.
    """
    pass


@pytest.fixture(autouse=True)
def clean_business_context():
    """
    Tests set the tenant context directly; never let it leak into the next test.
    """
    reset_current_business_id()
    yield
    reset_current_business_id()


class RecordingNotifier(BaseNotifier):
    """
    Keeps every delivered code in memory instead of sending it.
    """

    sent = []

    def send(self, destination, code):
        RecordingNotifier.sent.append((destination, code))
        return NotificationResult(success=True, message_id=f"test_{len(RecordingNotifier.sent)}")


@pytest.fixture
def sent_codes(settings):
    """
    Routes both notification channels to RecordingNotifier and returns the outbox.
    """
    settings.NOTIFIERS = {
        "sms": "tests.conftest.RecordingNotifier",
        "email": "tests.conftest.RecordingNotifier",
    }
    RecordingNotifier.sent = []
    return RecordingNotifier.sent
