"""
Integration tests for the 'generate_demo_data' management command.
"""

from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.utils import timezone

from loyalty.models import Customer, Reward, Visit
from tests.factories.users import BusinessFactory
from users.models import Business


def run_command(**options):
    call_command("generate_demo_data", customers=5, visits=10, stdout=StringIO(), **options)


class TestGenerateDemoDataCommand:
    def test_creates_business_if_none_exists(self):
        """
        The command creates a demo business and its owner when the DB is empty.
        """
        assert Business.objects.count() == 0

        run_command()

        assert Business.objects.count() == 1
        business = Business.objects.get()
        assert business.business_name == "Demo Barbershop"
        assert business.users.filter(email="owner@example.com").exists()

    def test_uses_existing_business(self):
        existing = BusinessFactory(business_name="Existing Cafe")

        run_command()

        assert Business.objects.count() == 1
        assert set(Visit.objects.values_list("business_id", flat=True)) == {existing.pk}

    def test_populates_customers_visits_and_rewards(self):
        run_command()

        assert Customer.objects.count() == 5
        assert Visit.objects.count() == 10
        assert Reward.objects.count() == 3

    def test_counters_are_refreshed(self):
        """
        bulk_create skips signals, so the command refreshes counters itself.
        """
        run_command()

        business = Business.objects.get()
        assert business.total_visits == 10
        assert business.total_points_issued == sum(Visit.objects.values_list("points_earned", flat=True))

    def test_visits_are_backdated(self):
        """
        If backdating didn't work, all visits would share the same timestamp (now).
        """
        run_command()

        dates = set(Visit.objects.values_list("visit_date", flat=True))
        assert len(dates) > 1, "All visits have the same timestamp! Backdating logic failed."

        recent_cutoff = timezone.now() - timedelta(minutes=1)
        assert Visit.objects.filter(visit_date__lt=recent_cutoff).count() > 6
