"""
Custom management command to generate demo data.
"""

import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from loyalty.models import Customer, Reward, Visit
from loyalty.services import VisitService
from loyalty.stats import refresh_all_statistics
from users.models import Business, User

DEMO_REWARDS = [
    ("Free Coffee", Reward.TYPE_FREE_ITEM, 0, 50),
    ("10% Off Next Visit", Reward.TYPE_DISCOUNT_PERCENTAGE, 10, 100),
    ("$5 Off", Reward.TYPE_DISCOUNT_FIXED, 5, 150),
]


class Command(BaseCommand):
    help = "Generates demo data for the Loyalty Platform"

    def add_arguments(self, parser):
        parser.add_argument("--customers", type=int, default=100, help="Number of customers to generate")
        parser.add_argument("--visits", type=int, default=2000, help="Number of visits to generate")

    @transaction.atomic
    def handle(self, *args, **options):
        num_customers = options["customers"]
        num_visits = options["visits"]

        self.stdout.write(f" Starting demo data generation (Customers: {num_customers}, Visits: {num_visits})...")

        business = Business.objects.first()
        if not business:
            business = Business.objects.create(
                business_name="Demo Barbershop",
                business_type=Business.BusinessType.BARBERSHOP,
                email="demo@example.com",
                phone_number="+15550000000",
                is_verified=True,
            )
            User.objects.create_user(email="owner@example.com", password="demo-password", business=business)

        for title, reward_type, value, points in DEMO_REWARDS:
            Reward.objects.get_or_create(
                business=business,
                title=title,
                defaults={"reward_type": reward_type, "reward_value": value, "points_required": points},
            )

        customers = []
        for i in range(1, num_customers + 1):
            customer, _ = Customer.objects.get_or_create(
                phone_number=f"+1555{i:07d}",
                defaults={"first_name": f"Demo{i}", "is_phone_verified": True},
            )
            customers.append(customer)

        now = timezone.now()
        multipliers = [Decimal("1"), Decimal("1"), Decimal("1"), Decimal("1.5"), Decimal("2")]
        visits_to_create = []
        for _ in range(num_visits):
            multiplier = random.choice(multipliers)
            visits_to_create.append(
                Visit(
                    business=business,
                    customer=random.choice(customers),
                    points_multiplier=multiplier,
                    points_earned=VisitService.calculate_visit_points(business, multiplier),
                    visit_date=now - timedelta(days=random.randint(0, 30), minutes=random.randint(0, 600)),
                    amount=random.randint(10, 120),
                    notes="Demo Data Auto-generated",
                )
            )

        # bulk_create skips post_save, so counters are refreshed in one pass below
        Visit.objects.bulk_create(visits_to_create)

        refresh_all_statistics()

        self.stdout.write(
            self.style.SUCCESS(f" Done! Created {num_customers} customers and {num_visits} visits.")
        )
