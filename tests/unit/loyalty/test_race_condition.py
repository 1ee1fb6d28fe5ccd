"""
Concurrency tests for double-spending points on redemptions.
"""

import threading

from django.db import connection
from django.test import TransactionTestCase

from loyalty.exceptions import InsufficientPoints
from loyalty.ledger import LedgerAggregator
from loyalty.models import Redemption
from loyalty.services import RedemptionService
from tests.factories.loyalty import CustomerFactory, RewardFactory, VisitFactory


class TestRedemptionRaceCondition(TransactionTestCase):
    """
    Uses threads to simulate concurrent requests.
    Using TransactionTestCase is crucial here because standard TestCase
    wraps everything in a transaction that rolls back, which hides concurrency issues.
    """

    def test_concurrent_redemptions_cannot_double_spend(self):
        """
        Scenario: Customer has exactly 100 points.
        Two threads redeem a 100-point reward AT THE SAME TIME.

        Expected: One succeeds, the other fails with InsufficientPoints. Balance ends at 0.
        """
        # 1. Setup
        customer = CustomerFactory()
        reward = RewardFactory(points_required=100)
        VisitFactory(business=reward.business, customer=customer, points_earned=100)

        # Ensure DB is consistent before threads start
        connection.close()

        outcomes = []
        barrier = threading.Barrier(2)

        # 2. Each thread gets its own database connection, like separate requests
        def redeem():
            try:
                barrier.wait()
                RedemptionService().redeem(customer, reward)
                outcomes.append("ok")
            except InsufficientPoints:
                outcomes.append("insufficient")
            finally:
                connection.close()

        threads = [threading.Thread(target=redeem) for _ in range(2)]

        # 3. Start them simultaneously and wait for both to finish
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # 4. Check the result
        assert sorted(outcomes) == ["insufficient", "ok"]
        assert Redemption.objects.filter(customer=customer).count() == 1
        assert LedgerAggregator().points_balance(customer.pk, reward.business_id) == 0
