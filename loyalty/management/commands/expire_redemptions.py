"""
Management command expiring open redemptions past their expiry date.
"""

from django.core.management.base import BaseCommand

from loyalty.services import RedemptionService


class Command(BaseCommand):
    help = "Marks pending/confirmed redemptions past their expiry as expired"

    def handle(self, *args, **options):
        expired = RedemptionService.expire_redemptions()
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} redemptions."))
