from celery import shared_task

from loyalty import stats
from loyalty.services import RedemptionService


@shared_task
def expire_stale_redemptions():
    """
    Periodic task (hourly) moving open redemptions past their expiry to 'expired'.
    """
    expired = RedemptionService.expire_redemptions()
    return f"Finished. Expired {expired} redemptions."


@shared_task
def refresh_all_statistics():
    """
    Periodic task (nightly) recomputing every cached counter from the ledgers.
    """
    result = stats.refresh_all_statistics()
    return f"Finished. Refreshed {result['businesses']} businesses and {result['customers']} customers."
