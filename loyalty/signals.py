"""
Signals for the Loyalty application.
Keeps the cached counters and the dashboard cache in step with the ledgers.
"""

import logging
from functools import partial

from django.core.cache import cache
from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from loyalty.models import Redemption, Visit
from loyalty.stats import dashboard_cache_key, refresh_business_statistics, refresh_customer_statistics

logger = logging.getLogger(__name__)


def _refresh_statistics(business_id, customer_id):
    # Runs after commit: counters and cache are advisory, so failures are logged only.
    try:
        refresh_business_statistics(business_id)
        refresh_customer_statistics(customer_id)
    except Exception:
        logger.exception("Failed to refresh statistics for business %s / customer %s", business_id, customer_id)

    try:
        cache.delete(dashboard_cache_key(business_id))
    except Exception:
        logger.exception("Failed to clear the dashboard cache for business %s", business_id)


@receiver([post_save, post_delete], sender=Visit)
@receiver([post_save, post_delete], sender=Redemption)
def schedule_statistics_refresh(sender, instance, **kwargs):
    """
    Recomputes the counters once the surrounding transaction has committed.
    """
    transaction.on_commit(partial(_refresh_statistics, instance.business_id, instance.customer_id))
