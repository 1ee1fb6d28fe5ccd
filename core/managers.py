"""
Custom Django managers for core functionality (multi-tenancy).
"""

from django.db import models

from core.context import get_current_business_id


class TenantAwareManager(models.Manager):
    """
    A custom manager that automatically filters querysets based on the current
    active business context.

    A business can never see visits, rewards or redemptions of another business.
    Customer-facing requests run without a business context and must scope
    their queries by customer explicitly.
    """

    def get_queryset(self):
        queryset = super().get_queryset()

        business_id = get_current_business_id()

        # If a tenant context is active, force a filter on the queryset.
        # This applies to all subsequent chain calls (filter, exclude, get, etc.)
        if business_id:
            return queryset.filter(business_id=business_id)

        # No context (customer requests, Celery tasks, management commands)
        return queryset
