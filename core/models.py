"""
Abstract base models providing multi-tenancy capabilities.
"""

from django.db import models

from core.context import get_current_business_id
from core.managers import TenantAwareManager

__all__ = ["TenantAwareManager", "TenantAwareModel", "TimeStampedModel"]


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class TenantAwareModel(TimeStampedModel):
    """
    Abstract base class for all records owned by a single business.

    It enforces two main behaviors:
    1. Data Isolation: Uses TenantAwareManager to restrict read access.
    2. Auto-Assignment: Automatically links new records to the active business on save.
    """

    # String reference avoids a circular import with the users app.
    # db_index=True is critical for performance as this column is used in almost every WHERE clause.
    business = models.ForeignKey(
        "users.Business",
        on_delete=models.CASCADE,
        related_name="%(class)ss",  # visits, rewards, redemptions
        db_index=True,
    )

    objects = TenantAwareManager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """
        Overridden save method to automatically assign the business.
        """
        if not self.business_id:
            business_id = get_current_business_id()
            if business_id:
                self.business_id = business_id

        super().save(*args, **kwargs)
