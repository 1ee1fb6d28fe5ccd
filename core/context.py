"""
Context management utilities for tenant (business) isolation handling.
"""

from contextvars import ContextVar
from typing import Optional
from uuid import UUID

# Context variable to hold the ID of the business the current request acts for.
# Using contextvars ensures thread-safety and async compatibility
_current_business_id: ContextVar[Optional[UUID]] = ContextVar("current_business_id", default=None)


def set_current_business_id(business_id: UUID):
    """
    Sets the business UUID for the current execution context.
    """
    _current_business_id.set(business_id)


def get_current_business_id() -> Optional[UUID]:
    """
    Retrieves the business UUID from the current execution context.
    Returns None if no context is active (customer requests, Celery tasks).
    """
    return _current_business_id.get()


def reset_current_business_id():
    """
    Resets the context variable to None.
    """
    _current_business_id.set(None)
