"""
Role guards for the two kinds of principals.
"""

from rest_framework.permissions import BasePermission


def is_business_principal(principal) -> bool:
    return (
        bool(principal)
        and principal.is_authenticated
        and getattr(principal, "subject_type", None) == "business"
        and getattr(principal, "business_id", None) is not None
    )


def is_customer_principal(principal) -> bool:
    return bool(principal) and principal.is_authenticated and getattr(principal, "subject_type", None) == "customer"


class IsBusiness(BasePermission):
    """
    Allows access only to users belonging to a business.
    """

    message = "Business access required."

    def has_permission(self, request, view):
        return is_business_principal(request.user)


class IsCustomer(BasePermission):
    message = "Customer access required."

    def has_permission(self, request, view):
        return is_customer_principal(request.user)


class IsBusinessOrCustomer(BasePermission):
    message = "Authentication required."

    def has_permission(self, request, view):
        return is_business_principal(request.user) or is_customer_principal(request.user)
