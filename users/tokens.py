"""
Token issuing for business users and customers.
"""

from rest_framework_simplejwt.tokens import RefreshToken

SUBJECT_TYPE_CLAIM = "subject_type"
CUSTOMER_ID_CLAIM = "customer_id"
BUSINESS_ID_CLAIM = "business_id"

SUBJECT_BUSINESS = "business"
SUBJECT_CUSTOMER = "customer"


def issue_business_tokens(user) -> dict:
    refresh = RefreshToken.for_user(user)
    refresh[SUBJECT_TYPE_CLAIM] = SUBJECT_BUSINESS
    if user.business_id:
        refresh[BUSINESS_ID_CLAIM] = str(user.business_id)

    return {"access": str(refresh.access_token), "refresh": str(refresh)}


def issue_customer_tokens(customer) -> dict:
    refresh = RefreshToken()
    refresh[SUBJECT_TYPE_CLAIM] = SUBJECT_CUSTOMER
    refresh[CUSTOMER_ID_CLAIM] = customer.id

    return {"access": str(refresh.access_token), "refresh": str(refresh)}
