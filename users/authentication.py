"""
JWT authentication for both principals of the API: business users and customers.
"""

from rest_framework import exceptions
from rest_framework_simplejwt.authentication import JWTAuthentication

from users.tokens import CUSTOMER_ID_CLAIM, SUBJECT_CUSTOMER, SUBJECT_TYPE_CLAIM

TOKEN_COOKIES = ("businessToken", "customerToken")


class LoyaltyJWTAuthentication(JWTAuthentication):
    """
    Reads a bearer token from the 'Authorization' header, falling back to the
    'businessToken' / 'customerToken' cookies set at login.

    Tokens whose `subject_type` claim is "customer" resolve to a loyalty.Customer,
    everything else resolves to a users.User as usual.
    """

    def authenticate(self, request):
        header = self.get_header(request)
        if header is not None:
            raw_token = self.get_raw_token(header)
        else:
            raw_token = self.get_cookie_token(request)

        if raw_token is None:
            return None

        validated_token = self.get_validated_token(raw_token)
        return self.get_user(validated_token), validated_token

    @staticmethod
    def get_cookie_token(request):
        for name in TOKEN_COOKIES:
            value = request.COOKIES.get(name)
            if value:
                return value.encode()
        return None

    def get_user(self, validated_token):
        if validated_token.get(SUBJECT_TYPE_CLAIM) != SUBJECT_CUSTOMER:
            return super().get_user(validated_token)

        # Imported lazily: loyalty models depend on the users app.
        from loyalty.models import Customer

        customer_id = validated_token.get(CUSTOMER_ID_CLAIM)
        if customer_id is None:
            raise exceptions.AuthenticationFailed("Token contained no recognizable customer identification")

        try:
            customer = Customer.objects.get(id=customer_id)
        except Customer.DoesNotExist:
            raise exceptions.AuthenticationFailed("Customer not found", code="customer_not_found") from None

        if not customer.is_active:
            raise exceptions.AuthenticationFailed("Customer account is disabled", code="customer_inactive")
        if not customer.is_phone_verified:
            raise exceptions.AuthenticationFailed("Phone number not verified", code="phone_not_verified")

        return customer
