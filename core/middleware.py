"""
Middleware for handling tenant authentication and context management.
"""

import logging

from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import InvalidToken

from core.context import reset_current_business_id, set_current_business_id
from users.authentication import LoyaltyJWTAuthentication

logger = logging.getLogger(__name__)

PUBLIC_PATH_PREFIXES = ("/admin/", "/static/", "/favicon.ico")


class BusinessContextMiddleware:
    """
    Determines which business the request acts for.

    Business logins (bearer token or `businessToken` cookie) activate the
    tenant context, so every TenantAwareModel query is scoped to that business.
    Customer logins and anonymous requests run without a context.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        # Always reset context at the start of the request to prevent data leakage
        reset_current_business_id()

        if request.path.startswith(PUBLIC_PATH_PREFIXES):
            return self.get_response(request)

        business = self._resolve_business(request)
        if business is not None:
            set_current_business_id(business.id)
            request.business = business

        try:
            return self.get_response(request)
        finally:
            reset_current_business_id()

    @staticmethod
    def _resolve_business(request):
        # Middleware runs BEFORE DRF views, so the token is checked manually here.
        # Bad tokens are left for the view to reject with a 401.
        try:
            auth_result = LoyaltyJWTAuthentication().authenticate(request)
        except (InvalidToken, AuthenticationFailed) as e:
            logger.debug("Ignoring unusable token on %s: %s", request.path, e)
            return None

        if not auth_result:
            return None

        principal, _ = auth_result
        if getattr(principal, "subject_type", None) != "business":
            return None
        return principal.business
