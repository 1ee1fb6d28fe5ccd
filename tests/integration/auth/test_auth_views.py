"""
Integration tests for Authentication (business accounts and customer phone sign-in).
"""

import json
from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from loyalty.models import Customer
from tests.factories.loyalty import CustomerFactory
from tests.factories.users import BusinessFactory, UserFactory
from users.models import Business

User = get_user_model()


class TestBusinessAuthAPI:
    """
    Integration tests for business registration, login and team management.
    """

    def setup_method(self):
        self.client = APIClient()

    def _register_payload(self, **overrides):
        payload = {
            "business_name": "Lviv Croissants",
            "business_type": "eatery",
            "email": "New_Owner@Coffee.com",
            "password": "StrongPassword123!",
            "phone_number": "(555) 010-2030",
            "city": "Austin",
        }
        payload.update(overrides)
        return payload

    def test_register_business_success(self):
        """
        POST /api/auth/business/register/
        Should create a Business and its owner User, return JWT tokens and set the cookie.
        """
        response = self.client.post("/api/auth/business/register/", data=self._register_payload())

        assert response.status_code == status.HTTP_201_CREATED
        assert "access" in response.data
        assert "refresh" in response.data
        assert response.cookies["businessToken"]["httponly"]

        business = Business.objects.get(email="new_owner@coffee.com")
        assert business.phone_number == "+15550102030"
        assert User.objects.get(email="new_owner@coffee.com").business == business

        body = json.loads(response.content)
        assert body["success"] is True
        assert body["data"]["business"]["business_name"] == "Lviv Croissants"

    def test_register_duplicate_phone_conflicts(self):
        """
        The same phone number in another format is still a duplicate.
        """
        BusinessFactory(phone_number="+15550102030")

        response = self.client.post(
            "/api/auth/business/register/", data=self._register_payload(phone_number="555.010.2030")
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["success"] is False

    def test_register_duplicate_email_conflicts(self):
        UserFactory(email="new_owner@coffee.com")

        response = self.client.post("/api/auth/business/register/", data=self._register_payload())

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_register_invalid_phone_is_a_validation_error(self):
        response = self.client.post("/api/auth/business/register/", data=self._register_payload(phone_number="123"))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["message"] == "Validation failed"
        assert response.data["errors"][0]["field"] == "phone_number"

    def test_register_phone_longer_than_column_is_a_validation_error(self):
        response = self.client.post(
            "/api/auth/business/register/", data=self._register_payload(phone_number="+" + "4" * 24)
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Business.objects.count() == 0

    def test_login_gives_jwt_tokens(self):
        user = UserFactory(email="login@test.com")
        user.set_password("password123")
        user.save()

        payload = {"email": "Login@Test.com", "password": "password123"}
        response = self.client.post("/api/auth/business/login/", data=payload)

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data
        assert response.data["business"]["id"] == str(user.business_id)

    def test_login_invalid_credentials_fails(self):
        user = UserFactory(email="hacker@test.com")
        user.set_password("correct_password")
        user.save()

        response = self.client.post("/api/auth/business/login/", data={"email": user.email, "password": "WRONG"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data == {"success": False, "message": "Invalid email or password."}

    def test_login_deactivated_business_fails(self):
        user = UserFactory(business=BusinessFactory(is_active=False))
        user.set_password("pass123")
        user.save()

        response = self.client.post("/api/auth/business/login/", data={"email": user.email, "password": "pass123"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_token_refresh_flow(self):
        user = UserFactory()
        user.set_password("pass123")
        user.save()

        login_resp = self.client.post("/api/auth/business/login/", data={"email": user.email, "password": "pass123"})
        response = self.client.post("/api/auth/refresh/", data={"refresh": login_resp.data["refresh"]})

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data

    def test_bearer_token_authenticates_requests(self):
        user = UserFactory()
        user.set_password("pass123")
        user.save()
        access = self.client.post(
            "/api/auth/business/login/", data={"email": user.email, "password": "pass123"}
        ).data["access"]

        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        response = client.get("/api/auth/profile/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["user_type"] == "business"

    def test_get_business_profile(self):
        user = UserFactory(first_name="John")
        self.client.force_authenticate(user=user)

        response = self.client.get("/api/auth/profile/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["user"]["email"] == user.email
        assert response.data["business"]["id"] == str(user.business_id)

    def test_profile_requires_authentication(self):
        response = self.client.get("/api/auth/profile/")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["success"] is False

    def test_add_team_member_to_existing_business(self):
        """
        POST /api/auth/team/
        Should add a new user to the *same* business as the requestor.
        """
        owner = UserFactory(email="owner@cafe.com")
        self.client.force_authenticate(user=owner)

        payload = {"email": "manager@cafe.com", "password": "securepassword", "first_name": "Bob"}
        response = self.client.post("/api/auth/team/", data=payload)

        assert response.status_code == status.HTTP_201_CREATED
        assert User.objects.get(email="manager@cafe.com").business == owner.business

    def test_team_member_email_conflict(self):
        owner = UserFactory()
        UserFactory(email="taken@cafe.com")
        self.client.force_authenticate(user=owner)

        response = self.client.post("/api/auth/team/", data={"email": "taken@cafe.com", "password": "secret1"})

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_logout_clears_cookies(self):
        response = self.client.post("/api/auth/logout/")

        assert response.status_code == status.HTTP_200_OK
        assert response.cookies["businessToken"].value == ""
        assert response.cookies["customerToken"].value == ""


class TestCustomerAuthAPI:
    """
    Phone sign-in: register (or sign back in), receive a code, verify it, get tokens.
    """

    def setup_method(self):
        self.client = APIClient()

    def test_register_new_customer_sends_code(self, sent_codes):
        response = self.client.post(
            "/api/auth/customer/register/", data={"phone_number": "(555) 333-4444", "first_name": "Ann"}
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["phone_number"] == "(555) 333-4444"
        assert response.data["is_existing_customer"] is False
        assert response.data["otp_sent"] is True

        customer = Customer.objects.get(phone_number="+15553334444")
        assert customer.first_name == "Ann"
        assert customer.is_phone_verified is False
        assert sent_codes == [("+15553334444", customer.otp_code)]

    def test_existing_customer_signs_back_in(self, sent_codes):
        customer = CustomerFactory(phone_number="+15553334444")

        response = self.client.post("/api/auth/customer/register/", data={"phone_number": "555-333-4444"})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["customer_id"] == customer.pk
        assert response.data["is_existing_customer"] is True
        assert Customer.objects.count() == 1

    def test_full_phone_verification_flow(self, sent_codes):
        self.client.post("/api/auth/customer/register/", data={"phone_number": "5553334444"})
        code = sent_codes[-1][1]

        response = self.client.post(
            "/api/auth/customer/verify-otp/", data={"phone_number": "+1 555 333 4444", "otp_code": code}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["customer"]["is_phone_verified"] is True
        assert response.cookies["customerToken"].value == response.data["access"]

        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        profile = client.get("/api/auth/profile/")
        assert profile.data["user_type"] == "customer"
        assert profile.data["customer"]["phone_number"] == "+15553334444"

    def test_wrong_code_reports_remaining_attempts(self, sent_codes):
        self.client.post("/api/auth/customer/register/", data={"phone_number": "5553334444"})
        wrong = "000000" if sent_codes[-1][1] != "000000" else "111111"

        response = self.client.post(
            "/api/auth/customer/verify-otp/", data={"phone_number": "5553334444", "otp_code": wrong}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["data"] == {"attempts_remaining": 2}

    def test_expired_code(self, sent_codes):
        self.client.post("/api/auth/customer/register/", data={"phone_number": "5553334444"})
        code = sent_codes[-1][1]

        with patch("django.utils.timezone.now", return_value=timezone.now() + timedelta(minutes=10)):
            response = self.client.post(
                "/api/auth/customer/verify-otp/", data={"phone_number": "5553334444", "otp_code": code}
            )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "expired" in response.data["message"]

    def test_register_rejects_number_longer_than_column(self):
        response = self.client.post("/api/auth/customer/register/", data={"phone_number": "+" + "4" * 24})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["errors"][0]["field"] == "phone_number"
        assert Customer.objects.count() == 0

    def test_verify_unknown_phone(self):
        response = self.client.post(
            "/api/auth/customer/verify-otp/", data={"phone_number": "5559990000", "otp_code": "123456"}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_verify_rejects_non_numeric_code(self):
        response = self.client.post(
            "/api/auth/customer/verify-otp/", data={"phone_number": "5553334444", "otp_code": "12ab56"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_resend_is_rate_limited(self, sent_codes):
        self.client.post("/api/auth/customer/register/", data={"phone_number": "5553334444"})

        response = self.client.post("/api/auth/customer/resend-otp/", data={"phone_number": "5553334444"})

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.data["retry_after"] > 0
        assert len(sent_codes) == 1

    def test_resend_after_cooldown(self, sent_codes):
        self.client.post("/api/auth/customer/register/", data={"phone_number": "5553334444"})

        with patch("django.utils.timezone.now", return_value=timezone.now() + timedelta(seconds=90)):
            response = self.client.post("/api/auth/customer/resend-otp/", data={"phone_number": "5553334444"})

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"phone_number": "(555) 333-4444", "otp_sent": True}
        assert len(sent_codes) == 2
