"""
Authentication Views.
"""

import logging

from django.conf import settings
from rest_framework import generics, status
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.phone import format_phone_number, mask_phone_number
from loyalty.models import Customer
from loyalty.otp import OTPService
from loyalty.serializers import CustomerProfileSerializer
from users.permissions import IsBusiness, IsBusinessOrCustomer, is_customer_principal
from users.serializers import (
    BusinessLoginSerializer,
    BusinessRegistrationSerializer,
    BusinessSerializer,
    CustomerRegistrationSerializer,
    PhoneNumberSerializer,
    TeamMemberSerializer,
    UserDetailSerializer,
    VerifyOTPSerializer,
)
from users.tokens import issue_customer_tokens

logger = logging.getLogger(__name__)

BUSINESS_COOKIE = "businessToken"
CUSTOMER_COOKIE = "customerToken"


def set_token_cookie(response, name, token):
    response.set_cookie(
        name,
        token,
        max_age=int(settings.SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"].total_seconds()),
        httponly=True,
        secure=not settings.DEBUG,
        samesite="Strict",
    )
    return response


class BusinessRegisterView(generics.CreateAPIView):
    """
    POST /api/auth/business/register/
    Public endpoint to register a new business and its owner account.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = BusinessRegistrationSerializer

    def create(self, request, *args, **kwargs):
        response = super().create(request, *args, **kwargs)
        logger.info("Registered business %s", response.data["business"]["id"])
        return set_token_cookie(response, BUSINESS_COOKIE, response.data["access"])


class BusinessLoginView(APIView):
    """
    POST /api/auth/business/login/
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    www_authenticate_realm = "api"

    def get_authenticate_header(self, request):
        # Without it DRF turns bad credentials into a 403
        return f'Bearer realm="{self.www_authenticate_realm}"'

    def post(self, request):
        serializer = BusinessLoginSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        response = Response(serializer.data)
        return set_token_cookie(response, BUSINESS_COOKIE, response.data["access"])


class CustomerRegisterView(APIView):
    """
    POST /api/auth/customer/register/
    Phone-based sign up and sign in: finds or creates the customer and sends a verification code.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = CustomerRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        customer, created = Customer.objects.get_or_create(
            phone_number=data["phone_number"],
            defaults={
                "first_name": data.get("first_name", ""),
                "last_name": data.get("last_name", ""),
                "email": data.get("email", ""),
            },
        )
        result = OTPService().send(customer)

        if created:
            logger.info("New customer registered: %s", mask_phone_number(customer.phone_number))

        return Response(
            {
                "customer_id": customer.pk,
                "phone_number": format_phone_number(customer.phone_number, "us"),
                "is_existing_customer": not created,
                "otp_sent": result.success,
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


def get_customer_by_phone(phone_number):
    try:
        return Customer.objects.get(phone_number=phone_number)
    except Customer.DoesNotExist:
        raise NotFound("Customer not found.") from None


class VerifyOTPView(APIView):
    """
    POST /api/auth/customer/verify-otp/
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = VerifyOTPSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customer = get_customer_by_phone(serializer.validated_data["phone_number"])
        OTPService().verify(customer, serializer.validated_data["otp_code"])

        data = {"customer": CustomerProfileSerializer(customer).data}
        data.update(issue_customer_tokens(customer))
        return set_token_cookie(Response(data), CUSTOMER_COOKIE, data["access"])


class ResendOTPView(APIView):
    """
    POST /api/auth/customer/resend-otp/
    Rate-limited: one code per cooldown window.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = PhoneNumberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customer = get_customer_by_phone(serializer.validated_data["phone_number"])
        otp = OTPService()
        otp.ensure_can_resend(customer)
        result = otp.send(customer)

        return Response({"phone_number": serializer.formatted_phone(), "otp_sent": result.success})


class LogoutView(APIView):
    """
    POST /api/auth/logout/
    Clears the token cookies. Bearer tokens simply expire.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        response = Response({"logged_out": True})
        response.delete_cookie(BUSINESS_COOKIE, samesite="Strict")
        response.delete_cookie(CUSTOMER_COOKIE, samesite="Strict")
        return response


class ProfileView(APIView):
    """
    GET /api/auth/profile/
    Returns the profile of whoever is logged in: a business user or a customer.
    """

    permission_classes = [IsBusinessOrCustomer]

    def get(self, request):
        if is_customer_principal(request.user):
            return Response({"user_type": "customer", "customer": CustomerProfileSerializer(request.user).data})

        return Response(
            {
                "user_type": "business",
                "user": UserDetailSerializer(request.user).data,
                "business": BusinessSerializer(request.user.business).data,
            }
        )


class CreateTeamMemberView(generics.CreateAPIView):
    """
    POST /api/auth/team/
    Allows a business user (Owner) to add a new employee to their Business.
    """

    permission_classes = [IsBusiness]
    serializer_class = TeamMemberSerializer
