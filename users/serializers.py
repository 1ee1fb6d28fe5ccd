"""
Serializers for authentication, business profiles and team management.
"""

from django.contrib.auth import authenticate, get_user_model
from django.db import transaction
from rest_framework import exceptions, serializers

from core.exceptions import ConflictError
from core.fields import PhoneNumberField
from core.phone import format_phone_number
from users.models import Business
from users.tokens import issue_business_tokens

User = get_user_model()


class BusinessSummarySerializer(serializers.ModelSerializer):
    """
    Compact business info nested inside visits, rewards and redemptions.
    """

    class Meta:
        model = Business
        fields = ["id", "business_name", "business_type", "city", "state"]


class BusinessSerializer(serializers.ModelSerializer):
    """
    Public profile of a business, also used for profile updates.
    """

    phone_number = PhoneNumberField()
    full_address = serializers.CharField(read_only=True)

    class Meta:
        model = Business
        fields = [
            "id",
            "business_name",
            "business_type",
            "email",
            "phone_number",
            "street",
            "city",
            "state",
            "zip_code",
            "country",
            "full_address",
            "business_hours",
            "is_verified",
            "is_active",
            "points_per_visit",
            "redemption_threshold",
            "reward_value",
            "max_redemptions_per_day",
            "total_customers",
            "total_visits",
            "total_points_issued",
            "total_redemptions",
            "created_at",
        ]
        read_only_fields = [
            "id",
            "email",
            "is_verified",
            "is_active",
            "points_per_visit",
            "redemption_threshold",
            "reward_value",
            "max_redemptions_per_day",
            "total_customers",
            "total_visits",
            "total_points_issued",
            "total_redemptions",
            "created_at",
        ]

    def validate_phone_number(self, value):
        taken = Business.objects.filter(phone_number=value)
        if self.instance is not None:
            taken = taken.exclude(pk=self.instance.pk)
        if taken.exists():
            raise ConflictError("Business with this phone number already exists.")
        return value


class LoyaltySettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = Business
        fields = ["points_per_visit", "redemption_threshold", "reward_value", "max_redemptions_per_day"]


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Serializer for viewing the current business user's profile.
    """

    business = BusinessSerializer(read_only=True)

    class Meta:
        model = User
        fields = ["id", "email", "first_name", "last_name", "business"]


class BusinessRegistrationSerializer(serializers.Serializer):
    """
    Registers a new Tenant: the Business plus its owner User, atomically.
    """

    business_name = serializers.CharField(max_length=100)
    business_type = serializers.ChoiceField(choices=Business.BusinessType.choices)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6, style={"input_type": "password"})
    phone_number = PhoneNumberField()
    street = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    zip_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    country = serializers.CharField(max_length=100, required=False, allow_blank=True)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)

    def validate(self, attrs):
        attrs["email"] = attrs["email"].lower()
        email_taken = (
            Business.objects.filter(email=attrs["email"]).exists() or User.objects.filter(email=attrs["email"]).exists()
        )
        if email_taken or Business.objects.filter(phone_number=attrs["phone_number"]).exists():
            raise ConflictError("Business with this email or phone number already exists.")
        return attrs

    def create(self, validated_data):
        password = validated_data.pop("password")
        owner_fields = {
            "first_name": validated_data.pop("first_name", ""),
            "last_name": validated_data.pop("last_name", ""),
        }
        if not validated_data.get("country"):
            validated_data.pop("country", None)

        with transaction.atomic():
            business = Business.objects.create(**validated_data)
            user = User.objects.create_user(
                email=business.email, password=password, business=business, **owner_fields
            )

        return user

    def to_representation(self, instance):
        """
        Include JWT tokens immediately after registration.
        """
        data = {
            "user": {"id": instance.id, "email": instance.email},
            "business": BusinessSerializer(instance.business).data,
        }
        data.update(issue_business_tokens(instance))
        return data


class BusinessLoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={"input_type": "password"})

    def validate(self, attrs):
        user = authenticate(self.context.get("request"), email=attrs["email"].lower(), password=attrs["password"])
        if user is None:
            raise exceptions.AuthenticationFailed("Invalid email or password.")
        if user.business is None or not user.business.is_active:
            raise exceptions.AuthenticationFailed("Business account is deactivated.")

        attrs["user"] = user
        return attrs

    def to_representation(self, instance):
        user = instance["user"]
        data = {
            "user": {"id": user.id, "email": user.email},
            "business": BusinessSerializer(user.business).data,
        }
        data.update(issue_business_tokens(user))
        return data


class CustomerRegistrationSerializer(serializers.Serializer):
    phone_number = PhoneNumberField()
    first_name = serializers.CharField(max_length=50, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=50, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)

    def validate_email(self, value):
        return value.lower()


class PhoneNumberSerializer(serializers.Serializer):
    phone_number = PhoneNumberField()

    def formatted_phone(self):
        return format_phone_number(self.validated_data["phone_number"], "us")


class VerifyOTPSerializer(PhoneNumberSerializer):
    otp_code = serializers.RegexField(r"^\d{4,10}$", error_messages={"invalid": "Code must contain only digits."})


class TeamMemberSerializer(serializers.ModelSerializer):
    """
    Serializer for adding staff users to an EXISTING business.
    Only accessible by authenticated business users.
    """

    password = serializers.CharField(write_only=True, min_length=6, style={"input_type": "password"})

    class Meta:
        model = User
        fields = ["id", "email", "password", "first_name", "last_name"]

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email=value).exists():
            raise ConflictError("A user with this email already exists.")
        return value

    def create(self, validated_data):
        """
        Create a user and link them to the requestor's business.
        """
        request = self.context.get("request")
        business = getattr(request.user, "business", None) if request else None
        if business is None:
            raise serializers.ValidationError("You must belong to a business to add members.")

        return User.objects.create_user(
            email=validated_data["email"],
            password=validated_data["password"],
            business=business,
            first_name=validated_data.get("first_name", ""),
            last_name=validated_data.get("last_name", ""),
        )
