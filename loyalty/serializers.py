"""
Serializers for the Loyalty application.
"""

from decimal import Decimal

from rest_framework import serializers

from core.fields import PhoneNumberField
from loyalty.models import Customer, Redemption, Reward, Visit, Weekday
from users.serializers import BusinessSummarySerializer


class CustomerSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ["id", "phone_number", "first_name", "last_name"]


class CustomerProfileSerializer(serializers.ModelSerializer):
    """
    The customer's own profile. Phone number and counters are read-only.
    """

    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Customer
        fields = [
            "id",
            "phone_number",
            "first_name",
            "last_name",
            "full_name",
            "email",
            "is_phone_verified",
            "receive_promotions",
            "preferred_contact_method",
            "total_visits",
            "total_points_earned",
            "total_redemptions",
            "last_visit_date",
            "created_at",
        ]
        read_only_fields = [
            "id",
            "phone_number",
            "is_phone_verified",
            "total_visits",
            "total_points_earned",
            "total_redemptions",
            "last_visit_date",
            "created_at",
        ]

    def validate_email(self, value):
        return value.lower()


class BusinessCustomerSerializer(serializers.ModelSerializer):
    """
    A customer as seen by a business, with the points held at that business.
    """

    available_points = serializers.SerializerMethodField()

    class Meta:
        model = Customer
        fields = [
            "id",
            "phone_number",
            "first_name",
            "last_name",
            "total_visits",
            "total_points_earned",
            "last_visit_date",
            "available_points",
        ]

    def get_available_points(self, obj):
        ledger = self.context["ledger"]
        return ledger.points_balance(obj.pk, self.context["business"].pk)


class VisitSerializer(serializers.ModelSerializer):
    customer = CustomerSummarySerializer(read_only=True)
    business = BusinessSummarySerializer(read_only=True)

    class Meta:
        model = Visit
        fields = [
            "id",
            "customer",
            "business",
            "visit_date",
            "points_earned",
            "points_multiplier",
            "visit_type",
            "service_type",
            "amount",
            "notes",
            "is_validated",
            "validated_at",
            "created_at",
        ]
        read_only_fields = fields


class VisitCreateSerializer(serializers.Serializer):
    """
    Input for recording a visit. The customer is given by id or by phone number.
    """

    customer_id = serializers.IntegerField(required=False)
    customer_phone = PhoneNumberField(required=False)
    service_type = serializers.CharField(max_length=100, required=False, allow_blank=True)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)
    points_multiplier = serializers.DecimalField(
        max_digits=4, decimal_places=2, min_value=Decimal("0.1"), max_value=Decimal("10"), required=False
    )
    visit_type = serializers.ChoiceField(choices=Visit.VISIT_TYPES, required=False)
    visit_date = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        if attrs.get("customer_id") is None and not attrs.get("customer_phone"):
            raise serializers.ValidationError("Either customer_id or customer_phone is required.")
        return attrs


class VisitUpdateSerializer(serializers.ModelSerializer):
    """
    Administrative edits. Points, customer, business and date never change.
    """

    class Meta:
        model = Visit
        fields = ["service_type", "amount", "notes"]


class RewardSerializer(serializers.ModelSerializer):
    formatted_value = serializers.CharField(read_only=True)
    available_days = serializers.ListField(
        child=serializers.ChoiceField(choices=Weekday.choices), required=False, allow_empty=True
    )

    class Meta:
        model = Reward
        fields = [
            "id",
            "title",
            "description",
            "points_required",
            "reward_type",
            "reward_value",
            "formatted_value",
            "is_active",
            "max_redemptions_per_customer",
            "max_total_redemptions",
            "valid_from",
            "valid_until",
            "available_days",
            "available_time_start",
            "available_time_end",
            "terms",
            "minimum_purchase",
            "total_redemptions",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "total_redemptions", "created_at", "updated_at"]

    def to_internal_value(self, data):
        # Accept "Monday" as well as "monday"
        days = data.get("available_days") if hasattr(data, "get") else None
        if isinstance(days, list):
            data = {**data, "available_days": [str(day).lower() for day in days]}
        return super().to_internal_value(data)

    def validate_available_days(self, value):
        return list(dict.fromkeys(value))

    def validate(self, attrs):
        valid_from = attrs.get("valid_from", getattr(self.instance, "valid_from", None))
        valid_until = attrs.get("valid_until", getattr(self.instance, "valid_until", None))
        if valid_from and valid_until and valid_until <= valid_from:
            raise serializers.ValidationError({"valid_until": "Must be later than valid_from."})
        return attrs

    def update(self, instance, validated_data):
        # Only the edited columns are written; total_redemptions is maintained by redeem()
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save(update_fields=[*validated_data, "updated_at"])
        return instance


class CustomerRewardSerializer(RewardSerializer):
    """
    A reward as shown to a customer: adds the business and whether the
    customer can redeem it right now.
    """

    business = BusinessSummarySerializer(read_only=True)
    customer_points = serializers.SerializerMethodField()
    customer_can_redeem = serializers.SerializerMethodField()
    unavailable_reason = serializers.SerializerMethodField()

    class Meta(RewardSerializer.Meta):
        fields = RewardSerializer.Meta.fields + [
            "business",
            "customer_points",
            "customer_can_redeem",
            "unavailable_reason",
        ]

    def _balance(self, obj):
        # One aggregation per business, shared by every reward in the response
        balances = self.context.setdefault("balances", {})
        if obj.business_id not in balances:
            balances[obj.business_id] = self.context["ledger"].points_balance(
                self.context["customer"].pk, obj.business_id
            )
        return balances[obj.business_id]

    def _eligibility(self, obj):
        results = self.context.setdefault("eligibility", {})
        if obj.pk not in results:
            results[obj.pk] = self.context["evaluator"].evaluate(obj, self.context["customer"].pk)
        return results[obj.pk]

    def get_customer_points(self, obj):
        return self._balance(obj)

    def get_customer_can_redeem(self, obj):
        return self._eligibility(obj).eligible and self._balance(obj) >= obj.points_required

    def get_unavailable_reason(self, obj):
        result = self._eligibility(obj)
        if not result.eligible:
            return result.reason
        if self._balance(obj) < obj.points_required:
            return "Insufficient points"
        return None


class RedeemSerializer(serializers.Serializer):
    reward_id = serializers.IntegerField()
    transaction_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True
    )
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)


class RewardSummarySerializer(serializers.ModelSerializer):
    formatted_value = serializers.CharField(read_only=True)

    class Meta:
        model = Reward
        fields = ["id", "title", "reward_type", "reward_value", "formatted_value", "points_required", "terms"]


class RedemptionSerializer(serializers.ModelSerializer):
    reward = RewardSummarySerializer(read_only=True)
    customer = CustomerSummarySerializer(read_only=True)
    business = BusinessSummarySerializer(read_only=True)
    is_valid = serializers.SerializerMethodField()

    class Meta:
        model = Redemption
        fields = [
            "id",
            "redemption_code",
            "status",
            "points_used",
            "redemption_date",
            "expires_at",
            "used_at",
            "transaction_amount",
            "discount_applied",
            "notes",
            "reward",
            "customer",
            "business",
            "is_valid",
        ]
        read_only_fields = fields

    def get_is_valid(self, obj):
        return obj.is_valid()


class MarkUsedSerializer(serializers.Serializer):
    transaction_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True
    )
    discount_applied = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True
    )
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)


class CancelRedemptionSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True)


class AnalyticsQuerySerializer(serializers.Serializer):
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError("start_date must be before end_date.")
        return attrs
