"""
Models for the Loyalty application.
"""

import re
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from core.models import TenantAwareModel, TimeStampedModel
from core.phone import normalize_phone_number
from loyalty.exceptions import InvalidTimeRange

TIME_OF_DAY_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


class Weekday(models.TextChoices):
    """
    Day names as stored in Reward.available_days, in datetime.weekday() order.
    """

    MONDAY = "monday", "Monday"
    TUESDAY = "tuesday", "Tuesday"
    WEDNESDAY = "wednesday", "Wednesday"
    THURSDAY = "thursday", "Thursday"
    FRIDAY = "friday", "Friday"
    SATURDAY = "saturday", "Saturday"
    SUNDAY = "sunday", "Sunday"

    @classmethod
    def of(cls, moment):
        return list(cls)[moment.weekday()]


class Customer(TimeStampedModel):
    """
    A person collecting points. NOT a system user and NOT tenant-scoped:
    one customer (identified by normalized phone number) visits many businesses.
    """

    CONTACT_SMS = "sms"
    CONTACT_EMAIL = "email"
    CONTACT_NONE = "none"

    CONTACT_METHODS = [
        (CONTACT_SMS, "SMS"),
        (CONTACT_EMAIL, "E-mail"),
        (CONTACT_NONE, "None"),
    ]

    phone_number = models.CharField(max_length=20, unique=True)
    first_name = models.CharField(max_length=50, blank=True)
    last_name = models.CharField(max_length=50, blank=True)
    email = models.EmailField(blank=True)
    is_phone_verified = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    # One-time code sub-record. The three fields are always written together.
    otp_code = models.CharField(max_length=10, blank=True, null=True)
    otp_expires_at = models.DateTimeField(blank=True, null=True)
    otp_attempts = models.PositiveSmallIntegerField(default=0)

    receive_promotions = models.BooleanField(default=True)
    preferred_contact_method = models.CharField(max_length=10, choices=CONTACT_METHODS, default=CONTACT_SMS)

    # Cached counters (advisory, recomputed by loyalty.stats)
    total_visits = models.PositiveIntegerField(default=0)
    total_points_earned = models.PositiveIntegerField(default=0)
    total_redemptions = models.PositiveIntegerField(default=0)
    last_visit_date = models.DateTimeField(blank=True, null=True)
    last_business_visited = models.ForeignKey(
        "users.Business", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        indexes = [models.Index(fields=["email"], name="customer_email_idx")]

    def __str__(self):
        return self.full_name or self.phone_number

    def save(self, *args, **kwargs):
        if self.phone_number:
            self.phone_number = normalize_phone_number(self.phone_number)
        super().save(*args, **kwargs)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    # A Customer is the authenticated principal of customer requests (see users.authentication).
    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False

    @property
    def subject_type(self):
        return "customer"


class Visit(TenantAwareModel):
    """
    An immutable fact: the customer visited the business and earned points.
    `points_earned` is computed once at creation and never recomputed.
    """

    TYPE_REGULAR = "regular"
    TYPE_BONUS = "bonus"
    TYPE_PROMOTIONAL = "promotional"

    VISIT_TYPES = [
        (TYPE_REGULAR, "Regular"),
        (TYPE_BONUS, "Bonus"),
        (TYPE_PROMOTIONAL, "Promotional"),
    ]

    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name="visits")
    visit_date = models.DateTimeField(default=timezone.now)
    points_earned = models.PositiveIntegerField()
    points_multiplier = models.DecimalField(
        max_digits=4,
        decimal_places=2,
        default=1,
        validators=[MinValueValidator(Decimal("0.1")), MaxValueValidator(Decimal("10"))],
    )
    visit_type = models.CharField(max_length=20, choices=VISIT_TYPES, default=TYPE_REGULAR)
    service_type = models.CharField(max_length=100, blank=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    notes = models.TextField(max_length=500, blank=True)
    is_validated = models.BooleanField(default=True)
    validated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="validated_visits"
    )
    validated_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-visit_date"]
        indexes = [
            models.Index(fields=["customer", "business"], name="visit_customer_business_idx"),
            models.Index(fields=["business", "visit_date"], name="visit_business_date_idx"),
            models.Index(fields=["customer", "visit_date"], name="visit_customer_date_idx"),
        ]

    def __str__(self):
        return f"{self.customer} @ {self.business} (+{self.points_earned})"


class Reward(TenantAwareModel):
    """
    Represents an item or benefit that customers can redeem with points.
    e.g., "Free Coffee", "10% Discount".
    """

    TYPE_DISCOUNT_PERCENTAGE = "discount_percentage"
    TYPE_DISCOUNT_FIXED = "discount_fixed"
    TYPE_FREE_SERVICE = "free_service"
    TYPE_FREE_ITEM = "free_item"
    TYPE_OTHER = "other"

    REWARD_TYPES = [
        (TYPE_DISCOUNT_PERCENTAGE, "Percentage discount"),
        (TYPE_DISCOUNT_FIXED, "Fixed discount"),
        (TYPE_FREE_SERVICE, "Free service"),
        (TYPE_FREE_ITEM, "Free item"),
        (TYPE_OTHER, "Other"),
    ]

    title = models.CharField(max_length=100)
    description = models.TextField(max_length=500, blank=True)
    points_required = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    reward_type = models.CharField(max_length=30, choices=REWARD_TYPES)
    reward_value = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    is_active = models.BooleanField(default=True)

    # Null means unlimited
    max_redemptions_per_customer = models.PositiveIntegerField(blank=True, null=True)
    max_total_redemptions = models.PositiveIntegerField(blank=True, null=True)

    valid_from = models.DateTimeField(default=timezone.now)
    valid_until = models.DateTimeField(blank=True, null=True)

    # Weekday names, empty = every day. Times are "HH:MM" in LOYALTY_TIMEZONE.
    available_days = models.JSONField(default=list, blank=True)
    available_time_start = models.CharField(max_length=5, blank=True, null=True)
    available_time_end = models.CharField(max_length=5, blank=True, null=True)

    total_redemptions = models.PositiveIntegerField(default=0)
    terms = models.TextField(max_length=1000, blank=True)
    minimum_purchase = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)

    class Meta:
        ordering = ["points_required"]
        indexes = [
            models.Index(fields=["business", "is_active"], name="reward_business_active_idx"),
            models.Index(fields=["valid_from", "valid_until"], name="reward_validity_idx"),
        ]

    def __str__(self):
        return self.title

    def clean_time_range(self):
        """
        Raises InvalidTimeRange unless both times are well-formed "HH:MM"
        and the window starts before it ends.
        """
        for value in (self.available_time_start, self.available_time_end):
            if value and not TIME_OF_DAY_PATTERN.match(value):
                raise InvalidTimeRange(f"Invalid time format '{value}'. Use HH:MM.")

        if self.available_time_start and self.available_time_end:
            # Zero-padded HH:MM strings compare correctly as text
            if self.available_time_start >= self.available_time_end:
                raise InvalidTimeRange("Start time must be before end time.")

    def save(self, *args, **kwargs):
        self.clean_time_range()
        super().save(*args, **kwargs)

    @property
    def formatted_value(self):
        value = Decimal(str(self.reward_value or 0)).normalize()
        if self.reward_type == self.TYPE_DISCOUNT_PERCENTAGE:
            return f"{value:f}% off"
        if self.reward_type == self.TYPE_DISCOUNT_FIXED:
            return f"${value:f} off"
        if self.reward_type in (self.TYPE_FREE_SERVICE, self.TYPE_FREE_ITEM):
            return "Free"
        return self.description


class Redemption(TenantAwareModel):
    """
    Points spent on a reward. Holds points while pending, confirmed or used;
    expired and cancelled redemptions release them.
    """

    STATUS_PENDING = "pending"
    STATUS_CONFIRMED = "confirmed"
    STATUS_USED = "used"
    STATUS_EXPIRED = "expired"
    STATUS_CANCELLED = "cancelled"

    STATUSES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_USED, "Used"),
        (STATUS_EXPIRED, "Expired"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # Statuses whose points count against the balance
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_USED)
    # Statuses that can still move on (use, expire, cancel)
    OPEN_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)

    ALLOWED_TRANSITIONS = {
        STATUS_PENDING: {STATUS_CONFIRMED, STATUS_EXPIRED, STATUS_CANCELLED},
        STATUS_CONFIRMED: {STATUS_USED, STATUS_EXPIRED, STATUS_CANCELLED},
        STATUS_USED: set(),
        STATUS_EXPIRED: set(),
        STATUS_CANCELLED: set(),
    }

    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name="redemptions")
    reward = models.ForeignKey(Reward, on_delete=models.PROTECT, related_name="redemptions")
    points_used = models.PositiveIntegerField()
    redemption_date = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_PENDING)
    redemption_code = models.CharField(max_length=8, unique=True, editable=False)
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(blank=True, null=True)
    used_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="processed_redemptions"
    )
    notes = models.TextField(max_length=500, blank=True)
    transaction_amount = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    discount_applied = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)

    class Meta:
        ordering = ["-redemption_date"]
        indexes = [
            models.Index(fields=["customer", "redemption_date"], name="redemption_customer_date_idx"),
            models.Index(fields=["business", "redemption_date"], name="redemption_business_date_idx"),
            models.Index(fields=["status", "expires_at"], name="redemption_status_expiry_idx"),
        ]

    def __str__(self):
        return f"{self.redemption_code} ({self.get_status_display()})"

    def save(self, *args, **kwargs):
        if self.expires_at is None:
            days = settings.LOYALTY["REDEMPTION_EXPIRY_DAYS"]
            self.expires_at = (self.redemption_date or timezone.now()) + timedelta(days=days)
        super().save(*args, **kwargs)

    def can_transition_to(self, status):
        return status in self.ALLOWED_TRANSITIONS.get(self.status, set())

    def is_valid(self, now=None):
        """
        A redemption can be honored at the counter only while confirmed, unused and unexpired.
        """
        now = now or timezone.now()
        return self.status == self.STATUS_CONFIRMED and self.used_at is None and self.expires_at > now
