"""
Models for the users application (Auth and Business/Tenant)
"""

import uuid

from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.db import models

from core.models import TimeStampedModel
from users.managers import CustomUserManager


def default_business_hours():
    weekdays = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
    hours = {day: {"open": "09:00", "close": "18:00", "closed": False} for day in weekdays}
    hours["sunday"] = {"open": "10:00", "close": "16:00", "closed": True}
    return hours


class Business(TimeStampedModel):
    """
    Represents a Tenant (a local business running a loyalty program).
    """

    class BusinessType(models.TextChoices):
        SALON = "salon", "Salon"
        BARBERSHOP = "barbershop", "Barbershop"
        EATERY = "eatery", "Eatery"
        OTHER = "other", "Other"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business_name = models.CharField(max_length=100)
    business_type = models.CharField(max_length=20, choices=BusinessType.choices)
    email = models.EmailField(unique=True)
    # Stored normalized, see core.phone.normalize_phone_number
    phone_number = models.CharField(max_length=20, unique=True)

    street = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    zip_code = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, default="USA")

    is_verified = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    business_hours = models.JSONField(default=default_business_hours, blank=True)

    # Loyalty program settings
    points_per_visit = models.PositiveIntegerField(default=10, validators=[MinValueValidator(1)])
    redemption_threshold = models.PositiveIntegerField(default=100, validators=[MinValueValidator(10)])
    reward_value = models.PositiveIntegerField(default=10, validators=[MinValueValidator(1)])
    max_redemptions_per_day = models.PositiveIntegerField(default=5, validators=[MinValueValidator(1)])

    # Cached counters. Advisory only; recomputed by loyalty.stats.
    total_customers = models.PositiveIntegerField(default=0)
    total_visits = models.PositiveIntegerField(default=0)
    total_points_issued = models.PositiveIntegerField(default=0)
    total_redemptions = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name_plural = "businesses"
        indexes = [
            models.Index(fields=["business_type"], name="business_type_idx"),
            models.Index(fields=["city"], name="business_city_idx"),
        ]

    def __str__(self):
        return self.business_name

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)

    @property
    def full_address(self):
        parts = [self.street, self.city, self.state, self.zip_code, self.country]
        return ", ".join(part for part in parts if part)


class User(AbstractUser):
    """
    Custom User model supporting Email login.
    Owners and staff of a Business sign in with it.
    """

    username = None
    email = models.EmailField("email address", unique=True)

    business = models.ForeignKey(
        "users.Business", on_delete=models.SET_NULL, null=True, blank=True, related_name="users"
    )

    objects = CustomUserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    def __str__(self):
        return self.email

    @property
    def subject_type(self):
        return "business"
