import decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("users", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("phone_number", models.CharField(max_length=20, unique=True)),
                ("first_name", models.CharField(blank=True, max_length=50)),
                ("last_name", models.CharField(blank=True, max_length=50)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("is_phone_verified", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("otp_code", models.CharField(blank=True, max_length=10, null=True)),
                ("otp_expires_at", models.DateTimeField(blank=True, null=True)),
                ("otp_attempts", models.PositiveSmallIntegerField(default=0)),
                ("receive_promotions", models.BooleanField(default=True)),
                (
                    "preferred_contact_method",
                    models.CharField(
                        choices=[("sms", "SMS"), ("email", "E-mail"), ("none", "None")], default="sms", max_length=10
                    ),
                ),
                ("total_visits", models.PositiveIntegerField(default=0)),
                ("total_points_earned", models.PositiveIntegerField(default=0)),
                ("total_redemptions", models.PositiveIntegerField(default=0)),
                ("last_visit_date", models.DateTimeField(blank=True, null=True)),
                (
                    "last_business_visited",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="users.business",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["email"], name="customer_email_idx")],
            },
        ),
        migrations.CreateModel(
            name="Reward",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("title", models.CharField(max_length=100)),
                ("description", models.TextField(blank=True, max_length=500)),
                (
                    "points_required",
                    models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                (
                    "reward_type",
                    models.CharField(
                        choices=[
                            ("discount_percentage", "Percentage discount"),
                            ("discount_fixed", "Fixed discount"),
                            ("free_service", "Free service"),
                            ("free_item", "Free item"),
                            ("other", "Other"),
                        ],
                        max_length=30,
                    ),
                ),
                (
                    "reward_value",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("max_redemptions_per_customer", models.PositiveIntegerField(blank=True, null=True)),
                ("max_total_redemptions", models.PositiveIntegerField(blank=True, null=True)),
                ("valid_from", models.DateTimeField(default=django.utils.timezone.now)),
                ("valid_until", models.DateTimeField(blank=True, null=True)),
                ("available_days", models.JSONField(blank=True, default=list)),
                ("available_time_start", models.CharField(blank=True, max_length=5, null=True)),
                ("available_time_end", models.CharField(blank=True, max_length=5, null=True)),
                ("total_redemptions", models.PositiveIntegerField(default=0)),
                ("terms", models.TextField(blank=True, max_length=1000)),
                ("minimum_purchase", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="rewards", to="users.business"
                    ),
                ),
            ],
            options={
                "ordering": ["points_required"],
                "indexes": [
                    models.Index(fields=["business", "is_active"], name="reward_business_active_idx"),
                    models.Index(fields=["valid_from", "valid_until"], name="reward_validity_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Visit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("visit_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("points_earned", models.PositiveIntegerField()),
                (
                    "points_multiplier",
                    models.DecimalField(
                        decimal_places=2,
                        default=1,
                        max_digits=4,
                        validators=[
                            django.core.validators.MinValueValidator(decimal.Decimal("0.1")),
                            django.core.validators.MaxValueValidator(decimal.Decimal("10")),
                        ],
                    ),
                ),
                (
                    "visit_type",
                    models.CharField(
                        choices=[("regular", "Regular"), ("bonus", "Bonus"), ("promotional", "Promotional")],
                        default="regular",
                        max_length=20,
                    ),
                ),
                ("service_type", models.CharField(blank=True, max_length=100)),
                ("amount", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("notes", models.TextField(blank=True, max_length=500)),
                ("is_validated", models.BooleanField(default=True)),
                ("validated_at", models.DateTimeField(blank=True, null=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="visits", to="users.business"
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="visits", to="loyalty.customer"
                    ),
                ),
                (
                    "validated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="validated_visits",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-visit_date"],
                "indexes": [
                    models.Index(fields=["customer", "business"], name="visit_customer_business_idx"),
                    models.Index(fields=["business", "visit_date"], name="visit_business_date_idx"),
                    models.Index(fields=["customer", "visit_date"], name="visit_customer_date_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Redemption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("points_used", models.PositiveIntegerField()),
                ("redemption_date", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("used", "Used"),
                            ("expired", "Expired"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("redemption_code", models.CharField(editable=False, max_length=8, unique=True)),
                ("expires_at", models.DateTimeField()),
                ("used_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, max_length=500)),
                ("transaction_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("discount_applied", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="redemptions", to="users.business"
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="redemptions",
                        to="loyalty.customer",
                    ),
                ),
                (
                    "reward",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="redemptions", to="loyalty.reward"
                    ),
                ),
                (
                    "used_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="processed_redemptions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-redemption_date"],
                "indexes": [
                    models.Index(fields=["customer", "redemption_date"], name="redemption_customer_date_idx"),
                    models.Index(fields=["business", "redemption_date"], name="redemption_business_date_idx"),
                    models.Index(fields=["status", "expires_at"], name="redemption_status_expiry_idx"),
                ],
            },
        ),
    ]
