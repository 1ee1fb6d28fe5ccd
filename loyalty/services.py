"""
Service layer for Loyalty business logic.
Handles point calculations, visit recording and the redemption lifecycle.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_FLOOR, Decimal

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound

from core.exceptions import ForbiddenError, InternalError
from core.phone import mask_phone_number, normalize_phone_number
from loyalty.eligibility import RewardEligibilityEvaluator
from loyalty.exceptions import InsufficientPoints, MinimumPurchaseNotMet, NotRedeemable, RewardNotAvailable
from loyalty.ledger import LedgerAggregator
from loyalty.models import Customer, Redemption, Reward, Visit
from loyalty.stats import dashboard_cache_key
from users.permissions import is_customer_principal

logger = logging.getLogger(__name__)

REDEMPTION_CODE_ALPHABET = string.ascii_uppercase + string.digits
REDEMPTION_CODE_LENGTH = 8


def generate_redemption_code() -> str:
    return "".join(secrets.choice(REDEMPTION_CODE_ALPHABET) for _ in range(REDEMPTION_CODE_LENGTH))


def find_customer(customer_id=None, phone_number=None) -> Customer:
    """
    Looks a customer up by id or by (any format of) phone number.

    Raises:
        NotFound: the customer has not registered yet.
    """
    queryset = Customer.objects.filter(is_active=True)
    if customer_id is not None:
        customer = queryset.filter(pk=customer_id).first()
    elif phone_number:
        customer = queryset.filter(phone_number=normalize_phone_number(phone_number)).first()
    else:
        customer = None

    if customer is None:
        raise NotFound("Customer not found. Customer must register first.")
    return customer


class VisitService:
    """
    Encapsulates the rules for earning points.
    """

    @staticmethod
    def calculate_visit_points(business, multiplier=1) -> int:
        """
        points_per_visit x multiplier, rounded down to a whole point.
        """
        points = Decimal(business.points_per_visit) * Decimal(str(multiplier))
        return int(points.to_integral_value(rounding=ROUND_FLOOR))

    def record_visit(self, business, customer, staff_user=None, **details) -> Visit:
        multiplier = details.pop("points_multiplier", None) or Decimal("1")
        points = self.calculate_visit_points(business, multiplier)

        visit = Visit.objects.create(
            business=business,
            customer=customer,
            points_earned=points,
            points_multiplier=multiplier,
            validated_by=staff_user,
            validated_at=timezone.now() if staff_user else None,
            **details,
        )

        logger.info(
            "Recorded visit %s: %s earned %s points at business %s",
            visit.pk,
            mask_phone_number(customer.phone_number),
            points,
            business.pk,
        )
        return visit


@dataclass(frozen=True)
class RedemptionVerification:
    redemption: Redemption
    is_valid: bool


class RedemptionService:
    """
    Creates redemptions and moves them through their lifecycle:

        pending -> confirmed -> used
        pending | confirmed -> expired | cancelled

    used, expired and cancelled are terminal.
    """

    def __init__(self, ledger=None, evaluator=None):
        self.ledger = ledger or LedgerAggregator()
        self.evaluator = evaluator or RewardEligibilityEvaluator()

    @transaction.atomic
    def redeem(self, customer, reward, transaction_amount=None, notes="") -> Redemption:
        """
        Spends the customer's points at the reward's business.

        The reward and customer rows stay locked until commit, so two concurrent
        redemptions against the same balance are serialized and the second one
        sees the points already held by the first.

        Raises:
            RewardNotAvailable: an eligibility rule failed.
            InsufficientPoints: the balance does not cover the reward.
            InternalError: no unique redemption code could be generated.
        """
        now = timezone.now()

        reward = Reward._base_manager.select_for_update().get(pk=reward.pk)
        customer = Customer.objects.select_for_update().get(pk=customer.pk)

        result = self.evaluator.evaluate(reward, customer.pk, now)
        if not result.eligible:
            raise RewardNotAvailable(result.reason)

        available = self.ledger.points_balance(customer.pk, reward.business_id)
        if available < reward.points_required:
            raise InsufficientPoints(required=reward.points_required, available=available)

        redemption = self._create_with_unique_code(
            customer=customer,
            reward=reward,
            business_id=reward.business_id,
            points_used=reward.points_required,
            redemption_date=now,
            status=Redemption.STATUS_CONFIRMED,
            expires_at=now + timedelta(days=settings.LOYALTY["REDEMPTION_EXPIRY_DAYS"]),
            transaction_amount=transaction_amount,
            notes=notes,
        )

        reward.total_redemptions = Redemption._base_manager.filter(reward_id=reward.pk).count()
        reward.save(update_fields=["total_redemptions", "updated_at"])

        logger.info(
            "Redemption %s created: %s spent %s points on reward %s",
            redemption.redemption_code,
            mask_phone_number(customer.phone_number),
            redemption.points_used,
            reward.pk,
        )
        return redemption

    @staticmethod
    def _create_with_unique_code(**fields) -> Redemption:
        max_attempts = settings.LOYALTY["REDEMPTION_CODE_MAX_ATTEMPTS"]

        for attempt in range(1, max_attempts + 1):
            code = generate_redemption_code()
            try:
                # Savepoint: a collision must not break the outer transaction
                with transaction.atomic():
                    return Redemption.objects.create(redemption_code=code, **fields)
            except IntegrityError:
                logger.warning("Redemption code collision on attempt %s/%s", attempt, max_attempts)

        logger.error("Could not generate a unique redemption code after %s attempts", max_attempts)
        raise InternalError("Could not generate a unique redemption code.")

    @staticmethod
    def get_by_code(code, for_update=False) -> Redemption:
        queryset = Redemption._base_manager.select_related("reward", "customer", "business")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        try:
            return queryset.get(redemption_code=str(code).strip().upper())
        except Redemption.DoesNotExist:
            raise NotFound("Redemption not found.") from None

    @staticmethod
    def _ensure_same_business(redemption, business_id):
        if redemption.business_id != business_id:
            raise ForbiddenError("This redemption belongs to another business.")

    def verify(self, code, business, now=None) -> RedemptionVerification:
        redemption = self.get_by_code(code)
        self._ensure_same_business(redemption, business.pk)
        return RedemptionVerification(redemption=redemption, is_valid=redemption.is_valid(now))

    @staticmethod
    def _not_redeemable_reason(redemption, now):
        if redemption.status == Redemption.STATUS_USED or redemption.used_at:
            return "Redemption has already been used."
        if redemption.status == Redemption.STATUS_CANCELLED:
            return "Redemption has been cancelled."
        if redemption.status == Redemption.STATUS_EXPIRED or redemption.expires_at <= now:
            return "Redemption has expired."
        return "Redemption is not confirmed."

    @transaction.atomic
    def mark_used(self, code, staff_user, transaction_amount=None, discount_applied=None, notes=None) -> Redemption:
        """
        Honors a redemption at the counter.

        Raises:
            ForbiddenError: the redemption belongs to another business.
            NotRedeemable: the redemption is not confirmed, already used or expired.
            MinimumPurchaseNotMet: the purchase is below the reward's minimum.
        """
        now = timezone.now()
        redemption = self.get_by_code(code, for_update=True)
        self._ensure_same_business(redemption, staff_user.business_id)

        if not redemption.is_valid(now):
            raise NotRedeemable(self._not_redeemable_reason(redemption, now))

        minimum = redemption.reward.minimum_purchase
        if minimum and transaction_amount is not None and Decimal(str(transaction_amount)) < minimum:
            raise MinimumPurchaseNotMet(
                f"Minimum purchase of {minimum} required.",
                data={"minimum_purchase": str(minimum), "transaction_amount": str(transaction_amount)},
            )

        redemption.status = Redemption.STATUS_USED
        redemption.used_at = now
        redemption.used_by = staff_user
        if transaction_amount is not None:
            redemption.transaction_amount = transaction_amount
        if discount_applied is not None:
            redemption.discount_applied = discount_applied
        if notes:
            redemption.notes = notes
        redemption.save()

        logger.info("Redemption %s used by %s", redemption.redemption_code, staff_user.email)
        return redemption

    @transaction.atomic
    def cancel(self, code, actor, reason="") -> Redemption:
        """
        Cancels an open redemption and releases its points.
        Allowed for the redemption's customer and for users of its business.
        """
        redemption = self.get_by_code(code, for_update=True)

        if is_customer_principal(actor):
            if redemption.customer_id != actor.pk:
                raise ForbiddenError("This redemption belongs to another customer.")
        else:
            self._ensure_same_business(redemption, getattr(actor, "business_id", None))

        if not redemption.can_transition_to(Redemption.STATUS_CANCELLED):
            raise NotRedeemable(f"Cannot cancel a redemption with status '{redemption.status}'.")

        redemption.status = Redemption.STATUS_CANCELLED
        if reason:
            redemption.notes = reason
        redemption.save()

        logger.info("Redemption %s cancelled (%s points released)", redemption.redemption_code, redemption.points_used)
        return redemption

    @staticmethod
    def expire_redemptions(now=None) -> int:
        """
        Marks every open redemption past its expiry as expired.
        A single conditional UPDATE, so running it twice changes nothing the second time.
        """
        now = now or timezone.now()
        stale = Redemption._base_manager.filter(status__in=Redemption.OPEN_STATUSES, expires_at__lt=now)
        business_ids = set(stale.values_list("business_id", flat=True))
        expired = stale.update(status=Redemption.STATUS_EXPIRED, updated_at=now)

        # A bulk update sends no post_save, so the affected dashboards are cleared here
        if business_ids:
            try:
                cache.delete_many([dashboard_cache_key(business_id) for business_id in business_ids])
            except Exception:
                logger.exception("Failed to clear dashboard caches after expiring redemptions")

        logger.info("Expired %s redemptions", expired)
        return expired
