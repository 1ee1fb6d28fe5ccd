"""
API Views for the Loyalty application.
"""

import logging
import uuid

from django.db.models import Max
from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from loyalty import stats
from loyalty.eligibility import RewardEligibilityEvaluator
from loyalty.ledger import LedgerAggregator
from loyalty.models import Customer, Redemption, Reward, Visit
from loyalty.serializers import (
    AnalyticsQuerySerializer,
    BusinessCustomerSerializer,
    CancelRedemptionSerializer,
    CustomerProfileSerializer,
    CustomerRewardSerializer,
    MarkUsedSerializer,
    RedeemSerializer,
    RedemptionSerializer,
    RewardSerializer,
    VisitCreateSerializer,
    VisitSerializer,
    VisitUpdateSerializer,
)
from loyalty.services import RedemptionService, VisitService, find_customer
from users.permissions import IsBusiness, IsBusinessOrCustomer, IsCustomer, is_customer_principal
from users.serializers import BusinessSerializer, LoyaltySettingsSerializer

logger = logging.getLogger(__name__)


class RoleScopedMixin:
    """
    Business users write; both business users and customers read.
    Read querysets are narrowed to the caller's business or to the caller's own records.
    """

    read_actions = ("list", "retrieve")

    def get_permissions(self):
        if self.action in self.read_actions:
            return [IsBusinessOrCustomer()]
        return [IsBusiness()]

    @property
    def is_customer(self):
        return is_customer_principal(self.request.user)


class VisitViewSet(RoleScopedMixin, viewsets.ModelViewSet):
    """
    API endpoint for Visits (the points-earning ledger).

    POST   /api/visits/            record a visit (business)
    GET    /api/visits/            business: its visits, customer: own visits
    PATCH  /api/visits/{id}/       edit notes, service or amount (business)
    DELETE /api/visits/{id}/       (business)
    """

    lookup_value_regex = r"\d+"

    def get_queryset(self):
        queryset = Visit.objects.select_related("customer", "business")
        if self.is_customer:
            return queryset.filter(customer=self.request.user)

        # Visit.objects is already tenant-scoped; the explicit filter keeps force-authenticated calls scoped too.
        return queryset.filter(business_id=self.request.user.business_id)

    def get_serializer_class(self):
        if self.action == "create":
            return VisitCreateSerializer
        if self.action in ("update", "partial_update"):
            return VisitUpdateSerializer
        return VisitSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        details = dict(serializer.validated_data)

        customer = find_customer(
            customer_id=details.pop("customer_id", None),
            phone_number=details.pop("customer_phone", None),
        )
        visit = VisitService().record_visit(request.user.business, customer, staff_user=request.user, **details)

        return Response(
            {"visit": VisitSerializer(visit).data, "points_earned": visit.points_earned},
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, *args, **kwargs):
        super().update(request, *args, **kwargs)
        return Response(VisitSerializer(self.get_object()).data)


class RewardViewSet(RoleScopedMixin, viewsets.ModelViewSet):
    """
    API endpoint for managing Rewards (the catalog) and redeeming them.
    """

    lookup_value_regex = r"\d+"
    redemption_service_class = RedemptionService

    def get_permissions(self):
        if self.action == "redeem":
            return [IsCustomer()]
        if self.action in ("redemptions", "cancel"):
            return [IsBusinessOrCustomer()]
        return super().get_permissions()

    def get_queryset(self):
        if self.is_customer:
            queryset = Reward.objects.filter(is_active=True, business__is_active=True).select_related("business")
            business_id = self.request.query_params.get("business_id")
            if business_id:
                try:
                    queryset = queryset.filter(business_id=uuid.UUID(business_id))
                except ValueError:
                    raise ValidationError({"business_id": "Must be a valid UUID."}) from None
            return queryset

        return Reward.objects.filter(business_id=self.request.user.business_id)

    def get_serializer_class(self):
        if self.is_customer:
            return CustomerRewardSerializer
        return RewardSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if self.is_customer:
            context.update(
                customer=self.request.user,
                ledger=LedgerAggregator(),
                evaluator=RewardEligibilityEvaluator(),
            )
        return context

    def perform_create(self, serializer):
        serializer.save(business=self.request.user.business)

    def perform_destroy(self, instance):
        # Redemptions keep a reference to their reward, so used rewards are retired instead
        if instance.redemptions.exists():
            instance.is_active = False
            instance.save(update_fields=["is_active", "updated_at"])
            logger.info("Reward %s has redemptions; deactivated instead of deleted", instance.pk)
            return
        instance.delete()

    @action(detail=False, methods=["post"])
    def redeem(self, request):
        """
        POST /api/rewards/redeem/
        """
        serializer = RedeemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reward = generics.get_object_or_404(
            Reward.objects.filter(business__is_active=True), pk=serializer.validated_data["reward_id"]
        )
        redemption = self.redemption_service_class().redeem(
            request.user,
            reward,
            transaction_amount=serializer.validated_data.get("transaction_amount"),
            notes=serializer.validated_data.get("notes", ""),
        )
        return Response(RedemptionSerializer(redemption).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def redemptions(self, request):
        """
        GET /api/rewards/redemptions/?status=confirmed
        """
        queryset = Redemption.objects.select_related("reward", "customer", "business")
        if self.is_customer:
            queryset = queryset.filter(customer=request.user)
        else:
            queryset = queryset.filter(business_id=request.user.business_id)

        status_filter = request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(RedemptionSerializer(page, many=True).data)

    @action(detail=False, methods=["get"], url_path=r"verify/(?P<code>[A-Za-z0-9]+)")
    def verify(self, request, code=None):
        """
        GET /api/rewards/verify/{code}/
        """
        verification = self.redemption_service_class().verify(code, request.user.business)
        data = RedemptionSerializer(verification.redemption).data
        data["is_valid"] = verification.is_valid
        return Response(data)

    @action(detail=False, methods=["post"], url_path=r"redemptions/(?P<code>[A-Za-z0-9]+)/use")
    def use(self, request, code=None):
        """
        POST /api/rewards/redemptions/{code}/use/
        """
        serializer = MarkUsedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        redemption = self.redemption_service_class().mark_used(code, request.user, **serializer.validated_data)
        return Response(RedemptionSerializer(redemption).data)

    @action(detail=False, methods=["post"], url_path=r"redemptions/(?P<code>[A-Za-z0-9]+)/cancel")
    def cancel(self, request, code=None):
        """
        POST /api/rewards/redemptions/{code}/cancel/
        """
        serializer = CancelRedemptionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        redemption = self.redemption_service_class().cancel(
            code, request.user, reason=serializer.validated_data.get("reason", "")
        )
        return Response(RedemptionSerializer(redemption).data)


# --- Customer self-service ---


class CustomerProfileView(generics.RetrieveUpdateAPIView):
    """
    GET/PUT /api/customer/profile/
    """

    permission_classes = [IsCustomer]
    serializer_class = CustomerProfileSerializer

    def get_object(self):
        return self.request.user

    def update(self, request, *args, **kwargs):
        kwargs["partial"] = True
        return super().update(request, *args, **kwargs)


class CustomerVisitsView(generics.ListAPIView):
    """
    GET /api/customer/visits/
    """

    permission_classes = [IsCustomer]
    serializer_class = VisitSerializer

    def get_queryset(self):
        return Visit.objects.filter(customer=self.request.user).select_related("customer", "business")


class CustomerRedemptionsView(generics.ListAPIView):
    """
    GET /api/customer/redemptions/
    """

    permission_classes = [IsCustomer]
    serializer_class = RedemptionSerializer

    def get_queryset(self):
        return Redemption.objects.filter(customer=self.request.user).select_related("reward", "customer", "business")


class CustomerPointsView(APIView):
    """
    GET /api/customer/points/
    Points balance per business, derived from the ledgers.
    """

    permission_classes = [IsCustomer]

    def get(self, request):
        return Response(LedgerAggregator().balance_summary(request.user.pk))


# --- Business back office ---


class BusinessProfileView(generics.RetrieveUpdateAPIView):
    """
    GET/PUT /api/business/profile/
    """

    permission_classes = [IsBusiness]
    serializer_class = BusinessSerializer

    def get_object(self):
        return self.request.user.business

    def update(self, request, *args, **kwargs):
        kwargs["partial"] = True
        return super().update(request, *args, **kwargs)


class LoyaltySettingsView(generics.UpdateAPIView):
    """
    PUT /api/business/loyalty-settings/
    Only affects visits recorded from now on; existing points are never recomputed.
    """

    permission_classes = [IsBusiness]
    serializer_class = LoyaltySettingsSerializer

    def get_object(self):
        return self.request.user.business

    def update(self, request, *args, **kwargs):
        kwargs["partial"] = True
        return super().update(request, *args, **kwargs)


class BusinessDashboardView(APIView):
    """
    GET /api/business/dashboard/
    """

    permission_classes = [IsBusiness]

    def get(self, request):
        business = request.user.business
        return Response({"business": BusinessSerializer(business).data, **stats.business_dashboard(business)})


class BusinessAnalyticsView(APIView):
    """
    GET /api/business/analytics/?start_date=...&end_date=...
    """

    permission_classes = [IsBusiness]

    def get(self, request):
        query = AnalyticsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return Response(
            stats.business_analytics(
                request.user.business,
                start=query.validated_data.get("start_date"),
                end=query.validated_data.get("end_date"),
            )
        )


class BusinessCustomersView(generics.ListAPIView):
    """
    GET /api/business/customers/
    Customers who have visited the business, most recent visitor first.
    """

    permission_classes = [IsBusiness]
    serializer_class = BusinessCustomerSerializer

    def get_queryset(self):
        business_id = self.request.user.business_id
        return (
            Customer.objects.filter(visits__business_id=business_id)
            .annotate(last_visit_here=Max("visits__visit_date"))
            .order_by("-last_visit_here")
        )

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context.update(business=self.request.user.business, ledger=LedgerAggregator())
        return context
