"""
Cached counters, the business dashboard and analytics.

Counters on Business and Customer are advisory: they are recomputed here from
the Visit and Redemption rows and never used to decide anything.
"""

import logging
from datetime import timedelta

from django.core.cache import cache
from django.db.models import Avg, Count, Max, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from loyalty.models import Customer, Redemption, Reward, Visit
from users.models import Business

logger = logging.getLogger(__name__)

DASHBOARD_CACHE_TIMEOUT = 60 * 5


def dashboard_cache_key(business_id) -> str:
    return f"business_dashboard:{business_id}"


def refresh_business_statistics(business_id) -> None:
    visits = Visit._base_manager.filter(business_id=business_id).aggregate(
        total_visits=Count("id"),
        total_points=Sum("points_earned"),
        total_customers=Count("customer_id", distinct=True),
    )
    total_redemptions = Redemption._base_manager.filter(business_id=business_id).count()

    Business.objects.filter(pk=business_id).update(
        total_visits=visits["total_visits"],
        total_points_issued=visits["total_points"] or 0,
        total_customers=visits["total_customers"],
        total_redemptions=total_redemptions,
        updated_at=timezone.now(),
    )


def refresh_customer_statistics(customer_id) -> None:
    visits = Visit._base_manager.filter(customer_id=customer_id).aggregate(
        total_visits=Count("id"),
        total_points=Sum("points_earned"),
        last_visit=Max("visit_date"),
    )
    last_visit = (
        Visit._base_manager.filter(customer_id=customer_id).order_by("-visit_date").values("business_id").first()
    )

    Customer.objects.filter(pk=customer_id).update(
        total_visits=visits["total_visits"],
        total_points_earned=visits["total_points"] or 0,
        total_redemptions=Redemption._base_manager.filter(customer_id=customer_id).count(),
        last_visit_date=visits["last_visit"],
        last_business_visited_id=last_visit["business_id"] if last_visit else None,
        updated_at=timezone.now(),
    )


def refresh_all_statistics() -> dict:
    businesses = 0
    for business_id in Business.objects.values_list("pk", flat=True).iterator():
        refresh_business_statistics(business_id)
        cache.delete(dashboard_cache_key(business_id))
        businesses += 1

    customers = 0
    for customer_id in Customer.objects.values_list("pk", flat=True).iterator():
        refresh_customer_statistics(customer_id)
        customers += 1

    logger.info("Refreshed statistics for %s businesses and %s customers", businesses, customers)
    return {"businesses": businesses, "customers": customers}


def business_dashboard(business) -> dict:
    """
    Counters plus today's activity for the business dashboard, cached per business.
    """
    key = dashboard_cache_key(business.pk)
    data = cache.get(key)
    if data is not None:
        return data

    today_start = timezone.now().replace(hour=0, minute=0, second=0, microsecond=0)
    visits = Visit._base_manager.filter(business_id=business.pk)

    recent_visits = [
        {
            "id": visit.pk,
            "customer_name": visit.customer.full_name,
            "customer_phone": visit.customer.phone_number,
            "points_earned": visit.points_earned,
            "visit_date": visit.visit_date,
            "service_type": visit.service_type,
        }
        for visit in visits.select_related("customer").order_by("-visit_date")[:5]
    ]

    data = {
        "stats": {
            "total_customers": business.total_customers,
            "total_visits": business.total_visits,
            "total_points_issued": business.total_points_issued,
            "total_redemptions": business.total_redemptions,
            "today_visits": visits.filter(visit_date__gte=today_start).count(),
            "active_rewards": Reward._base_manager.filter(business_id=business.pk, is_active=True).count(),
            "open_redemptions": Redemption._base_manager.filter(
                business_id=business.pk, status__in=Redemption.OPEN_STATUSES
            ).count(),
        },
        "recent_visits": recent_visits,
    }
    cache.set(key, data, DASHBOARD_CACHE_TIMEOUT)
    return data


def business_analytics(business, start=None, end=None) -> dict:
    """
    Daily visit and redemption aggregates between `start` and `end` (default: last 30 days).
    """
    end = end or timezone.now()
    start = start or end - timedelta(days=30)

    visit_days = (
        Visit._base_manager.filter(business_id=business.pk, visit_date__range=(start, end))
        .annotate(day=TruncDate("visit_date"))
        .values("day")
        .annotate(
            visits=Count("id"),
            points=Sum("points_earned"),
            unique_customers=Count("customer_id", distinct=True),
            average_amount=Avg("amount"),
        )
        .order_by("day")
    )

    redemption_days = (
        Redemption._base_manager.filter(business_id=business.pk, redemption_date__range=(start, end))
        .annotate(day=TruncDate("redemption_date"))
        .values("day")
        .annotate(
            redemptions=Count("id"),
            points_used=Sum("points_used"),
            discount_given=Sum("discount_applied"),
        )
        .order_by("day")
    )

    visits = [
        {
            "date": row["day"],
            "visits": row["visits"],
            "points": row["points"] or 0,
            "unique_customers": row["unique_customers"],
            "average_amount": round(row["average_amount"], 2) if row["average_amount"] is not None else None,
        }
        for row in visit_days
    ]
    total_visits = sum(day["visits"] for day in visits)

    return {
        "period": {"start": start, "end": end},
        "summary": {
            "total_days": len(visits),
            "total_visits": total_visits,
            "total_points": sum(day["points"] for day in visits),
            "average_visits_per_day": round(total_visits / len(visits)) if visits else 0,
        },
        "visits": visits,
        "redemptions": [
            {
                "date": row["day"],
                "redemptions": row["redemptions"],
                "points_used": row["points_used"] or 0,
                "discount_given": row["discount_given"] or 0,
            }
            for row in redemption_days
        ],
    }
