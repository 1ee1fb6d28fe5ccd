"""
Points balances derived from the Visit and Redemption ledgers.

Balances are never stored: available points for a (customer, business) pair is
the sum of points earned by visits minus the points held by active redemptions.
"""

from django.db.models import Count, Max, Q, Sum

from loyalty.models import Redemption, Visit


class LedgerAggregator:
    """
    On-demand aggregation over the ledgers.

    Queries go through `_base_manager` so they are never narrowed by the
    tenant context; callers always pass explicit ids.
    """

    @staticmethod
    def earned_points(customer_id, business_id) -> int:
        result = Visit._base_manager.filter(customer_id=customer_id, business_id=business_id).aggregate(
            total=Sum("points_earned")
        )["total"]
        return result or 0

    @staticmethod
    def held_points(customer_id, business_id) -> int:
        result = Redemption._base_manager.filter(
            customer_id=customer_id,
            business_id=business_id,
            status__in=Redemption.ACTIVE_STATUSES,
        ).aggregate(total=Sum("points_used"))["total"]
        return result or 0

    def points_balance(self, customer_id, business_id) -> int:
        return self.earned_points(customer_id, business_id) - self.held_points(customer_id, business_id)

    def balance_summary(self, customer_id) -> dict:
        """
        Per-business balances for a customer, highest total points first.
        """
        visit_rows = (
            Visit._base_manager.filter(customer_id=customer_id)
            .values(
                "business_id",
                "business__business_name",
                "business__business_type",
                "business__city",
                "business__state",
            )
            .annotate(total_points=Sum("points_earned"), total_visits=Count("id"), last_visit=Max("visit_date"))
            .order_by("-total_points")
        )

        redemption_rows = (
            Redemption._base_manager.filter(customer_id=customer_id)
            .values("business_id")
            .annotate(
                points_used=Sum("points_used", filter=Q(status__in=Redemption.ACTIVE_STATUSES)),
                total_redemptions=Count("id"),
            )
        )
        redemptions_by_business = {row["business_id"]: row for row in redemption_rows}

        businesses = []
        for row in visit_rows:
            redeemed = redemptions_by_business.get(row["business_id"], {})
            points_used = redeemed.get("points_used") or 0
            businesses.append(
                {
                    "business": {
                        "id": row["business_id"],
                        "business_name": row["business__business_name"],
                        "business_type": row["business__business_type"],
                        "city": row["business__city"],
                        "state": row["business__state"],
                    },
                    "total_points": row["total_points"],
                    "total_visits": row["total_visits"],
                    "last_visit": row["last_visit"],
                    "points_used": points_used,
                    "available_points": row["total_points"] - points_used,
                    "total_redemptions": redeemed.get("total_redemptions", 0),
                }
            )

        return {
            "businesses": businesses,
            "summary": {
                "total_businesses": len(businesses),
                "total_points": sum(b["total_points"] for b in businesses),
                "total_available_points": sum(b["available_points"] for b in businesses),
                "total_points_used": sum(b["points_used"] for b in businesses),
            },
        }
