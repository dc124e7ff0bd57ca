"""
Daily order statistics for dashboards.

Counts cover every order created on the given calendar day; revenue and
the average only look at delivered orders.
"""

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from schemas import OrderStats, OrderStatus
from store import OrderStore

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class StatsAggregator:
    def __init__(self, store: OrderStore, timezone_name: str = "UTC"):
        self.store = store
        self.zone = ZoneInfo(timezone_name)

    def today(self) -> date:
        return datetime.now(self.zone).date()

    def day_bounds(self, for_date: date) -> Tuple[datetime, datetime]:
        """[start, end) of the local calendar day as naive UTC datetimes."""
        start = datetime.combine(for_date, time.min, tzinfo=self.zone)
        end = datetime.combine(for_date + timedelta(days=1), time.min, tzinfo=self.zone)
        return (
            start.astimezone(timezone.utc).replace(tzinfo=None),
            end.astimezone(timezone.utc).replace(tzinfo=None),
        )

    def summary(self, for_date: Optional[date] = None) -> OrderStats:
        if for_date is None:
            for_date = self.today()
        start, end = self.day_bounds(for_date)

        # One read; keyed by id so no order is counted twice
        orders = {order.id: order for order in self.store.orders_created_between(start, end)}

        counts = Counter(order.status for order in orders.values())
        delivered = [order.total_amount for order in orders.values() if order.status == OrderStatus.DELIVERED]
        exact_revenue = sum(delivered, Decimal("0"))
        revenue = exact_revenue.quantize(CENTS, rounding=ROUND_HALF_UP)
        average = None
        if delivered:
            average = (exact_revenue / len(delivered)).quantize(CENTS, rounding=ROUND_HALF_UP)

        logger.debug(f"Stats for {for_date}: {len(orders)} orders, revenue {revenue}")
        return OrderStats(
            day=for_date,
            total_orders=len(orders),
            pending_orders=counts[OrderStatus.PENDING],
            preparing_orders=counts[OrderStatus.PREPARING],
            ready_orders=counts[OrderStatus.READY],
            delivered_orders=counts[OrderStatus.DELIVERED],
            total_revenue=revenue,
            average_order_value=average,
        )
