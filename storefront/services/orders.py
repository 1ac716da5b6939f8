import calendar
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from ..core.state import StateHolder
from ..core.storage import ORDERS_KEY, KeyValueStorage, read_json, write_json
from ..models import Order, OrderStatus


logger = logging.getLogger(__name__)


def _revenue(orders: Iterable[Order]) -> float:
    return sum(order.total for order in orders if order.status != OrderStatus.CANCELLED)


class OrderService:
    """Order history kept newest-first under ``orders_data``."""

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self.orders: StateHolder[List[Order]] = StateHolder([])
        self._lock = threading.RLock()
        self._load_orders()

    def _load_orders(self) -> None:
        saved = read_json(self.storage, ORDERS_KEY)
        if saved is None:
            return
        if not isinstance(saved, list):
            logger.error(f"Failed to load orders: expected a list, got {type(saved).__name__}")
            return

        orders: List[Order] = []
        for raw in saved:
            try:
                orders.append(Order.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable order: {e}")
        self.orders.next(orders)

    def _save_orders(self) -> None:
        write_json(self.storage, ORDERS_KEY, [order.to_storage() for order in self.orders.value])

    def _commit(self, orders: List[Order]) -> None:
        self.orders.next(orders)
        self._save_orders()

    def _new_order_id(self) -> int:
        taken = {order.id for order in self.orders.value}
        candidate = int(time.time() * 1000)
        while candidate in taken:
            candidate += 1
        return candidate

    @property
    def items(self) -> List[Order]:
        return self.orders.value

    def add_order(self, order: Order) -> Order:
        with self._lock:
            updates = {}
            if not order.date:
                updates["date"] = datetime.now(timezone.utc).isoformat()
            if not order.id:
                updates["id"] = self._new_order_id()
            if updates:
                order = order.model_copy(update=updates)
            self._commit([order, *self.orders.value])
        logger.info(f"Order {order.id} stored for {order.email} (total {order.total:.2f})")
        return order

    def update_order_status(self, order_id: int, status: OrderStatus) -> Optional[Order]:
        with self._lock:
            orders = list(self.orders.value)
            for index, order in enumerate(orders):
                if order.id == order_id:
                    orders[index] = order.model_copy(update={"status": status})
                    self._commit(orders)
                    logger.info(f"Order {order_id} status changed {order.status.value} -> {status.value}")
                    return orders[index]
        return None

    def get_order_by_id(self, order_id: int) -> Optional[Order]:
        return next((order for order in self.orders.value if order.id == order_id), None)

    def get_orders_by_status(self, status: OrderStatus) -> List[Order]:
        return [order for order in self.orders.value if order.status == status]

    def get_orders_by_email(self, email: str) -> List[Order]:
        email = email.lower()
        return [order for order in self.orders.value if order.email.lower() == email]

    def get_orders_by_date_range(self, start_date: datetime, end_date: datetime) -> List[Order]:
        return [order for order in self.orders.value if start_date <= order.placed_at <= end_date]

    def get_total_revenue(self) -> float:
        return _revenue(self.orders.value)

    def get_revenue_by_date_range(self, start_date: datetime, end_date: datetime) -> float:
        return _revenue(self.get_orders_by_date_range(start_date, end_date))

    def get_todays_orders(self) -> List[Order]:
        today = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
        return self.get_orders_by_date_range(today, today + timedelta(days=1))

    def get_todays_revenue(self) -> float:
        return _revenue(self.get_todays_orders())

    def get_monthly_stats(self, year: int, month: int) -> Dict[str, float]:
        """Order count, revenue and average order value for one calendar month.

        ``month`` runs from 1 to 12. Cancelled orders are left out of all
        three figures.
        """
        last_day = calendar.monthrange(year, month)[1]
        start_date = datetime(year, month, 1)
        end_date = datetime(year, month, last_day, 23, 59, 59)

        monthly_orders = [
            order for order in self.get_orders_by_date_range(start_date, end_date)
            if order.status != OrderStatus.CANCELLED
        ]
        total_revenue = sum(order.total for order in monthly_orders)
        total_orders = len(monthly_orders)
        return {
            "totalOrders": total_orders,
            "totalRevenue": total_revenue,
            "averageOrderValue": total_revenue / total_orders if total_orders else 0,
        }

    def delete_order(self, order_id: int) -> bool:
        with self._lock:
            remaining = [order for order in self.orders.value if order.id != order_id]
            deleted = len(remaining) != len(self.orders.value)
            self._commit(remaining)
        return deleted

    def get_popular_products(self) -> List[Dict]:
        stats: Dict[int, Dict] = {}
        for order in self.orders.value:
            if order.status == OrderStatus.CANCELLED:
                continue
            for item in order.items:
                entry = stats.setdefault(item.product_id, {"name": item.name, "totalQuantity": 0, "totalRevenue": 0.0})
                entry["totalQuantity"] += item.quantity
                entry["totalRevenue"] += item.quantity * item.price

        popular = [{"productId": product_id, **entry} for product_id, entry in stats.items()]
        popular.sort(key=lambda entry: entry["totalQuantity"], reverse=True)
        return popular

    def clear_all_orders(self) -> None:
        logger.warning("Clearing all orders")
        self._commit([])
