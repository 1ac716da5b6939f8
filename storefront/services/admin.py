import logging
from datetime import date
from typing import Any, Dict

from fastapi import HTTPException

from ..models import Order, OrderStatus, Product
from .inventory import InventoryService
from .orders import OrderService


logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 5


class AdminService:
    """Dashboard figures and the admin-only mutations over orders and stock."""

    def __init__(self, orders: OrderService, inventory: InventoryService):
        self.orders = orders
        self.inventory = inventory

    def get_dashboard(self) -> Dict[str, Any]:
        orders = self.orders.items
        today = date.today()
        todays_orders = [order for order in orders if order.placed_at.date() == today]
        low_stock = self.inventory.get_low_stock_items()
        out_of_stock = self.inventory.get_out_of_stock_items()

        # Dashboard revenue counts every order, cancelled ones included
        return {
            "totalOrders": len(orders),
            "totalRevenue": sum(order.total for order in orders),
            "recentOrders": orders[:RECENT_ORDERS_LIMIT],
            "ordersToday": len(todays_orders),
            "revenueToday": sum(order.total for order in todays_orders),
            "pendingOrders": len(self.orders.get_orders_by_status(OrderStatus.PROCESSING)),
            "totalProducts": len(self.inventory.items),
            "lowStockItems": low_stock,
            "outOfStockItems": out_of_stock,
            "stockAlerts": len(low_stock) + len(out_of_stock),
        }

    def update_order_status(self, order_id: int, status: OrderStatus) -> Order:
        order = self.orders.get_order_by_id(order_id)
        if not order:
            raise HTTPException(status_code=404, detail=f"Order not found: {order_id}")

        if status == OrderStatus.CANCELLED and order.status != OrderStatus.CANCELLED:
            for item in order.items:
                self.inventory.restore_stock(item.product_id, item.quantity)
            logger.info(f"Order {order_id} cancelled, stock restored for {len(order.items)} lines")

        return self.orders.update_order_status(order_id, status)

    def update_inventory_stock(self, product_id: int, stock: Any) -> None:
        if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
            raise HTTPException(status_code=400, detail="Please enter a valid stock quantity")
        if not self.inventory.update_stock(product_id, stock):
            raise HTTPException(status_code=404, detail=f"Product {product_id} not found in inventory")

    def track_product(self, product: Product, stock: int) -> None:
        if stock < 0:
            raise HTTPException(status_code=400, detail="Please enter a valid stock quantity")
        self.inventory.add_or_update_inventory_item(product, stock)
