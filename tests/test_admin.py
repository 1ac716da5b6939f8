"""
Tests for the admin dashboard and admin-only mutations
"""
import pytest
from fastapi import HTTPException

from storefront.models import Order, OrderItem, OrderStatus, PaymentSummary, ShippingAddress


def place(services, total, status=OrderStatus.PROCESSING, items=None):
    return services.orders.add_order(Order(
        customer_name="Demo User",
        email="user@demo.com",
        total=total,
        status=status,
        shipping_address=ShippingAddress(address="1 Main St", city="Springfield", state="IL", zip_code="62701", country="US"),
        payment_method=PaymentSummary(card_last4="4242", card_type="Visa"),
        items=items or [OrderItem(product_id=1, name="Sample Product 1", quantity=4, price=total / 4)],
    ))


def test_dashboard_figures(services):
    place(services, 100)
    place(services, 40, status=OrderStatus.CANCELLED)
    place(services, 60, status=OrderStatus.SHIPPED)
    services.inventory.update_stock(2, 0)

    dashboard = services.admin.get_dashboard()

    assert dashboard["totalOrders"] == 3
    assert dashboard["totalRevenue"] == pytest.approx(200)
    assert dashboard["ordersToday"] == 3
    assert dashboard["revenueToday"] == pytest.approx(200)
    assert dashboard["pendingOrders"] == 1
    assert dashboard["totalProducts"] == 2
    assert [i.product_id for i in dashboard["outOfStockItems"]] == [2]
    assert dashboard["stockAlerts"] == 2


def test_dashboard_recent_orders_capped(services):
    for total in range(1, 8):
        place(services, float(total))
    recent = services.admin.get_dashboard()["recentOrders"]
    assert [order.total for order in recent] == [7.0, 6.0, 5.0, 4.0, 3.0]


def test_cancelling_restores_stock_once(services):
    order = place(services, 100)
    services.inventory.reduce_stock(1, 4)

    cancelled = services.admin.update_order_status(order.id, OrderStatus.CANCELLED)
    assert cancelled.status == OrderStatus.CANCELLED
    assert services.inventory.get_current_stock(1) == 50

    services.admin.update_order_status(order.id, OrderStatus.CANCELLED)
    assert services.inventory.get_current_stock(1) == 50


def test_other_status_changes_leave_stock_alone(services):
    order = place(services, 100)
    services.admin.update_order_status(order.id, OrderStatus.SHIPPED)
    assert services.inventory.get_current_stock(1) == 50
    assert services.orders.get_order_by_id(order.id).status == OrderStatus.SHIPPED


def test_update_status_unknown_order(services):
    with pytest.raises(HTTPException) as exc_info:
        services.admin.update_order_status(404, OrderStatus.SHIPPED)
    assert exc_info.value.status_code == 404


def test_update_inventory_stock(services):
    services.admin.update_inventory_stock(1, 5)
    assert services.inventory.get_current_stock(1) == 5


@pytest.mark.parametrize("stock", [-1, "ten", 2.5, True])
def test_update_inventory_stock_rejects_invalid_quantity(services, stock):
    with pytest.raises(HTTPException) as exc_info:
        services.admin.update_inventory_stock(1, stock)
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Please enter a valid stock quantity"


def test_update_inventory_stock_untracked_product(services):
    with pytest.raises(HTTPException) as exc_info:
        services.admin.update_inventory_stock(999, 5)
    assert exc_info.value.status_code == 404


def test_track_product(services, products):
    monitor = products[4]
    services.admin.track_product(monitor, 3)
    tracked = services.inventory.get_item(monitor.id)
    assert tracked.product_name == "Curved Gaming Monitor"
    assert tracked.current_stock == 3
    assert services.admin.get_dashboard()["totalProducts"] == 3
