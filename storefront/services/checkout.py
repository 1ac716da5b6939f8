import logging
import threading
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from fastapi import HTTPException

from ..core.validation import validate_email, validate_payment_card, validate_required
from ..models import (
    CartItem,
    Order,
    OrderConfirmation,
    OrderItem,
    OrderStatus,
    PaymentDetails,
    PaymentSummary,
    Product,
    ShippingAddress,
    ShippingDetails,
    User,
)
from .cart import CartService
from .inventory import InventoryService
from .orders import OrderService
from .payment_methods import get_card_type


logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE = 0.08
DELIVERY_DAYS = 3


def estimated_delivery(today: Optional[date] = None) -> str:
    delivery = (today or date.today()) + timedelta(days=DELIVERY_DAYS)
    return f"{delivery:%A}, {delivery:%B} {delivery.day}, {delivery.year}"


def validate_checkout(shipping: ShippingDetails, payment: PaymentDetails) -> None:
    validate_required({
        "firstName": shipping.first_name,
        "lastName": shipping.last_name,
        "email": shipping.email,
        "phone": shipping.phone,
        "address": shipping.address,
        "city": shipping.city,
        "state": shipping.state,
        "zipCode": shipping.zip_code,
        "country": shipping.country,
        "cardName": payment.card_name,
    })
    validate_email(shipping.email)
    validate_payment_card(payment.card_number, payment.expiry_date, payment.cvv)


class CheckoutService:
    def __init__(
        self,
        cart: CartService,
        orders: OrderService,
        inventory: InventoryService,
        tax_rate: float = DEFAULT_TAX_RATE,
    ):
        self.cart = cart
        self.orders = orders
        self.inventory = inventory
        self.tax_rate = tax_rate
        self._lock = threading.Lock()

    def check_stock_availability(self, items: Optional[List[CartItem]] = None) -> List[str]:
        """Stock problems for the cart lines the ledger tracks.

        Products the ledger does not know about are not checked.
        """
        errors = []
        for item in self.cart.items if items is None else items:
            tracked = self.inventory.get_item(item.product.id)
            if tracked and tracked.current_stock < item.quantity:
                errors.append(
                    f"Only {tracked.current_stock} of {item.product.title} in stock, {item.quantity} requested"
                )
        return errors

    def reorder(self, order_id: int) -> Order:
        """Put every line of a past order back in the cart.

        Products are rebuilt from the order lines, so the cart shows the
        name and price the order was placed at.
        """
        order = self.orders.get_order_by_id(order_id)
        if not order:
            raise HTTPException(status_code=404, detail=f"Order not found: {order_id}")

        for item in order.items:
            product = Product(id=item.product_id, title=item.name, price=item.price, image=item.image)
            self.cart.add_to_cart(product, item.quantity)
        logger.info(f"Reordered {len(order.items)} items from order {order_id}")
        return order

    def _reserve_stock(self, items: List[CartItem]) -> None:
        reduced: List[CartItem] = []
        for item in items:
            if self.inventory.get_item(item.product.id) is None:
                continue
            if not self.inventory.reduce_stock(item.product.id, item.quantity):
                for done in reduced:
                    self.inventory.restore_stock(done.product.id, done.quantity)
                raise HTTPException(status_code=409, detail=f"Insufficient stock for {item.product.title}")
            reduced.append(item)

    def place_order(self, user: Optional[User], shipping: ShippingDetails, payment: PaymentDetails) -> OrderConfirmation:
        validate_checkout(shipping, payment)
        # Stock check, reservation and order write run as one step
        with self._lock:
            return self._place_order(user, shipping, payment)

    def _place_order(self, user: Optional[User], shipping: ShippingDetails, payment: PaymentDetails) -> OrderConfirmation:
        cart_items = list(self.cart.items)
        if not cart_items:
            raise HTTPException(status_code=400, detail="Cart is empty")

        stock_errors = self.check_stock_availability(cart_items)
        if stock_errors:
            logger.warning(f"Checkout blocked by stock: {stock_errors}")
            raise HTTPException(status_code=409, detail={"message": "Insufficient stock", "stockErrors": stock_errors})

        subtotal = self.cart.get_cart_total()
        tax = subtotal * self.tax_rate
        total = subtotal + tax
        email = (user.email if user else None) or shipping.email

        order = Order(
            customer_name=f"{shipping.first_name} {shipping.last_name}",
            email=email,
            total=total,
            date=datetime.now(timezone.utc).isoformat(),
            status=OrderStatus.PROCESSING,
            shipping_address=ShippingAddress(
                address=shipping.address,
                city=shipping.city,
                state=shipping.state,
                zip_code=shipping.zip_code,
                country=shipping.country,
            ),
            payment_method=PaymentSummary(
                card_last4=payment.card_number[-4:],
                card_type=get_card_type(payment.card_number),
            ),
            items=[
                OrderItem(
                    product_id=item.product.id,
                    name=item.product.title,
                    quantity=item.quantity,
                    price=item.product.price,
                    image=item.product.image,
                )
                for item in cart_items
            ],
        )

        self._reserve_stock(cart_items)
        order = self.orders.add_order(order)
        self.cart.clear_cart()
        logger.info(f"Order {order.id} placed by {email}: {len(cart_items)} lines, total {total:.2f}")

        return OrderConfirmation(
            order_id=order.id,
            subtotal=subtotal,
            tax=tax,
            total=total,
            customer_name=order.customer_name,
            email=email,
            item_count=len(cart_items),
            payment_method=order.payment_method,
            estimated_delivery=estimated_delivery(),
            items=order.items,
        )
