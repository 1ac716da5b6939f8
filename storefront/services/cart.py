import logging
import threading
from typing import Dict, List, Optional

from fastapi import HTTPException
from pydantic import ValidationError

from ..core.state import StateHolder
from ..core.storage import KeyValueStorage, cart_key, read_json, write_json
from ..models import CartItem, Product, User
from .auth import AuthService


logger = logging.getLogger(__name__)


class CartService:
    """Per-user cart persisted under ``cart_user_<id>``.

    The cart follows the auth session: signing in loads that user's saved
    cart, signing out empties the in-memory cart but leaves the saved one in
    place for the next login.
    """

    def __init__(self, storage: KeyValueStorage, auth: AuthService):
        self.storage = storage
        self.cart_items: StateHolder[List[CartItem]] = StateHolder([])
        self.current_user_id: Optional[str] = None
        self._lock = threading.RLock()
        auth.current_user.subscribe(self._on_user_changed)

    def _on_user_changed(self, user: Optional[User]) -> None:
        if user:
            self.current_user_id = str(user.id)
            self._load_user_cart()
            logger.info(f"Switched to cart for user {user.email}")
        else:
            self.current_user_id = None
            self.cart_items.next([])
            logger.info("User logged out, cart cleared")

    def _load_user_cart(self) -> None:
        if not self.current_user_id:
            return
        saved = read_json(self.storage, cart_key(self.current_user_id), [])
        items: List[CartItem] = []
        if isinstance(saved, list):
            for raw in saved:
                try:
                    items.append(CartItem.model_validate(raw))
                except ValidationError as e:
                    logger.warning(f"Dropping unreadable cart line for user {self.current_user_id}: {e}")
        self.cart_items.next(items)
        logger.debug(f"Loaded cart for user {self.current_user_id}: {len(items)} items")

    def _save_user_cart(self) -> None:
        if not self.current_user_id:
            return
        write_json(self.storage, cart_key(self.current_user_id), [item.to_storage() for item in self.cart_items.value])

    def _update_cart(self, items: List[CartItem]) -> None:
        self.cart_items.next(items)
        self._save_user_cart()

    @property
    def items(self) -> List[CartItem]:
        return self.cart_items.value

    def add_to_cart(self, product: Product, quantity: int = 1) -> None:
        if not self.current_user_id:
            logger.warning("Cannot add to cart: user not logged in")
            return
        if quantity < 1:
            raise HTTPException(status_code=400, detail="Quantity must be at least 1")

        with self._lock:
            items = [item.model_copy() for item in self.cart_items.value]
            for item in items:
                if item.product.id == product.id:
                    item.quantity += quantity
                    logger.info(f"Updated quantity for {product.title}: {item.quantity}")
                    break
            else:
                items.append(CartItem(product=product, quantity=quantity))
                logger.info(f"Added to cart: {product.title} (user {self.current_user_id})")

            self._update_cart(items)

    def update_quantity(self, product_id: int, quantity: int) -> None:
        if not self.current_user_id:
            return

        with self._lock:
            items = [item.model_copy() for item in self.cart_items.value]
            for index, item in enumerate(items):
                if item.product.id == product_id:
                    if quantity <= 0:
                        del items[index]
                        logger.info(f"Removed from cart: product {product_id} (user {self.current_user_id})")
                    else:
                        item.quantity = quantity
                    self._update_cart(items)
                    return

    def remove_from_cart(self, product_id: int) -> None:
        if not self.current_user_id:
            return
        with self._lock:
            items = [item for item in self.cart_items.value if item.product.id != product_id]
            logger.info(f"Removed from cart: product {product_id} (user {self.current_user_id})")
            self._update_cart(items)

    def clear_cart(self) -> None:
        if not self.current_user_id:
            return
        logger.info(f"Cleared cart for user {self.current_user_id}")
        with self._lock:
            self._update_cart([])

    def get_cart_total(self) -> float:
        return sum(item.line_total for item in self.cart_items.value)

    def get_cart_item_count(self) -> int:
        return sum(item.quantity for item in self.cart_items.value)

    def is_in_cart(self, product_id: int) -> bool:
        return any(item.product.id == product_id for item in self.cart_items.value)

    def get_item_quantity(self, product_id: int) -> int:
        for item in self.cart_items.value:
            if item.product.id == product_id:
                return item.quantity
        return 0

    def get_cart_info(self) -> Dict:
        return {
            "userId": self.current_user_id,
            "itemCount": self.get_cart_item_count(),
            "total": self.get_cart_total(),
        }
