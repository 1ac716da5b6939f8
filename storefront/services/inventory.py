import logging
import threading
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from ..core.state import StateHolder
from ..core.storage import INVENTORY_KEY, KeyValueStorage, read_json, write_json
from ..models import InventoryItem, Product


logger = logging.getLogger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 10


def default_inventory() -> List[InventoryItem]:
    now = datetime.now()
    return [
        InventoryItem(
            product_id=1,
            product_name="Sample Product 1",
            product_image="/assets/product1.jpg",
            current_stock=50,
            initial_stock=50,
            price=29.99,
            category="Electronics",
            last_updated=now,
        ),
        InventoryItem(
            product_id=2,
            product_name="Sample Product 2",
            product_image="/assets/product2.jpg",
            current_stock=30,
            initial_stock=30,
            price=49.99,
            category="Clothing",
            last_updated=now,
        ),
    ]


class InventoryService:
    """Stock ledger kept under ``inventory_data``.

    Products absent from the ledger are untracked: they are never available
    through :meth:`is_available` and cannot have stock reduced.
    """

    def __init__(self, storage: KeyValueStorage, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD):
        self.storage = storage
        self.low_stock_threshold = low_stock_threshold
        self._lock = threading.RLock()
        self.inventory_items: StateHolder[List[InventoryItem]] = StateHolder([])
        self._load_inventory()

    def _load_inventory(self) -> None:
        saved = read_json(self.storage, INVENTORY_KEY)
        if saved is None:
            self._initialize_default_inventory()
            return
        if not isinstance(saved, list):
            logger.error(f"Failed to load inventory: expected a list, got {type(saved).__name__}")
            self._initialize_default_inventory()
            return

        items: List[InventoryItem] = []
        for raw in saved:
            try:
                items.append(InventoryItem.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable inventory item: {e}")
        self.inventory_items.next(items)

    def _initialize_default_inventory(self) -> None:
        self.inventory_items.next(default_inventory())
        self._save_inventory()

    def _save_inventory(self) -> None:
        write_json(self.storage, INVENTORY_KEY, [item.to_storage() for item in self.inventory_items.value])

    def _commit(self, items: List[InventoryItem]) -> None:
        self.inventory_items.next(items)
        self._save_inventory()

    def _find(self, product_id: int) -> Optional[InventoryItem]:
        return next((item for item in self.inventory_items.value if item.product_id == product_id), None)

    def _replace(self, product_id: int, **changes) -> bool:
        items = list(self.inventory_items.value)
        for index, item in enumerate(items):
            if item.product_id == product_id:
                items[index] = item.model_copy(update={**changes, "last_updated": datetime.now()})
                self._commit(items)
                return True
        return False

    @property
    def items(self) -> List[InventoryItem]:
        return self.inventory_items.value

    def get_item(self, product_id: int) -> Optional[InventoryItem]:
        return self._find(product_id)

    def add_or_update_inventory_item(self, product: Product, stock: int) -> InventoryItem:
        with self._lock:
            existing = self._find(product.id)
            inventory_item = InventoryItem(
                product_id=product.id,
                product_name=product.title,
                product_image=product.image,
                current_stock=stock,
                initial_stock=existing.initial_stock if existing else stock,
                price=product.price,
                category=product.category,
                last_updated=datetime.now(),
            )

            items = list(self.inventory_items.value)
            if existing:
                items = [inventory_item if item.product_id == product.id else item for item in items]
            else:
                items.append(inventory_item)
            self._commit(items)
            return inventory_item

    def reduce_stock(self, product_id: int, quantity: int) -> bool:
        with self._lock:
            item = self._find(product_id)
            if not item:
                logger.warning(f"Product {product_id} not found in inventory")
                return False
            if item.current_stock < quantity:
                logger.warning(f"Insufficient stock for product {product_id}. Available: {item.current_stock}, Requested: {quantity}")
                return False
            return self._replace(product_id, current_stock=item.current_stock - quantity)

    def restore_stock(self, product_id: int, quantity: int) -> None:
        with self._lock:
            item = self._find(product_id)
            if item:
                self._replace(product_id, current_stock=item.current_stock + quantity)

    def update_stock(self, product_id: int, new_stock: int) -> bool:
        with self._lock:
            return self._replace(product_id, current_stock=new_stock)

    def is_available(self, product_id: int, quantity: int = 1) -> bool:
        item = self._find(product_id)
        return item.current_stock >= quantity if item else False

    def get_current_stock(self, product_id: int) -> int:
        item = self._find(product_id)
        return item.current_stock if item else 0

    def get_low_stock_items(self) -> List[InventoryItem]:
        return [item for item in self.inventory_items.value if item.current_stock < self.low_stock_threshold]

    def get_out_of_stock_items(self) -> List[InventoryItem]:
        return [item for item in self.inventory_items.value if item.current_stock == 0]
