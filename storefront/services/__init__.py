from dataclasses import dataclass
from typing import Optional

import httpx

from ..core.config import Config
from ..core.http import create_http_client
from ..core.storage import KeyValueStorage, create_storage
from .admin import AdminService
from .auth import AuthService
from .cart import CartService
from .checkout import CheckoutService
from .contact import ContactService
from .favorites import FavoritesService
from .inventory import InventoryService
from .orders import OrderService
from .payment_methods import PaymentMethodService
from .products import ProductService


@dataclass
class Services:
    storage: KeyValueStorage
    products: ProductService
    auth: AuthService
    cart: CartService
    favorites: FavoritesService
    inventory: InventoryService
    orders: OrderService
    payment_methods: PaymentMethodService
    checkout: CheckoutService
    admin: AdminService
    contact: ContactService

    def close(self) -> None:
        self.products.close()
        self.contact.close()


def build_services(
    storage: Optional[KeyValueStorage] = None,
    *,
    api_url: str = Config.FAKESTORE_API_URL,
    relay_url: str = Config.CONTACT_RELAY_URL,
    timeout_seconds: float = Config.HTTP_TIMEOUT_SECONDS,
    tax_rate: float = Config.TAX_RATE,
    low_stock_threshold: int = Config.LOW_STOCK_THRESHOLD,
    transport: Optional[httpx.BaseTransport] = None,
) -> Services:
    """Wire every service to one storage, the way one browser profile shares
    one ``localStorage``.

    ``transport`` replaces the network for both outbound clients.
    """
    if storage is None:
        storage = create_storage(Config.STORAGE_PATH)

    products = ProductService(
        api_url,
        client=create_http_client(api_url.rstrip("/"), timeout_seconds, transport),
    )
    contact = ContactService(
        relay_url,
        client=create_http_client(timeout_seconds=timeout_seconds, transport=transport),
    )
    auth = AuthService(storage)
    cart = CartService(storage, auth)
    favorites = FavoritesService(storage, auth)
    inventory = InventoryService(storage, low_stock_threshold=low_stock_threshold)
    orders = OrderService(storage)

    return Services(
        storage=storage,
        products=products,
        auth=auth,
        cart=cart,
        favorites=favorites,
        inventory=inventory,
        orders=orders,
        payment_methods=PaymentMethodService(storage),
        checkout=CheckoutService(cart, orders, inventory, tax_rate=tax_rate),
        admin=AdminService(orders, inventory),
        contact=contact,
    )
