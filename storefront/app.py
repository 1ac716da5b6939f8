import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Config
from .core.middleware import global_exception_handler, log_requests
from .core.validation import validate_inputs, validate_price_range
from .models import InventoryItem, Order, OrderStatus, PaymentMethod, Product, User, UserRole
from .schemas import (
    CartItemRequest,
    CheckoutRequest,
    LoginRequest,
    PaymentMethodRequest,
    ProfileUpdate,
    QuantityUpdate,
    SignupRequest,
    StatusUpdate,
    StockUpdate,
    TrackProductRequest,
)
from .services import Services, build_services
from .services.contact import ContactForm
from .services.products import filter_products

logger = logging.getLogger(__name__)


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_user(services: Services = Depends(get_services)) -> User:
    return services.auth.require_user()


def admin_user(services: Services = Depends(get_services)) -> User:
    return services.auth.require_user([UserRole.ADMIN])


async def simulate_latency(request: Request) -> None:
    """Stand-in for the network round trip the mocked auth and payment calls
    would have; zero unless SIMULATED_LATENCY_SECONDS is set."""
    delay = request.app.state.latency_seconds
    if delay > 0:
        await asyncio.sleep(delay)


def _cart_payload(services: Services) -> dict:
    return {
        "items": services.cart.items,
        **services.cart.get_cart_info(),
    }


def _visible_order(services: Services, user: User, order_id: int) -> Order:
    # Other users' orders answer 404 like missing ones
    order = services.orders.get_order_by_id(order_id)
    if not order or (user.role != UserRole.ADMIN and order.email.lower() != user.email.lower()):
        raise HTTPException(status_code=404, detail=f"Order not found: {order_id}")
    return order


def create_app(services: Optional[Services] = None, *, latency_seconds: float = Config.SIMULATED_LATENCY_SECONDS) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "services", None) is None
        if owned:
            Config.validate()
            app.state.services = build_services()
            logger.info(f"Storefront services ready (storage: {Config.STORAGE_PATH or 'memory'})")
        yield
        if owned:
            app.state.services.close()

    app = FastAPI(title="Storefront API", lifespan=lifespan)
    app.state.services = services
    app.state.latency_seconds = latency_seconds

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _log_requests(request, call_next):
        return await log_requests(request, call_next)

    @app.exception_handler(Exception)
    async def _global_exception_handler(request, exc):
        return await global_exception_handler(request, exc)

    _register_catalog_routes(app)
    _register_auth_routes(app)
    _register_cart_routes(app)
    _register_order_routes(app)
    _register_admin_routes(app)
    return app


def _register_catalog_routes(app: FastAPI) -> None:
    @app.get("/")
    async def root():
        """Return basic API information."""
        return {
            "service": "Storefront API",
            "version": "1.0",
            "endpoints": {
                "products": "/products",
                "cart": "/cart",
                "checkout": "/checkout",
                "orders": "/orders",
                "admin": "/admin/dashboard",
                "health": "/health",
            },
            "timestamp": datetime.now().isoformat(),
            "description": "Storefront backed by the FakeStore API and local JSON storage",
        }

    @app.get("/health")
    def health_check(services: Services = Depends(get_services)):
        """Configuration and storage checks."""
        health_start_time = time.time()
        try:
            Config.validate()
            slot_count = len(services.storage.keys())
            health_duration = time.time() - health_start_time
            return {
                "status": "healthy",
                "service": "storefront-api",
                "environment": Config.ENVIRONMENT,
                "storageSlots": slot_count,
                "timestamp": datetime.now().isoformat(),
                "response_time_ms": round(health_duration * 1000, 2),
            }
        except Exception as e:
            health_duration = time.time() - health_start_time
            logger.error(f"Health check failed: {str(e)} - Duration: {health_duration:.1f}s")
            return {
                "status": "unhealthy",
                "service": "storefront-api",
                "timestamp": datetime.now().isoformat(),
                "error": str(e),
                "response_time_ms": round(health_duration * 1000, 2),
            }

    @app.get("/products", response_model=List[Product])
    def list_products(
        category: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None,
        services: Services = Depends(get_services),
    ):
        validate_inputs(category=category, sort=sort)
        validate_price_range(min_price, max_price)
        return filter_products(
            services.products.get_all_products(),
            category=category,
            min_price=min_price,
            max_price=max_price,
            search_query=search,
            sort=sort,
        )

    @app.get("/products/categories", response_model=List[str])
    def list_categories(services: Services = Depends(get_services)):
        return services.products.get_categories()

    @app.get("/products/{product_id}", response_model=Product)
    def get_product(product_id: int, services: Services = Depends(get_services)):
        validate_inputs(product_id=product_id)
        return services.products.get_product(product_id)

    @app.get("/products/{product_id}/similar", response_model=List[Product])
    def similar_products(product_id: int, services: Services = Depends(get_services)):
        validate_inputs(product_id=product_id)
        product = services.products.get_product(product_id)
        return services.products.get_similar_products(product)

    @app.post("/contact")
    def contact(form: ContactForm, services: Services = Depends(get_services)):
        services.contact.send_contact_message(form)
        return {"status": "success", "message": "Message sent"}


def _register_auth_routes(app: FastAPI) -> None:
    @app.post("/auth/signup", response_model=User, response_model_exclude_none=True, dependencies=[Depends(simulate_latency)])
    def signup(body: SignupRequest, services: Services = Depends(get_services)):
        user = services.auth.signup(
            body.email,
            body.password,
            body.username,
            firstname=body.firstname,
            lastname=body.lastname,
            phone=body.phone,
            role=body.role,
        )
        services.favorites.migrate_guest_favorites()
        return user

    @app.post("/auth/login", response_model=User, response_model_exclude_none=True, dependencies=[Depends(simulate_latency)])
    def login(body: LoginRequest, services: Services = Depends(get_services)):
        user = services.auth.login(body.email, body.password, body.login_type)
        services.favorites.migrate_guest_favorites()
        return user

    @app.post("/auth/logout")
    def logout(services: Services = Depends(get_services)):
        services.auth.logout()
        return {"status": "success"}

    @app.get("/auth/me", response_model=User, response_model_exclude_none=True)
    def me(user: User = Depends(current_user)):
        return user

    @app.put("/auth/me", response_model=User, response_model_exclude_none=True)
    def update_profile(body: ProfileUpdate, user: User = Depends(current_user), services: Services = Depends(get_services)):
        changes = body.model_dump(exclude_none=True)
        return services.auth.update_user_profile(user.model_copy(update=changes))


def _register_cart_routes(app: FastAPI) -> None:
    @app.get("/cart")
    def get_cart(user: User = Depends(current_user), services: Services = Depends(get_services)):
        return _cart_payload(services)

    @app.post("/cart/items", status_code=201)
    def add_cart_item(body: CartItemRequest, user: User = Depends(current_user), services: Services = Depends(get_services)):
        product = services.products.get_product(body.product_id)
        services.cart.add_to_cart(product, body.quantity)
        return _cart_payload(services)

    @app.put("/cart/items/{product_id}")
    def update_cart_item(product_id: int, body: QuantityUpdate, user: User = Depends(current_user), services: Services = Depends(get_services)):
        if not services.cart.is_in_cart(product_id):
            raise HTTPException(status_code=404, detail=f"Product {product_id} is not in the cart")
        services.cart.update_quantity(product_id, body.quantity)
        return _cart_payload(services)

    @app.delete("/cart/items/{product_id}")
    def remove_cart_item(product_id: int, user: User = Depends(current_user), services: Services = Depends(get_services)):
        services.cart.remove_from_cart(product_id)
        return _cart_payload(services)

    @app.delete("/cart")
    def clear_cart(user: User = Depends(current_user), services: Services = Depends(get_services)):
        services.cart.clear_cart()
        return _cart_payload(services)

    @app.get("/favorites", response_model=List[Product])
    def list_favorites(services: Services = Depends(get_services)):
        return services.favorites.items

    @app.post("/favorites/{product_id}/toggle")
    def toggle_favorite(product_id: int, services: Services = Depends(get_services)):
        validate_inputs(product_id=product_id)
        product = services.products.get_product(product_id)
        favorite = services.favorites.toggle_favorite(product)
        return {"productId": product_id, "isFavorite": favorite, "count": services.favorites.get_favorites_count()}

    @app.delete("/favorites/{product_id}")
    def remove_favorite(product_id: int, services: Services = Depends(get_services)):
        services.favorites.remove_from_favorites(product_id)
        return {"productId": product_id, "isFavorite": False, "count": services.favorites.get_favorites_count()}

    @app.delete("/favorites")
    def clear_favorites(services: Services = Depends(get_services)):
        services.favorites.clear_favorites()
        return {"count": 0}


def _register_order_routes(app: FastAPI) -> None:
    @app.post("/checkout", status_code=201, dependencies=[Depends(simulate_latency)])
    def checkout(body: CheckoutRequest, user: User = Depends(current_user), services: Services = Depends(get_services)):
        return services.checkout.place_order(user, body.shipping, body.payment)

    @app.get("/orders", response_model=List[Order])
    def my_orders(status: Optional[OrderStatus] = None, user: User = Depends(current_user), services: Services = Depends(get_services)):
        orders = services.orders.get_orders_by_email(user.email)
        if status:
            orders = [order for order in orders if order.status == status]
        return orders

    @app.get("/orders/{order_id}", response_model=Order)
    def get_order(order_id: int, user: User = Depends(current_user), services: Services = Depends(get_services)):
        return _visible_order(services, user, order_id)

    @app.post("/orders/{order_id}/reorder")
    def reorder(order_id: int, user: User = Depends(current_user), services: Services = Depends(get_services)):
        _visible_order(services, user, order_id)
        order = services.checkout.reorder(order_id)
        return {"addedItems": len(order.items), **_cart_payload(services)}

    @app.get("/payment-methods", response_model=List[PaymentMethod])
    def list_payment_methods(user: User = Depends(current_user), services: Services = Depends(get_services)):
        return services.payment_methods.list_payment_methods()

    @app.post("/payment-methods", response_model=PaymentMethod, status_code=201)
    def add_payment_method(body: PaymentMethodRequest, user: User = Depends(current_user), services: Services = Depends(get_services)):
        return services.payment_methods.add_payment_method(body.card_number, body.expiry_date, body.holder_name)

    @app.delete("/payment-methods/{method_id}", status_code=204)
    def remove_payment_method(method_id: str, user: User = Depends(current_user), services: Services = Depends(get_services)):
        services.payment_methods.remove_payment_method(method_id)

    @app.post("/payment-methods/{method_id}/default", response_model=PaymentMethod)
    def set_default_payment_method(method_id: str, user: User = Depends(current_user), services: Services = Depends(get_services)):
        return services.payment_methods.set_default_payment_method(method_id)


def _register_admin_routes(app: FastAPI) -> None:
    @app.get("/admin/dashboard")
    def dashboard(user: User = Depends(admin_user), services: Services = Depends(get_services)):
        return services.admin.get_dashboard()

    @app.get("/admin/orders", response_model=List[Order])
    def all_orders(status: Optional[OrderStatus] = None, user: User = Depends(admin_user), services: Services = Depends(get_services)):
        if status:
            return services.orders.get_orders_by_status(status)
        return services.orders.items

    @app.get("/admin/orders/stats/monthly")
    def monthly_stats(
        year: int = Query(..., ge=1970),
        month: int = Query(..., ge=1, le=12),
        user: User = Depends(admin_user),
        services: Services = Depends(get_services),
    ):
        return services.orders.get_monthly_stats(year, month)

    @app.get("/admin/orders/stats/popular")
    def popular_products(user: User = Depends(admin_user), services: Services = Depends(get_services)):
        return services.orders.get_popular_products()

    @app.put("/admin/orders/{order_id}/status", response_model=Order)
    def update_order_status(order_id: int, body: StatusUpdate, user: User = Depends(admin_user), services: Services = Depends(get_services)):
        return services.admin.update_order_status(order_id, body.status)

    @app.delete("/admin/orders/{order_id}", status_code=204)
    def delete_order(order_id: int, user: User = Depends(admin_user), services: Services = Depends(get_services)):
        if not services.orders.delete_order(order_id):
            raise HTTPException(status_code=404, detail=f"Order not found: {order_id}")

    @app.get("/admin/inventory")
    def inventory(user: User = Depends(admin_user), services: Services = Depends(get_services)):
        return {
            "items": services.inventory.items,
            "lowStockItems": services.inventory.get_low_stock_items(),
            "outOfStockItems": services.inventory.get_out_of_stock_items(),
        }

    @app.post("/admin/inventory", response_model=InventoryItem, status_code=201)
    def track_product(body: TrackProductRequest, user: User = Depends(admin_user), services: Services = Depends(get_services)):
        product = services.products.get_product(body.product_id)
        services.admin.track_product(product, body.stock)
        return services.inventory.get_item(product.id)

    @app.put("/admin/inventory/{product_id}", response_model=InventoryItem)
    def update_stock(product_id: int, body: StockUpdate, user: User = Depends(admin_user), services: Services = Depends(get_services)):
        services.admin.update_inventory_stock(product_id, body.stock)
        return services.inventory.get_item(product_id)


app = create_app()
