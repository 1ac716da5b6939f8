"""
Pytest configuration and fixtures
"""
import json
import re

import httpx
import pytest
from fastapi.testclient import TestClient

from storefront.app import create_app
from storefront.core.storage import MemoryStorage
from storefront.models import Product
from storefront.services import build_services

API_URL = "https://fakestore.test"
RELAY_URL = "https://relay.test/f/contact"

CATALOG = [
    {
        "id": 1,
        "title": "Fjallraven Backpack",
        "price": 109.95,
        "description": "Your perfect pack for everyday use",
        "category": "men's clothing",
        "image": "https://img.test/1.jpg",
        "rating": {"rate": 3.9, "count": 120},
    },
    {
        "id": 2,
        "title": "Mens Casual T-Shirt",
        "price": 22.3,
        "description": "Slim-fitting style",
        "category": "men's clothing",
        "image": "https://img.test/2.jpg",
        "rating": {"rate": 4.1, "count": 259},
    },
    {
        "id": 3,
        "title": "Gold Bracelet",
        "price": 695.0,
        "description": "Dragon station chain bracelet",
        "category": "jewelery",
        "image": "https://img.test/3.jpg",
        "rating": {"rate": 4.6, "count": 400},
    },
    {
        "id": 4,
        "title": "SanDisk SSD",
        "price": 109.0,
        "description": "Fast storage for your laptop",
        "category": "electronics",
        "image": "https://img.test/4.jpg",
        "rating": {"rate": 4.8, "count": 319},
    },
    {
        "id": 5,
        "title": "Curved Gaming Monitor",
        "price": 1499.99,
        "description": "49 inch super ultrawide screen",
        "category": "electronics",
        "image": "https://img.test/5.jpg",
        "rating": {"rate": 2.2, "count": 140},
    },
]


class FakeStoreStub:
    """Serves the FakeStore routes the storefront uses plus the contact relay."""

    def __init__(self):
        self.relay_requests = []
        self.fail_products = False
        self.fail_relay = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "relay.test":
            if self.fail_relay:
                return httpx.Response(500, json={"error": "relay down"})
            self.relay_requests.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        if self.fail_products:
            return httpx.Response(503, text="unavailable")

        path = request.url.path
        if path == "/products":
            return httpx.Response(200, json=CATALOG)
        if path == "/products/categories":
            return httpx.Response(200, json=sorted({p["category"] for p in CATALOG}))
        if path.startswith("/products/category/"):
            category = path[len("/products/category/"):]
            return httpx.Response(200, json=[p for p in CATALOG if p["category"] == category])
        match = re.fullmatch(r"/products/(\d+)", path)
        if match:
            product = next((p for p in CATALOG if p["id"] == int(match.group(1))), None)
            # FakeStore answers unknown ids with an empty body
            if product is None:
                return httpx.Response(200, content=b"")
            return httpx.Response(200, json=product)
        return httpx.Response(404, json={"detail": "not found"})


@pytest.fixture
def stub():
    return FakeStoreStub()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def services(storage, stub):
    built = build_services(
        storage,
        api_url=API_URL,
        relay_url=RELAY_URL,
        transport=httpx.MockTransport(stub),
        tax_rate=0.08,
        low_stock_threshold=10,
    )
    yield built
    built.close()


@pytest.fixture
def client(services):
    app = create_app(services, latency_seconds=0)
    return TestClient(app)


@pytest.fixture
def products():
    return [Product.model_validate(raw) for raw in CATALOG]


@pytest.fixture
def backpack(products):
    return products[0]


@pytest.fixture
def tshirt(products):
    return products[1]


@pytest.fixture
def demo_user(services):
    return services.auth.login("user@demo.com", "password123")


@pytest.fixture
def demo_admin(services):
    return services.auth.login("admin@demo.com", "admin123")
