import logging
from typing import Iterable, List, Optional

import httpx
from fastapi import HTTPException

from ..core.http import create_http_client, get_json
from ..core.state import StateHolder
from ..models import Product


logger = logging.getLogger(__name__)

SIMILAR_PRODUCTS_LIMIT = 6


class ProductService:
    """Read-only client for the FakeStore product catalogue."""

    def __init__(self, base_url: str, *, timeout_seconds: float = 10, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or create_http_client(self.base_url, timeout_seconds)
        self.products: StateHolder[List[Product]] = StateHolder([])

    def close(self) -> None:
        self.client.close()

    def _parse_products(self, payload) -> List[Product]:
        if not isinstance(payload, list):
            logger.error(f"Expected a product list, got {type(payload).__name__}")
            raise HTTPException(status_code=502, detail="Product service returned an unexpected payload")
        return [Product.model_validate(item) for item in payload]

    def get_all_products(self) -> List[Product]:
        products = self._parse_products(get_json(self.client, "/products"))
        logger.info(f"Products loaded from FakeStore: {len(products)}")
        self.products.next(products)
        return products

    def get_product(self, product_id: int) -> Product:
        payload = get_json(self.client, f"/products/{product_id}", not_found_detail=f"Product not found: {product_id}")
        if not isinstance(payload, dict):
            raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")
        return Product.model_validate(payload)

    def get_products_by_category(self, category: str) -> List[Product]:
        return self._parse_products(get_json(self.client, f"/products/category/{category}"))

    def get_categories(self) -> List[str]:
        payload = get_json(self.client, "/products/categories")
        if not isinstance(payload, list):
            raise HTTPException(status_code=502, detail="Product service returned an unexpected payload")
        return [str(category) for category in payload]

    def search_products(self, query: str) -> List[Product]:
        return search(self.get_all_products(), query)

    def get_similar_products(self, product: Product, limit: int = SIMILAR_PRODUCTS_LIMIT) -> List[Product]:
        similar = [
            p for p in self.get_all_products()
            if p.category == product.category and p.id != product.id
        ][:limit]
        logger.debug(f"Found {len(similar)} products similar to {product.title}")
        return similar


def search(products: Iterable[Product], query: Optional[str]) -> List[Product]:
    if not query:
        return list(products)
    needle = query.lower()
    return [
        p for p in products
        if needle in p.title.lower() or needle in p.description.lower()
    ]


def filter_products(
    products: Iterable[Product],
    *,
    category: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    search_query: Optional[str] = None,
    sort: Optional[str] = None,
) -> List[Product]:
    """Apply the catalogue filters: category, inclusive price range, search, sort.

    A missing price bound leaves that side of the range open. ``featured``
    and unknown sort keys keep the API's order.
    """
    result = list(products)
    if category and category != "all":
        result = [p for p in result if p.category == category]

    if min_price is not None:
        result = [p for p in result if p.price >= min_price]
    if max_price is not None:
        result = [p for p in result if p.price <= max_price]
    result = search(result, search_query)

    if sort == "price-low":
        result.sort(key=lambda p: p.price)
    elif sort == "price-high":
        result.sort(key=lambda p: p.price, reverse=True)
    elif sort == "rating":
        result.sort(key=lambda p: p.rating.rate, reverse=True)

    return result
