"""Storefront service: FakeStore catalogue, carts, favorites, orders and a
small admin panel over per-key JSON storage."""

__version__ = "1.0.0"
