"""
Tests for the per-user cart
"""
import json

import pytest
from fastapi import HTTPException

from storefront.core.storage import cart_key


def test_add_without_session_is_ignored(services, storage, backpack):
    services.cart.add_to_cart(backpack)
    assert services.cart.items == []
    assert storage.keys() == ["inventory_data"]


def test_adding_twice_increments_quantity(services, demo_user, backpack):
    services.cart.add_to_cart(backpack)
    services.cart.add_to_cart(backpack, 2)

    assert len(services.cart.items) == 1
    assert services.cart.get_item_quantity(backpack.id) == 3


def test_cart_persisted_under_user_key(services, storage, demo_user, backpack, tshirt):
    services.cart.add_to_cart(backpack)
    services.cart.add_to_cart(tshirt, 2)

    saved = json.loads(storage.get_item(cart_key("2")))
    assert [(line["product"]["id"], line["quantity"]) for line in saved] == [(1, 1), (2, 2)]


def test_totals(services, demo_user, backpack, tshirt):
    services.cart.add_to_cart(backpack)
    services.cart.add_to_cart(tshirt, 2)

    assert services.cart.get_cart_total() == pytest.approx(109.95 + 2 * 22.3)
    assert services.cart.get_cart_item_count() == 3
    assert services.cart.get_cart_info() == {
        "userId": "2",
        "itemCount": 3,
        "total": pytest.approx(154.55),
    }


def test_update_quantity_and_remove_when_zero(services, demo_user, backpack, tshirt):
    services.cart.add_to_cart(backpack)
    services.cart.add_to_cart(tshirt)

    services.cart.update_quantity(backpack.id, 5)
    assert services.cart.get_item_quantity(backpack.id) == 5

    services.cart.update_quantity(tshirt.id, 0)
    assert not services.cart.is_in_cart(tshirt.id)

    services.cart.update_quantity(999, 3)
    assert [item.product.id for item in services.cart.items] == [backpack.id]


def test_remove_from_cart(services, demo_user, backpack, tshirt):
    services.cart.add_to_cart(backpack)
    services.cart.add_to_cart(tshirt)
    services.cart.remove_from_cart(backpack.id)
    assert [item.product.id for item in services.cart.items] == [tshirt.id]


def test_clearing_cart_empties_persisted_storage(services, storage, demo_user, backpack):
    services.cart.add_to_cart(backpack)
    services.cart.clear_cart()
    assert services.cart.items == []
    assert json.loads(storage.get_item(cart_key("2"))) == []


def test_rejects_non_positive_quantity(services, demo_user, backpack):
    with pytest.raises(HTTPException):
        services.cart.add_to_cart(backpack, 0)


def test_cart_follows_session(services, storage, backpack, tshirt):
    services.auth.login("user@demo.com", "password123")
    services.cart.add_to_cart(backpack)

    services.auth.logout()
    assert services.cart.items == []
    assert json.loads(storage.get_item(cart_key("2")))[0]["product"]["id"] == backpack.id

    services.auth.login("admin@demo.com", "admin123")
    assert services.cart.items == []
    services.cart.add_to_cart(tshirt)

    services.auth.login("user@demo.com", "password123")
    assert [item.product.id for item in services.cart.items] == [backpack.id]


def test_malformed_cart_blob_starts_empty(services, storage):
    storage.set_item(cart_key("2"), "not json")
    services.auth.login("user@demo.com", "password123")
    assert services.cart.items == []


def test_subscribers_are_notified(services, demo_user, backpack):
    counts = []
    services.cart.cart_items.subscribe(lambda items: counts.append(len(items)), replay=False)
    services.cart.add_to_cart(backpack)
    services.cart.clear_cart()
    assert counts == [1, 0]
