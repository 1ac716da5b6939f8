"""
Tests for saved payment methods and card network detection
"""
import json

import pytest
from fastapi import HTTPException

from storefront.core.storage import PAYMENT_METHODS_KEY
from storefront.models import PaymentMethodType
from storefront.services.payment_methods import PaymentMethodService, detect_card_network, get_card_type


@pytest.mark.parametrize(
    "number, expected",
    [
        ("4111111111111111", "Visa"),
        ("5500 0000 0000 0004", "Mastercard"),
        ("340000000000009", "American Express"),
        ("6011000000000004", "Generic Card"),
        ("", "Unknown"),
        ("----", "Unknown"),
    ],
)
def test_get_card_type(number, expected):
    assert get_card_type(number) == expected


def test_detect_card_network():
    assert detect_card_network("4111111111111111") == PaymentMethodType.VISA
    assert detect_card_network("6011000000000004") is None


def test_first_card_becomes_default(services, storage):
    first = services.payment_methods.add_payment_method("4111111111111111", "12/30", "Demo User")
    second = services.payment_methods.add_payment_method("5500000000000004", "0131", "Demo User")

    assert first.is_default and not second.is_default
    assert first.type == PaymentMethodType.VISA
    assert first.last_four == "1111"
    assert (second.expiry_month, second.expiry_year) == ("01", "31")

    saved = json.loads(storage.get_item(PAYMENT_METHODS_KEY))
    assert saved[0]["lastFour"] == "1111"
    assert saved[0]["isDefault"] is True


def test_saved_methods_reload(services, storage):
    services.payment_methods.add_payment_method("4111111111111111", "12/30", "Demo User")
    reloaded = PaymentMethodService(storage)
    assert reloaded.get_default_payment_method().last_four == "1111"


def test_set_default(services):
    first = services.payment_methods.add_payment_method("4111111111111111", "12/30", "Demo User")
    second = services.payment_methods.add_payment_method("5500000000000004", "12/30", "Demo User")

    services.payment_methods.set_default_payment_method(second.id)
    assert services.payment_methods.get_default_payment_method().id == second.id
    assert [m.is_default for m in services.payment_methods.list_payment_methods()] == [False, True]
    assert first.id != second.id


def test_removing_default_promotes_next(services):
    first = services.payment_methods.add_payment_method("4111111111111111", "12/30", "Demo User")
    second = services.payment_methods.add_payment_method("5500000000000004", "12/30", "Demo User")

    services.payment_methods.remove_payment_method(first.id)
    assert services.payment_methods.get_default_payment_method().id == second.id

    services.payment_methods.remove_payment_method(second.id)
    assert services.payment_methods.list_payment_methods() == []
    assert services.payment_methods.get_default_payment_method() is None


def test_unknown_method_not_found(services):
    with pytest.raises(HTTPException) as exc_info:
        services.payment_methods.remove_payment_method("missing")
    assert exc_info.value.status_code == 404
    with pytest.raises(HTTPException):
        services.payment_methods.set_default_payment_method("missing")


@pytest.mark.parametrize(
    "number, expiry, holder, detail",
    [
        ("4111", "12/30", "Demo", "Please enter a valid 16-digit card number"),
        ("4111111111111111", "1230x", "Demo", "Please use MM/YY format"),
        ("4111111111111111", "12/30", "  ", "Card holder name is required"),
        ("6011000000000004", "12/30", "Demo", "Unsupported card type"),
    ],
)
def test_invalid_cards_rejected(services, number, expiry, holder, detail):
    with pytest.raises(HTTPException) as exc_info:
        services.payment_methods.add_payment_method(number, expiry, holder)
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == detail
    assert services.payment_methods.list_payment_methods() == []


def test_unreadable_saved_methods_are_skipped(storage):
    good = {"id": "abc", "type": "visa", "lastFour": "1111", "expiryMonth": "12", "expiryYear": "30", "holderName": "Demo", "isDefault": True}
    storage.set_item(PAYMENT_METHODS_KEY, json.dumps([good, {"id": "broken", "type": "discover"}]))
    assert [m.id for m in PaymentMethodService(storage).list_payment_methods()] == ["abc"]
