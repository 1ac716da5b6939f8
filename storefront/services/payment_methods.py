import logging
import re
import uuid
from typing import List, Optional

from fastapi import HTTPException
from pydantic import ValidationError

from ..core.state import StateHolder
from ..core.storage import PAYMENT_METHODS_KEY, KeyValueStorage, read_json, write_json
from ..core.validation import split_expiry, validate_payment_card
from ..models import PaymentMethod, PaymentMethodType


logger = logging.getLogger(__name__)

CARD_TYPE_LABELS = {
    PaymentMethodType.VISA: "Visa",
    PaymentMethodType.MASTERCARD: "Mastercard",
    PaymentMethodType.AMEX: "American Express",
}


def detect_card_network(card_number: str) -> Optional[PaymentMethodType]:
    digits = re.sub(r"\D", "", card_number or "")
    if digits.startswith("4"):
        return PaymentMethodType.VISA
    if digits.startswith("5"):
        return PaymentMethodType.MASTERCARD
    if digits.startswith("3"):
        return PaymentMethodType.AMEX
    return None


def get_card_type(card_number: str) -> str:
    """Display name of the card network, as printed on order receipts."""
    if not re.sub(r"\D", "", card_number or ""):
        return "Unknown"
    network = detect_card_network(card_number)
    return CARD_TYPE_LABELS[network] if network else "Generic Card"


class PaymentMethodService:
    """Saved cards under ``paymentMethods``; exactly one is the default."""

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self.payment_methods: StateHolder[List[PaymentMethod]] = StateHolder([])
        self._load()

    def _load(self) -> None:
        saved = read_json(self.storage, PAYMENT_METHODS_KEY, [])
        methods: List[PaymentMethod] = []
        for raw in saved if isinstance(saved, list) else []:
            try:
                methods.append(PaymentMethod.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable payment method: {e}")
        self.payment_methods.next(methods)

    def _commit(self, methods: List[PaymentMethod]) -> None:
        self.payment_methods.next(methods)
        write_json(self.storage, PAYMENT_METHODS_KEY, [m.to_storage() for m in methods])

    def list_payment_methods(self) -> List[PaymentMethod]:
        return list(self.payment_methods.value)

    def get_default_payment_method(self) -> Optional[PaymentMethod]:
        return next((m for m in self.payment_methods.value if m.is_default), None)

    def add_payment_method(self, card_number: str, expiry_date: str, holder_name: str) -> PaymentMethod:
        validate_payment_card(card_number, expiry_date)
        if not holder_name or not holder_name.strip():
            raise HTTPException(status_code=400, detail="Card holder name is required")

        network = detect_card_network(card_number)
        if network is None:
            raise HTTPException(status_code=400, detail="Unsupported card type")

        expiry_month, expiry_year = split_expiry(expiry_date)
        methods = list(self.payment_methods.value)
        method = PaymentMethod(
            id=uuid.uuid4().hex[:12],
            type=network,
            last_four=card_number[-4:],
            expiry_month=expiry_month,
            expiry_year=expiry_year,
            holder_name=holder_name.strip(),
            is_default=not methods,
        )
        methods.append(method)
        self._commit(methods)
        logger.info(f"Saved {network.value} card ending {method.last_four}")
        return method

    def remove_payment_method(self, method_id: str) -> None:
        methods = self.payment_methods.value
        removed = next((m for m in methods if m.id == method_id), None)
        if not removed:
            raise HTTPException(status_code=404, detail=f"Payment method not found: {method_id}")

        remaining = [m for m in methods if m.id != method_id]
        if removed.is_default and remaining:
            remaining[0] = remaining[0].model_copy(update={"is_default": True})
        self._commit(remaining)

    def set_default_payment_method(self, method_id: str) -> PaymentMethod:
        methods = self.payment_methods.value
        if not any(m.id == method_id for m in methods):
            raise HTTPException(status_code=404, detail=f"Payment method not found: {method_id}")
        updated = [m.model_copy(update={"is_default": m.id == method_id}) for m in methods]
        self._commit(updated)
        return next(m for m in updated if m.id == method_id)
