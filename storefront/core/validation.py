import logging
import re
from typing import Dict, Optional

from fastapi import HTTPException


logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
CARD_NUMBER_PATTERN = re.compile(r'^\d{16}$')
EXPIRY_PATTERN = re.compile(r'^(0[1-9]|1[0-2])/?([0-9]{2})$')
CVV_PATTERN = re.compile(r'^\d{3,4}$')
CATEGORY_PATTERN = re.compile(r"^[a-zA-Z0-9' _-]+$")

SORT_OPTIONS = ("featured", "price-low", "price-high", "rating")


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value and EMAIL_PATTERN.match(value))


def validate_inputs(product_id: Optional[int] = None, category: Optional[str] = None, sort: Optional[str] = None) -> None:
    if product_id is not None and product_id <= 0:
        raise HTTPException(status_code=400, detail="Invalid product id")

    if category and category != "all" and not CATEGORY_PATTERN.match(category):
        raise HTTPException(status_code=400, detail="Invalid category format")

    if sort and sort not in SORT_OPTIONS:
        raise HTTPException(status_code=400, detail=f"Invalid sort. Allowed: {', '.join(SORT_OPTIONS)}")


def validate_price_range(min_price: Optional[float], max_price: Optional[float]) -> None:
    if (min_price is not None and min_price < 0) or (max_price is not None and max_price < 0):
        raise HTTPException(status_code=400, detail="Price bounds must not be negative")
    if min_price is not None and max_price is not None and min_price > max_price:
        raise HTTPException(status_code=400, detail="min_price must not exceed max_price")


def validate_required(fields: Dict[str, Optional[str]]) -> None:
    missing = [name for name, value in fields.items() if not value or not str(value).strip()]
    if missing:
        raise HTTPException(status_code=400, detail=f"Required fields missing: {', '.join(missing)}")


def validate_payment_card(card_number: str, expiry_date: str, cvv: Optional[str] = None) -> None:
    if not CARD_NUMBER_PATTERN.match(card_number or ""):
        raise HTTPException(status_code=400, detail="Please enter a valid 16-digit card number")
    if not EXPIRY_PATTERN.match(expiry_date or ""):
        raise HTTPException(status_code=400, detail="Please use MM/YY format")
    if cvv is not None and not CVV_PATTERN.match(cvv):
        raise HTTPException(status_code=400, detail="Please enter a valid CVV")


def split_expiry(expiry_date: str) -> tuple[str, str]:
    match = EXPIRY_PATTERN.match(expiry_date or "")
    if not match:
        raise HTTPException(status_code=400, detail="Please use MM/YY format")
    return match.group(1), match.group(2)


def validate_min_length(label: str, value: Optional[str], min_length: int) -> None:
    if not value or not value.strip():
        raise HTTPException(status_code=400, detail=f"{label} is required")
    if len(value.strip()) < min_length:
        raise HTTPException(status_code=400, detail=f"{label} must be at least {min_length} characters")


def validate_email(value: Optional[str]) -> None:
    if not value:
        raise HTTPException(status_code=400, detail="Email is required")
    if not is_valid_email(value):
        raise HTTPException(status_code=400, detail="Please enter a valid email address")
