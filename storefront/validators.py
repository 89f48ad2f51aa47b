"""Validation helpers for customer details, quantities and uploaded images."""
import re
from typing import Optional

from .errors import BadRequestError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MOBILE_RE = re.compile(r"^[6-9]\d{9}$")
PIN_CODE_RE = re.compile(r"^[1-9]\d{5}$")


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and bool(EMAIL_RE.match(email))


def is_valid_phone(phone: Optional[str]) -> bool:
    """Indian mobile number: 10 digits starting 6-9, optionally prefixed with country code 91."""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 12 and digits.startswith("91"):
        return bool(MOBILE_RE.match(digits[-10:]))
    return bool(MOBILE_RE.match(digits))


def is_valid_pin_code(pin: Optional[str]) -> bool:
    return bool(pin) and bool(PIN_CODE_RE.match(pin))


def is_valid_quantity(quantity, maximum: Optional[int] = None) -> bool:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        return False
    if quantity <= 0:
        return False
    return maximum is None or quantity <= maximum


def validate_image_upload(
    data: bytes,
    content_type: Optional[str],
    max_bytes: int,
    label: str = "Image",
) -> None:
    """Reject empty, oversized or non-image uploads."""
    if not data:
        raise BadRequestError(f"{label} file is required")
    if not (content_type or "").startswith("image/"):
        raise BadRequestError("Only image files are allowed")
    if len(data) > max_bytes:
        raise BadRequestError(f"{label} size must be less than {max_bytes // (1024 * 1024)}MB")
