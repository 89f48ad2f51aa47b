"""Schemas/models for the storefront API."""
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .validators import is_valid_email, is_valid_phone, is_valid_pin_code, is_valid_quantity

CATEGORIES = ["Rings", "Necklaces", "Earrings", "Bracelets"]

ORDER_STATUSES = ["pending_verification", "confirmed", "shipped", "delivered", "cancelled"]


class Variant(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    color: Optional[str] = None
    variant_number: Optional[int] = Field(None, alias="variantNumber")
    images: List[str] = Field(default_factory=list)
    stock: int = Field(0, ge=0)
    cloudinary_ids: Optional[List[str]] = Field(None, alias="cloudinaryIds")

    @field_validator("stock", mode="before")
    @classmethod
    def missing_stock_is_zero(cls, value: Any) -> Any:
        if value is None or value == "":
            return 0
        return value


class Product(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int
    name: str
    price: float
    category: str = ""
    description: str = ""
    trending: bool = False
    best_seller: bool = Field(False, alias="bestSeller")
    cloudinary_id: Optional[str] = Field(None, alias="cloudinaryId")
    variants: List[Variant] = Field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        """Storefront JSON shape (camelCase, unset optionals dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class NewProductData(BaseModel):
    """``productData`` field of the admin upload form."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    price: float
    category: str
    description: str = ""
    trending: bool = False
    best_seller: bool = Field(False, alias="bestSeller")
    color: str = "Gold"
    stock: int

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Product name is required")
        return value

    @field_validator("price")
    @classmethod
    def price_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Valid price is required")
        return value

    @field_validator("category")
    @classmethod
    def known_category(cls, value: str) -> str:
        if value not in CATEGORIES:
            raise ValueError(f"Category must be one of: {', '.join(CATEGORIES)}")
        return value

    @field_validator("stock")
    @classmethod
    def stock_not_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Valid stock quantity is required")
        return value


class CartLine(BaseModel):
    """One cart line as submitted by the browser. Never authoritative."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(validation_alias=AliasChoices("productId", "id", "product_id"))
    variant_number: Optional[int] = Field(
        None, validation_alias=AliasChoices("variantNumber", "variant", "variant_number")
    )
    color: Optional[str] = None
    quantity: int = Field(validation_alias=AliasChoices("quantity", "qty"))

    @field_validator("quantity")
    @classmethod
    def quantity_positive(cls, value: int) -> int:
        if not is_valid_quantity(value):
            raise ValueError("quantity must be a positive integer")
        return value


class CustomerDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    phone: str
    alternate_phone: Optional[str] = Field(None, alias="alternatePhone")
    address: str
    landmark: str
    pincode: str = Field(validation_alias=AliasChoices("pincode", "pinCode", "pin_code"))

    @field_validator("name", "address", "landmark")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator("name", "address", "landmark")
    @classmethod
    def required_text(cls, value: str) -> str:
        if not value:
            raise ValueError("is required")
        return value

    @field_validator("email")
    @classmethod
    def email_format(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_email(value):
            raise ValueError("Email is invalid")
        return value

    @field_validator("phone")
    @classmethod
    def phone_format(cls, value: str) -> str:
        if not is_valid_phone(value):
            raise ValueError("Phone must be 10 digits")
        return value.strip()

    @field_validator("alternate_phone")
    @classmethod
    def alternate_phone_format(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        if not is_valid_phone(value):
            raise ValueError("Alternate phone must be 10 digits")
        return value.strip()

    @field_validator("pincode")
    @classmethod
    def pincode_format(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_pin_code(value):
            raise ValueError("Pincode must be 6 digits")
        return value


class OrderTotals(BaseModel):
    subtotal: float
    shipping: float
    total: float


class ClientTotals(BaseModel):
    subtotal: Optional[float] = None
    shipping: Optional[float] = None
    total: float


class OrderItem(BaseModel):
    product_id: int
    product_name: str
    variant_label: str
    variant_number: Optional[int] = None
    color: Optional[str] = None
    price: float
    quantity: int
    line_total: float


class Order(BaseModel):
    id: Optional[int] = None
    customer_name: str
    email: str
    phone: str
    alternate_phone: Optional[str] = None
    address: str
    landmark: Optional[str] = None
    pincode: str
    subtotal: float
    shipping: float
    total: float
    payment_screenshot_url: Optional[str] = None
    payment_screenshot_id: Optional[str] = None
    status: str = "pending_verification"
    created_at: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)


class OrderStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def known_status(cls, value: str) -> str:
        if value not in ORDER_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        return value


class SaveCatalogRequest(BaseModel):
    products: List[Product]
    # None for backends without a revision token (Supabase)
    sha: Optional[str] = None
