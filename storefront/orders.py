"""
Order placement: server-side revalidation of a browser cart, order persistence
and stock decrement across the configured stores.

There is no lock, version check or idempotency key. Two checkouts racing on
the same variant can both pass the stock check, and resubmitting a request
creates a second order and decrements stock again.
"""
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from .cart import PricedLine, calculate_cart_totals, totals_match
from .errors import (
    BadRequestError,
    InsufficientStockError,
    StorefrontError,
    TotalMismatchError,
)
from .notifications import delete_images, send_order_confirmation
from .product_utils import find_product, find_variant, variant_label
from .schemas import CartLine, ClientTotals, CustomerDetails, Order, OrderItem, OrderTotals, Product
from .services import Services
from .validators import validate_image_upload

logger = logging.getLogger(__name__)

Scheduler = Callable[..., None]


@dataclass
class UploadedImage:
    data: bytes
    filename: str
    content_type: Optional[str]


@dataclass
class OrderResult:
    order: Order
    totals: OrderTotals
    stock_updated: bool


def _run_now(func: Callable, *args: Any) -> None:
    func(*args)


def parse_json_field(raw: Optional[str], field: str) -> Any:
    """Decode a JSON-encoded multipart field."""
    if raw is None or not str(raw).strip():
        raise BadRequestError(f"{field} is missing from request")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"❌ Invalid JSON in {field}: {e}")
        raise BadRequestError(f"Invalid {field} format: {e.msg}")


def parse_model(model: Type[BaseModel], data: Any, label: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "invalid").replace("Value error, ", "")
        raise BadRequestError(f"Invalid {label}: {location} {message}".replace("  ", " ").strip())


def parse_cart(items: Any) -> List[CartLine]:
    if not isinstance(items, list) or not items:
        raise BadRequestError("Cart is empty or invalid")
    lines = []
    for item in items:
        try:
            lines.append(CartLine.model_validate(item))
        except ValidationError:
            raise BadRequestError(f"Bad cart line: {json.dumps(item)}")
    return lines


def resolve_cart(products: List[Product], lines: List[CartLine]) -> List[PricedLine]:
    """
    Match every line against the catalog, price it with the catalog price and
    check stock. Lines that land on the same variant are summed first.
    Nothing is mutated.
    """
    resolved: Dict[Tuple[int, int], PricedLine] = {}

    for line in lines:
        product = find_product(products, line.product_id)
        found = find_variant(product, line.variant_number, line.color) if product else None
        if not product or not found:
            selector = line.color if line.color else line.variant_number
            logger.error(f"❌ Variant not found: id={line.product_id}, variant={selector}")
            raise BadRequestError(f"Variant not found for id={line.product_id}, variant={selector}")

        index, variant = found
        key = (product.id, index)
        if key in resolved:
            resolved[key].quantity += line.quantity
            continue

        resolved[key] = PricedLine(
            product_id=product.id,
            product_name=product.name,
            variant_index=index,
            variant_label=variant_label(variant, index),
            variant_number=variant.variant_number,
            color=variant.color,
            price=float(product.price),
            quantity=line.quantity,
        )

    for priced in resolved.values():
        product = find_product(products, priced.product_id)
        have = product.variants[priced.variant_index].stock
        if priced.quantity > have:
            logger.error(
                f"❌ Insufficient stock: id={priced.product_id}, variant={priced.variant_label}, "
                f"have={have}, need={priced.quantity}"
            )
            raise InsufficientStockError(
                f"Insufficient stock for {priced.product_name} ({priced.variant_label}). "
                f"Have {have}, need {priced.quantity}"
            )

    return list(resolved.values())


def apply_stock_decrement(products: List[Product], priced: List[PricedLine]) -> List[Product]:
    """Copies of the touched products with stock reduced; the input list is left alone."""
    changed: Dict[int, Product] = {}
    for line in priced:
        if line.product_id not in changed:
            changed[line.product_id] = find_product(products, line.product_id).model_copy(deep=True)
        variant = changed[line.product_id].variants[line.variant_index]
        variant.stock = variant.stock - line.quantity
    return list(changed.values())


def build_order_items(priced: List[PricedLine]) -> List[OrderItem]:
    return [
        OrderItem(
            product_id=line.product_id,
            product_name=line.product_name,
            variant_label=line.variant_label,
            variant_number=line.variant_number,
            color=line.color,
            price=line.price,
            quantity=line.quantity,
            line_total=line.line_total,
        )
        for line in priced
    ]


def place_order(
    services: Services,
    cart_items: Optional[str],
    customer_details: Optional[str],
    totals_from_client: Optional[str],
    screenshot: Optional[UploadedImage],
    schedule: Scheduler = _run_now,
) -> OrderResult:
    """
    Create an order from the multipart checkout form.

    Validation (cart, customer, totals, screenshot, catalog match, stock) runs
    before anything is written. After the order row exists, a failure to write
    its items deletes the row again. Stock is written last; if that write fails
    the order stands and ``stock_updated`` is False. Email is handed to
    ``schedule`` and never affects the result.
    """
    settings = services.settings
    start_time = time.time()

    lines = parse_cart(parse_json_field(cart_items, "cartItems"))
    customer: CustomerDetails = parse_model(
        CustomerDetails, parse_json_field(customer_details, "customerDetails"), "customerDetails"
    )
    client_totals: ClientTotals = parse_model(
        ClientTotals, parse_json_field(totals_from_client, "totalsFromClient"), "totalsFromClient"
    )
    if screenshot is None:
        raise BadRequestError("Payment screenshot is required")
    validate_image_upload(screenshot.data, screenshot.content_type, settings.max_upload_bytes, "Payment screenshot")

    snapshot = services.products.load()
    priced = resolve_cart(snapshot.products, lines)

    totals = calculate_cart_totals(priced, settings.shipping_cost, settings.free_shipping_threshold)
    if not totals_match(client_totals.total, totals.total, settings.total_tolerance):
        logger.warning(f"⚠️ [ORDERS] Total mismatch: client={client_totals.total}, server={totals.total}")
        raise TotalMismatchError(
            f"Total mismatch: expected ₹{totals.total:.2f}, received ₹{client_totals.total:.2f}. "
            "Please refresh your bag and try again."
        )

    proof = services.images.upload(
        screenshot.data,
        screenshot.filename or "payment.png",
        screenshot.content_type or "image/png",
        folder=settings.cloudinary_payments_folder,
    )

    order = Order(
        customer_name=customer.name,
        email=customer.email,
        phone=customer.phone,
        alternate_phone=customer.alternate_phone,
        address=customer.address,
        landmark=customer.landmark,
        pincode=customer.pincode,
        subtotal=totals.subtotal,
        shipping=totals.shipping,
        total=totals.total,
        payment_screenshot_url=proof.url,
        payment_screenshot_id=proof.public_id,
        items=build_order_items(priced),
    )

    try:
        order_id = services.orders.create_order(order)
    except Exception as e:
        logger.error(f"❌ [ORDERS] Order insert failed: {type(e).__name__}: {e}")
        delete_images(services.images, [proof.public_id])
        if isinstance(e, StorefrontError):
            raise
        raise StorefrontError("Failed to create order") from e

    try:
        services.orders.add_items(order_id, order.items)
    except Exception as e:
        logger.error(f"❌ [ORDERS] Items insert failed for order #{order_id}, removing order: {type(e).__name__}: {e}")
        try:
            services.orders.delete_order(order_id)
        except Exception as rollback_error:
            logger.error(f"❌ [ORDERS] Compensating delete of order #{order_id} failed: {rollback_error}")
        delete_images(services.images, [proof.public_id])
        if isinstance(e, StorefrontError):
            raise
        raise StorefrontError("Failed to save order items") from e

    order.id = order_id

    stock_updated = True
    try:
        changed = apply_stock_decrement(snapshot.products, priced)
        services.products.save_stock(snapshot, changed)
    except Exception as e:
        # The order is already committed; stock is left as it was
        stock_updated = False
        logger.error(
            f"❌ [ORDERS] Stock decrement failed for order #{order_id} "
            f"({services.products.name}): {type(e).__name__}: {e}"
        )

    schedule(send_order_confirmation, services.mailer, order)

    logger.info(
        f"🎊 [ORDERS] Order #{order_id} created - "
        f"Customer: {customer.name}, Items: {len(priced)}, "
        f"Total: ₹{totals.total:.2f}, Stock updated: {stock_updated}, "
        f"Time: {time.time() - start_time:.2f}s"
    )

    return OrderResult(order=order, totals=totals, stock_updated=stock_updated)


def checkout_stock(services: Services, cart: Any) -> List[Product]:
    """
    Stock-only checkout: validate the cart and write decremented stock.

    Returns:
        The full catalog after the decrement, for the client cache.
    """
    lines = parse_cart(cart)
    snapshot = services.products.load()
    priced = resolve_cart(snapshot.products, lines)
    changed = apply_stock_decrement(snapshot.products, priced)
    services.products.save_stock(snapshot, changed)

    by_id = {p.id: p for p in changed}
    updated = [by_id.get(p.id, p) for p in snapshot.products]
    logger.info(f"✅ [CHECKOUT] Stock decremented for {len(priced)} line(s) on {services.products.name}")
    return updated
