import json

import pytest

from conftest import CUSTOMER, PNG_BYTES, catalog_products, read_catalog

from storefront.errors import BadRequestError, InsufficientStockError, StorefrontError, TotalMismatchError
from storefront.orders import (
    UploadedImage,
    apply_stock_decrement,
    checkout_stock,
    parse_cart,
    parse_json_field,
    place_order,
    resolve_cart,
)
from storefront.schemas import CartLine


def lines(*items):
    return [CartLine.model_validate(item) for item in items]


def screenshot():
    return UploadedImage(data=PNG_BYTES, filename="payment.png", content_type="image/png")


def test_parse_json_field():
    assert parse_json_field('{"a": 1}', "customerDetails") == {"a": 1}
    with pytest.raises(BadRequestError, match="customerDetails is missing"):
        parse_json_field(None, "customerDetails")
    with pytest.raises(BadRequestError, match="Invalid cartItems format"):
        parse_json_field("[{", "cartItems")


def test_parse_cart_rejects_empty_and_bad_lines():
    with pytest.raises(BadRequestError, match="Cart is empty"):
        parse_cart([])
    with pytest.raises(BadRequestError, match="Cart is empty"):
        parse_cart({"id": 1})
    with pytest.raises(BadRequestError, match="Bad cart line"):
        parse_cart([{"id": 1, "color": "Gold", "qty": -1}])


def test_resolve_cart_uses_server_price():
    priced = resolve_cart(catalog_products(), lines({"id": 1, "variantNumber": 1, "quantity": 2, "price": 1}))
    assert len(priced) == 1
    assert priced[0].price == 500
    assert priced[0].line_total == 1000
    assert priced[0].variant_label == "Gold"


def test_resolve_cart_sums_lines_for_the_same_variant():
    cart = lines(
        {"id": 1, "variantNumber": 1, "quantity": 3},
        {"id": 1, "color": "gold", "quantity": 3},
    )
    with pytest.raises(InsufficientStockError, match="Have 5, need 6"):
        resolve_cart(catalog_products(), cart)

    priced = resolve_cart(catalog_products(), cart[:1] + lines({"id": 1, "color": "GOLD", "quantity": 2}))
    assert [(p.product_id, p.quantity) for p in priced] == [(1, 5)]


def test_resolve_cart_unknown_product_or_variant():
    with pytest.raises(BadRequestError, match="Variant not found for id=42"):
        resolve_cart(catalog_products(), lines({"id": 42, "color": "Gold", "qty": 1}))
    with pytest.raises(BadRequestError, match="variant=Platinum"):
        resolve_cart(catalog_products(), lines({"id": 1, "color": "Platinum", "qty": 1}))


def test_insufficient_stock_message():
    with pytest.raises(InsufficientStockError) as excinfo:
        resolve_cart(catalog_products(), lines({"id": 1, "color": "Silver", "qty": 2}))
    assert excinfo.value.status_code == 409
    assert excinfo.value.message == "Insufficient stock for Rose Ring (Silver). Have 1, need 2"


def test_apply_stock_decrement_copies_products():
    products = catalog_products()
    priced = resolve_cart(products, lines(
        {"id": 1, "color": "Gold", "qty": 2},
        {"id": 1, "color": "Silver", "qty": 1},
        {"id": 2, "qty": 1},
    ))
    changed = apply_stock_decrement(products, priced)

    by_id = {p.id: p for p in changed}
    assert sorted(by_id) == [1, 2]
    assert [v.stock for v in by_id[1].variants] == [3, 0]
    assert by_id[2].variants[0].stock == 1
    assert [v.stock for v in products[0].variants] == [5, 1]


def test_place_order_creates_order_and_decrements_stock(services, products_file, mailer):
    scheduled = []
    result = place_order(
        services,
        cart_items=json.dumps([{"productId": 1, "variantNumber": 1, "quantity": 2}]),
        customer_details=json.dumps(CUSTOMER),
        totals_from_client=json.dumps({"subtotal": 1000, "shipping": 0, "total": 1000}),
        screenshot=screenshot(),
        schedule=lambda func, *args: scheduled.append((func, args)),
    )

    assert result.stock_updated is True
    assert result.order.id is not None
    assert result.totals.total == 1000
    assert result.totals.shipping == 0
    assert read_catalog(products_file)[1]["variants"][0]["stock"] == 3

    stored = services.orders.get_order(result.order.id)
    assert stored.status == "pending_verification"
    assert stored.payment_screenshot_id == result.order.payment_screenshot_id
    assert [(i.product_id, i.quantity, i.line_total) for i in stored.items] == [(1, 2, 1000)]

    assert len(scheduled) == 1
    assert mailer.sent == []
    func, args = scheduled[0]
    func(*args)
    assert mailer.sent[0].id == result.order.id


def test_total_mismatch_is_rejected_before_any_write(services, products_file, tmp_path):
    with pytest.raises(TotalMismatchError):
        place_order(
            services,
            cart_items=json.dumps([{"id": 1, "color": "Gold", "qty": 1}]),
            customer_details=json.dumps(CUSTOMER),
            totals_from_client=json.dumps({"total": 500}),
            screenshot=screenshot(),
        )
    assert services.orders.list_orders() == []
    assert read_catalog(products_file)[1]["variants"][0]["stock"] == 5
    assert not (tmp_path / "media").exists() or not any((tmp_path / "media").rglob("*.png"))


def test_missing_screenshot(services):
    with pytest.raises(BadRequestError, match="Payment screenshot is required"):
        place_order(
            services,
            cart_items=json.dumps([{"id": 1, "color": "Gold", "qty": 1}]),
            customer_details=json.dumps(CUSTOMER),
            totals_from_client=json.dumps({"total": 560}),
            screenshot=None,
        )


def test_invalid_customer_details(services):
    with pytest.raises(BadRequestError, match="pincode"):
        place_order(
            services,
            cart_items=json.dumps([{"id": 1, "color": "Gold", "qty": 1}]),
            customer_details=json.dumps(dict(CUSTOMER, pincode="12")),
            totals_from_client=json.dumps({"total": 560}),
            screenshot=screenshot(),
        )


def test_items_failure_removes_order_and_proof(services, products_file, tmp_path):
    class FailingItems:
        def __init__(self, inner):
            self.inner = inner
            self.name = inner.name

        def __getattr__(self, attr):
            return getattr(self.inner, attr)

        def add_items(self, order_id, items):
            raise RuntimeError("disk full")

    services.orders = FailingItems(services.orders)

    with pytest.raises(StorefrontError, match="Failed to save order items"):
        place_order(
            services,
            cart_items=json.dumps([{"id": 1, "color": "Gold", "qty": 1}]),
            customer_details=json.dumps(CUSTOMER),
            totals_from_client=json.dumps({"total": 560}),
            screenshot=screenshot(),
        )

    assert services.orders.inner.list_orders() == []
    assert read_catalog(products_file)[1]["variants"][0]["stock"] == 5
    assert list((tmp_path / "media").rglob("*.png")) == []


def test_stock_write_failure_keeps_order(services, products_file):
    def broken_save_stock(snapshot, changed):
        raise RuntimeError("write rejected")

    services.products.save_stock = broken_save_stock

    result = place_order(
        services,
        cart_items=json.dumps([{"id": 1, "color": "Gold", "qty": 1}]),
        customer_details=json.dumps(CUSTOMER),
        totals_from_client=json.dumps({"total": 560}),
        screenshot=screenshot(),
    )

    assert result.stock_updated is False
    assert services.orders.get_order(result.order.id) is not None
    assert read_catalog(products_file)[1]["variants"][0]["stock"] == 5


def test_checkout_stock(services, products_file):
    updated = checkout_stock(services, [{"id": 1, "color": "Gold", "qty": 2}, {"id": 2, "color": "White", "qty": 2}])

    assert [p.id for p in updated] == [1, 2, 3]
    stock = read_catalog(products_file)
    assert stock[1]["variants"][0]["stock"] == 3
    assert stock[1]["variants"][1]["stock"] == 1
    assert stock[2]["variants"][0]["stock"] == 0


@pytest.mark.parametrize("stock, qty", [(1, 1), (2, 1), (5, 2), (5, 5), (10, 7), (40, 39)])
def test_checkout_subtracts_quantity_from_stock(services, products_file, stock, qty):
    catalog = json.loads(products_file.read_text())
    catalog[0]["variants"][0]["stock"] = stock
    products_file.write_text(json.dumps(catalog))

    checkout_stock(services, [{"id": 1, "color": "Gold", "qty": qty}])

    saved = read_catalog(products_file)
    assert saved[1]["variants"][0]["stock"] == stock - qty
    assert saved[1]["variants"][1]["stock"] == 1
    assert saved[2]["variants"][0]["stock"] == 2


@pytest.mark.parametrize("stock, qty", [(0, 1), (1, 2), (5, 6)])
def test_checkout_rejects_quantity_above_stock(services, products_file, stock, qty):
    catalog = json.loads(products_file.read_text())
    catalog[0]["variants"][0]["stock"] = stock
    products_file.write_text(json.dumps(catalog))

    with pytest.raises(InsufficientStockError):
        checkout_stock(services, [{"id": 1, "color": "Gold", "qty": qty}])
    assert read_catalog(products_file)[1]["variants"][0]["stock"] == stock


def test_checkout_stock_leaves_catalog_alone_on_shortage(services, products_file):
    before = products_file.read_text()
    with pytest.raises(InsufficientStockError):
        checkout_stock(services, [{"id": 1, "color": "Gold", "qty": 1}, {"id": 2, "color": "White", "qty": 3}])
    assert products_file.read_text() == before
