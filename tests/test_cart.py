from storefront.cart import PricedLine, calculate_cart_totals, totals_match


def line(price, quantity):
    return PricedLine(
        product_id=1,
        product_name="Rose Ring",
        variant_index=0,
        variant_label="Gold",
        variant_number=1,
        color="Gold",
        price=price,
        quantity=quantity,
    )


def test_empty_cart_has_no_shipping():
    totals = calculate_cart_totals([])
    assert totals.subtotal == 0
    assert totals.shipping == 0
    assert totals.total == 0


def test_shipping_charged_below_threshold():
    totals = calculate_cart_totals([line(500, 1)])
    assert totals.subtotal == 500
    assert totals.shipping == 60
    assert totals.total == 560


def test_free_shipping_at_threshold():
    totals = calculate_cart_totals([line(333, 3)])
    assert totals.subtotal == 999
    assert totals.shipping == 0
    assert totals.total == 999


def test_free_shipping_above_threshold():
    totals = calculate_cart_totals([line(500, 2)])
    assert totals.total == 1000
    assert totals.shipping == 0


def test_custom_shipping_rules():
    totals = calculate_cart_totals([line(100, 1)], shipping_cost=40, free_shipping_threshold=50)
    assert totals.shipping == 0
    totals = calculate_cart_totals([line(100, 1)], shipping_cost=40, free_shipping_threshold=500)
    assert totals.total == 140


def test_line_total_rounds_to_paise():
    assert line(99.99, 3).line_total == 299.97


def test_totals_match_within_tolerance():
    assert totals_match(1000, 1000)
    assert totals_match(1000.5, 1000)
    assert totals_match(999, 1000)
    assert not totals_match(998.5, 1000)
    assert not totals_match(1060, 1000)
