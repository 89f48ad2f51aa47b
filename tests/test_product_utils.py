from conftest import catalog_products

from storefront.product_utils import (
    filter_products,
    find_product,
    find_variant,
    has_displayable_variants,
    next_product_id,
    paginate,
    sort_products,
    variant_label,
)
from storefront.schemas import Product, Variant


def test_find_product():
    products = catalog_products()
    assert find_product(products, 2).name == "Pearl Necklace"
    assert find_product(products, 99) is None


def test_find_variant_by_number():
    ring = find_product(catalog_products(), 1)
    index, variant = find_variant(ring, variant_number=2)
    assert index == 1
    assert variant.color == "Silver"


def test_find_variant_by_color_is_case_insensitive():
    ring = find_product(catalog_products(), 1)
    index, variant = find_variant(ring, color=" silver ")
    assert index == 1
    assert variant.stock == 1


def test_find_variant_falls_back_to_position_for_unnumbered_variants():
    necklace = find_product(catalog_products(), 2)
    index, variant = find_variant(necklace, variant_number=1)
    assert index == 0
    assert variant.color == "White"
    assert find_variant(necklace, variant_number=2) is None


def test_find_variant_does_not_use_position_when_numbers_exist():
    product = Product(
        id=7,
        name="Stack Ring",
        price=100,
        variants=[Variant(color="Gold", variant_number=5), Variant(color="Rose", variant_number=6)],
    )
    assert find_variant(product, variant_number=1) is None
    assert find_variant(product, variant_number=6)[0] == 1


def test_find_variant_without_selector():
    products = catalog_products()
    assert find_variant(find_product(products, 2))[0] == 0
    assert find_variant(find_product(products, 1)) is None


def test_find_variant_unknown_color():
    ring = find_product(catalog_products(), 1)
    assert find_variant(ring, color="Platinum") is None


def test_variant_label():
    assert variant_label(Variant(color="Gold")) == "Gold"
    assert variant_label(Variant(variant_number=3)) == "Variant #3"
    assert variant_label(Variant(), index=1) == "Variant #2"


def test_displayable_variants():
    products = catalog_products()
    assert has_displayable_variants(find_product(products, 1))
    assert not has_displayable_variants(find_product(products, 3))


def test_next_product_id():
    assert next_product_id(catalog_products()) == 4
    assert next_product_id([]) == 1


def test_filter_products():
    products = catalog_products()
    assert [p.id for p in filter_products(products, category="rings")] == [1]
    assert [p.id for p in filter_products(products, trending=True)] == [2, 3]
    assert [p.id for p in filter_products(products, best_seller=True)] == [1, 3]
    assert [p.id for p in filter_products(products, search="PEARL")] == [2]
    assert [p.id for p in filter_products(products, search="hoops")] == [3]
    assert [p.id for p in filter_products(products, min_price=400, max_price=1000)] == [1]
    assert [p.id for p in filter_products(products, displayable_only=True)] == [1, 2]


def test_sort_products():
    products = catalog_products()
    assert [p.id for p in sort_products(products)] == [3, 2, 1]
    assert [p.id for p in sort_products(products, "priceAsc")] == [3, 1, 2]
    assert [p.id for p in sort_products(products, "priceDesc")] == [2, 1, 3]
    assert [p.id for p in sort_products(products, "trending")] == [3, 2, 1]
    assert [p.id for p in sort_products(products, "bestseller")] == [3, 1, 2]


def test_paginate():
    products = catalog_products()
    page, total_pages = paginate(products, page=2, page_size=2)
    assert [p.id for p in page] == [3]
    assert total_pages == 2
    page, _ = paginate(products, page=3, page_size=2)
    assert page == []
