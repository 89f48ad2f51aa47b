"""Utility functions for catalog operations."""
from typing import List, Optional, Tuple

from .schemas import Product, Variant

SORT_OPTIONS = ["recent", "priceAsc", "priceDesc", "trending", "bestseller"]


def find_product(products: List[Product], product_id: int) -> Optional[Product]:
    for product in products:
        if product.id == product_id:
            return product
    return None


def find_variant(
    product: Product,
    variant_number: Optional[int] = None,
    color: Optional[str] = None,
) -> Optional[Tuple[int, Variant]]:
    """
    Locate a variant by its selector.

    A numbered selector matches ``variantNumber`` first and falls back to the
    1-based position (older catalogs have no numbers). A colour matches
    case-insensitively. Without a selector only a single-variant product matches.

    Returns:
        (index, variant) or None
    """
    variants = product.variants

    if variant_number is not None:
        for idx, variant in enumerate(variants):
            if variant.variant_number == variant_number:
                return idx, variant
        if 1 <= variant_number <= len(variants) and variants[variant_number - 1].variant_number is None:
            return variant_number - 1, variants[variant_number - 1]
        return None

    wanted = (color or "").strip().lower()
    if wanted:
        for idx, variant in enumerate(variants):
            if (variant.color or "").strip().lower() == wanted:
                return idx, variant
        return None

    if len(variants) == 1:
        return 0, variants[0]
    return None


def variant_label(variant: Variant, index: int = 0) -> str:
    if variant.color:
        return variant.color
    number = variant.variant_number if variant.variant_number is not None else index + 1
    return f"Variant #{number}"


def has_displayable_variants(product: Product) -> bool:
    return any(variant.images for variant in product.variants)


def next_product_id(products: List[Product]) -> int:
    return max((p.id for p in products), default=0) + 1


def filter_products(
    products: List[Product],
    category: Optional[str] = None,
    trending: Optional[bool] = None,
    best_seller: Optional[bool] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    displayable_only: bool = False,
) -> List[Product]:
    result = list(products)

    if search:
        term = search.strip().lower()
        result = [
            p for p in result
            if term in p.name.lower() or term in (p.description or "").lower()
        ]

    if category:
        result = [p for p in result if p.category.lower() == category.lower()]

    if trending is not None:
        result = [p for p in result if p.trending == trending]

    if best_seller is not None:
        result = [p for p in result if p.best_seller == best_seller]

    if min_price is not None:
        result = [p for p in result if p.price >= min_price]

    if max_price is not None:
        result = [p for p in result if p.price <= max_price]

    if displayable_only:
        result = [p for p in result if has_displayable_variants(p)]

    return result


def sort_products(products: List[Product], sort: str = "recent") -> List[Product]:
    if sort == "priceAsc":
        return sorted(products, key=lambda p: p.price)
    if sort == "priceDesc":
        return sorted(products, key=lambda p: p.price, reverse=True)
    if sort == "trending":
        return sorted(products, key=lambda p: (not p.trending, -p.id))
    if sort == "bestseller":
        return sorted(products, key=lambda p: (not p.best_seller, -p.id))
    # recent: newest ids first
    return sorted(products, key=lambda p: p.id, reverse=True)


def paginate(products: List[Product], page: int = 1, page_size: int = 20) -> Tuple[List[Product], int]:
    """Returns the page slice and the total number of pages."""
    total_pages = (len(products) + page_size - 1) // page_size
    start = (page - 1) * page_size
    return products[start:start + page_size], total_pages
