from dataclasses import dataclass
from typing import Iterable, Optional

from .schemas import OrderTotals

SHIPPING_COST = 60
FREE_SHIPPING_THRESHOLD = 999
TOTAL_TOLERANCE = 1


@dataclass
class PricedLine:
    """A cart line after the server resolved its product and variant."""

    product_id: int
    product_name: str
    variant_index: int
    variant_label: str
    variant_number: Optional[int]
    color: Optional[str]
    price: float
    quantity: int

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)


def calculate_cart_totals(
    lines: Iterable[PricedLine],
    shipping_cost: float = SHIPPING_COST,
    free_shipping_threshold: float = FREE_SHIPPING_THRESHOLD,
) -> OrderTotals:
    """
    Subtotal from server prices; flat shipping below the free-shipping threshold.
    An empty cart costs nothing, shipping included.
    """
    lines = list(lines)
    subtotal = round(sum(line.price * line.quantity for line in lines), 2)
    shipping = shipping_cost if lines and subtotal < free_shipping_threshold else 0
    return OrderTotals(subtotal=subtotal, shipping=shipping, total=round(subtotal + shipping, 2))


def totals_match(client_total: float, server_total: float, tolerance: float = TOTAL_TOLERANCE) -> bool:
    return abs(float(client_total) - float(server_total)) <= tolerance
