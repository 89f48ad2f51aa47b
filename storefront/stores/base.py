from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import httpx

from ..errors import NotFoundError, UpstreamError
from ..product_utils import find_product
from ..schemas import Order, OrderItem, Product


def upstream_error(service: str, action: str, exc: Exception) -> UpstreamError:
    """Turn an httpx failure into an UpstreamError carrying the upstream status."""
    if isinstance(exc, httpx.HTTPStatusError):
        return UpstreamError(
            f"{service} {action} failed: {exc.response.text}",
            status_code=exc.response.status_code,
        )
    return UpstreamError(f"{service} {action} failed: {exc}")


@dataclass
class CatalogSnapshot:
    """Products as read from the backend plus the revision token of that read."""

    products: List[Product]
    revision: Optional[str] = None


class ProductStore(ABC):
    name = "abstract"

    @abstractmethod
    def load(self) -> CatalogSnapshot:
        ...

    def get_product(self, product_id: int) -> Product:
        product = find_product(self.load().products, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    @abstractmethod
    def create_product(self, product: Product) -> Product:
        """Persist a new product; the backend assigns the id."""

    @abstractmethod
    def delete_product(self, product_id: int) -> Product:
        """Remove a product and return what was removed."""

    @abstractmethod
    def save_stock(self, snapshot: CatalogSnapshot, changed: List[Product]) -> Optional[str]:
        """
        Write decremented stock for ``changed`` products.

        ``snapshot`` is the read the decrement was computed from; no lock is
        held between that read and this write.

        Returns:
            The new revision, when the backend has one.
        """

    @abstractmethod
    def replace_all(self, products: List[Product], revision: Optional[str]) -> Optional[str]:
        """Overwrite the whole catalog (admin save)."""

    def close(self) -> None:
        pass


class OrderStore(ABC):
    name = "abstract"

    @abstractmethod
    def create_order(self, order: Order) -> int:
        ...

    @abstractmethod
    def add_items(self, order_id: int, items: List[OrderItem]) -> None:
        ...

    @abstractmethod
    def delete_order(self, order_id: int) -> None:
        ...

    @abstractmethod
    def get_order(self, order_id: int) -> Optional[Order]:
        ...

    @abstractmethod
    def list_orders(self, status: Optional[str] = None, limit: int = 50) -> List[Order]:
        ...

    @abstractmethod
    def update_status(self, order_id: int, status: str) -> Order:
        ...

    def close(self) -> None:
        pass
