"""Supabase (PostgREST) product and order stores."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from integrations.supabase import SupabaseClient

from ..errors import NotFoundError
from ..schemas import Order, OrderItem, Product
from .base import CatalogSnapshot, OrderStore, ProductStore, upstream_error

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def product_from_row(row: Dict[str, Any]) -> Product:
    return Product.model_validate({
        "id": row["id"],
        "name": row.get("name") or "",
        "price": row.get("price") or 0,
        "category": row.get("category") or "",
        "description": row.get("description") or "",
        "trending": bool(row.get("trending")),
        "bestSeller": bool(row.get("best_seller")),
        "cloudinaryId": row.get("cloudinary_id"),
        "variants": row.get("variants") or [],
    })


def product_to_row(product: Product) -> Dict[str, Any]:
    return {
        "name": product.name,
        "price": product.price,
        "category": product.category,
        "description": product.description,
        "trending": product.trending,
        "best_seller": product.best_seller,
        "cloudinary_id": product.cloudinary_id,
        "variants": [v.model_dump(by_alias=True, exclude_none=True) for v in product.variants],
    }


class SupabaseProductStore(ProductStore):
    """
    One row per product, variants in a JSON column. There is no revision
    token: stock writes patch each changed row independently.
    """

    name = "supabase"

    def __init__(self, client: SupabaseClient, table: str = "products") -> None:
        self.client = client
        self.table = table

    def load(self) -> CatalogSnapshot:
        try:
            rows = self.client.select(self.table, order="id.asc")
        except httpx.HTTPError as e:
            logger.error(f"❌ [SUPABASE] products read failed: {e}")
            raise upstream_error("Supabase", "products read", e)
        return CatalogSnapshot(products=[product_from_row(row) for row in rows])

    def get_product(self, product_id: int) -> Product:
        try:
            rows = self.client.select(self.table, filters={"id": f"eq.{product_id}"})
        except httpx.HTTPError as e:
            raise upstream_error("Supabase", "product read", e)
        if not rows:
            raise NotFoundError("Product not found")
        return product_from_row(rows[0])

    def create_product(self, product: Product) -> Product:
        row = product_to_row(product)
        row["created_at"] = _now()
        try:
            stored = self.client.insert(self.table, row)
        except httpx.HTTPError as e:
            logger.error(f"❌ [SUPABASE] product insert failed: {e}")
            raise upstream_error("Supabase", "product insert", e)
        created = product_from_row(stored[0])
        logger.info(f"✅ [SUPABASE] Product #{created.id} added")
        return created

    def delete_product(self, product_id: int) -> Product:
        try:
            rows = self.client.delete(self.table, {"id": f"eq.{product_id}"})
        except httpx.HTTPError as e:
            raise upstream_error("Supabase", "product delete", e)
        if not rows:
            raise NotFoundError("Product not found")
        return product_from_row(rows[0])

    def save_stock(self, snapshot: CatalogSnapshot, changed: List[Product]) -> Optional[str]:
        for product in changed:
            variants = [v.model_dump(by_alias=True, exclude_none=True) for v in product.variants]
            try:
                self.client.update(
                    self.table,
                    {"variants": variants, "updated_at": _now()},
                    {"id": f"eq.{product.id}"},
                )
            except httpx.HTTPError as e:
                logger.error(f"❌ [SUPABASE] stock update failed for product #{product.id}: {e}")
                raise upstream_error("Supabase", "stock update", e)
        return None

    def replace_all(self, products: List[Product], revision: Optional[str]) -> Optional[str]:
        rows = []
        for product in products:
            row = product_to_row(product)
            row["id"] = product.id
            row["updated_at"] = _now()
            rows.append(row)
        try:
            if rows:
                self.client.upsert(self.table, rows)
                keep = ",".join(str(p.id) for p in products)
                self.client.delete(self.table, {"id": f"not.in.({keep})"})
            else:
                self.client.delete(self.table, {"id": "gte.0"})
        except httpx.HTTPError as e:
            raise upstream_error("Supabase", "catalog save", e)
        return None

    def close(self) -> None:
        self.client.close()


def _order_from_row(row: Dict[str, Any], item_rows: Optional[List[Dict[str, Any]]] = None) -> Order:
    data = {k: v for k, v in row.items() if k in Order.model_fields and k != "items"}
    data["items"] = [OrderItem.model_validate(item) for item in (item_rows or [])]
    return Order.model_validate(data)


class SupabaseOrderStore(OrderStore):
    name = "supabase"

    def __init__(
        self,
        client: SupabaseClient,
        orders_table: str = "orders",
        items_table: str = "order_items",
    ) -> None:
        self.client = client
        self.orders_table = orders_table
        self.items_table = items_table

    def create_order(self, order: Order) -> int:
        row = order.model_dump(exclude={"id", "items", "created_at"})
        row["created_at"] = _now()
        try:
            stored = self.client.insert(self.orders_table, row)
        except httpx.HTTPError as e:
            logger.error(f"❌ [SUPABASE] order insert failed: {e}")
            raise upstream_error("Supabase", "order insert", e)
        return int(stored[0]["id"])

    def add_items(self, order_id: int, items: List[OrderItem]) -> None:
        rows = [dict(item.model_dump(), order_id=order_id) for item in items]
        try:
            self.client.insert(self.items_table, rows)
        except httpx.HTTPError as e:
            logger.error(f"❌ [SUPABASE] order_items insert failed for order #{order_id}: {e}")
            raise upstream_error("Supabase", "order_items insert", e)

    def delete_order(self, order_id: int) -> None:
        try:
            self.client.delete(self.items_table, {"order_id": f"eq.{order_id}"})
            self.client.delete(self.orders_table, {"id": f"eq.{order_id}"})
        except httpx.HTTPError as e:
            raise upstream_error("Supabase", "order delete", e)

    def get_order(self, order_id: int) -> Optional[Order]:
        try:
            rows = self.client.select(self.orders_table, filters={"id": f"eq.{order_id}"})
            if not rows:
                return None
            items = self.client.select(self.items_table, filters={"order_id": f"eq.{order_id}"}, order="id.asc")
        except httpx.HTTPError as e:
            raise upstream_error("Supabase", "order read", e)
        return _order_from_row(rows[0], items)

    def list_orders(self, status: Optional[str] = None, limit: int = 50) -> List[Order]:
        filters = {"status": f"eq.{status}"} if status else None
        try:
            rows = self.client.select(self.orders_table, filters=filters, order="created_at.desc", limit=limit)
        except httpx.HTTPError as e:
            raise upstream_error("Supabase", "orders read", e)
        return [_order_from_row(row) for row in rows]

    def update_status(self, order_id: int, status: str) -> Order:
        try:
            rows = self.client.update(
                self.orders_table,
                {"status": status, "updated_at": _now()},
                {"id": f"eq.{order_id}"},
            )
        except httpx.HTTPError as e:
            raise upstream_error("Supabase", "order update", e)
        if not rows:
            raise NotFoundError("Order not found")
        return self.get_order(order_id)

    def close(self) -> None:
        self.client.close()
