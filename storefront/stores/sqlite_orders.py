import logging
from typing import List, Optional

from ..db import get_connection, init_db
from ..errors import NotFoundError
from ..schemas import Order, OrderItem
from .base import OrderStore

logger = logging.getLogger(__name__)

ORDER_COLUMNS = [
    "customer_name",
    "email",
    "phone",
    "alternate_phone",
    "address",
    "landmark",
    "pincode",
    "subtotal",
    "shipping",
    "total",
    "payment_screenshot_url",
    "payment_screenshot_id",
    "status",
]

ITEM_COLUMNS = [
    "product_id",
    "product_name",
    "variant_label",
    "variant_number",
    "color",
    "price",
    "quantity",
    "line_total",
]


class SQLiteOrderStore(OrderStore):
    """Orders and order items in a local sqlite database."""

    name = "sqlite"

    def __init__(self, db_path: str = "orders.db") -> None:
        self.db_path = db_path
        init_db(db_path)

    def create_order(self, order: Order) -> int:
        conn = get_connection(self.db_path)
        cur = conn.cursor()

        data = order.model_dump()
        placeholders = ", ".join("?" for _ in ORDER_COLUMNS)
        try:
            cur.execute(
                f"INSERT INTO orders ({', '.join(ORDER_COLUMNS)}) VALUES ({placeholders})",
                [data[column] for column in ORDER_COLUMNS],
            )
            order_id = cur.lastrowid
            conn.commit()
        finally:
            conn.close()
        return order_id

    def add_items(self, order_id: int, items: List[OrderItem]) -> None:
        conn = get_connection(self.db_path)
        cur = conn.cursor()

        placeholders = ", ".join("?" for _ in ITEM_COLUMNS)
        try:
            for item in items:
                data = item.model_dump()
                cur.execute(
                    f"INSERT INTO order_items (order_id, {', '.join(ITEM_COLUMNS)}) VALUES (?, {placeholders})",
                    [order_id] + [data[column] for column in ITEM_COLUMNS],
                )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def delete_order(self, order_id: int) -> None:
        conn = get_connection(self.db_path)
        cur = conn.cursor()

        try:
            cur.execute("DELETE FROM order_items WHERE order_id = ?", [order_id])
            cur.execute("DELETE FROM orders WHERE id = ?", [order_id])
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _items(self, cur, order_id: int) -> List[OrderItem]:
        cur.execute(f"""
            SELECT {', '.join(ITEM_COLUMNS)}
            FROM order_items
            WHERE order_id = ?
            ORDER BY id ASC
        """, [order_id])
        return [OrderItem.model_validate(dict(row)) for row in cur.fetchall()]

    def get_order(self, order_id: int) -> Optional[Order]:
        conn = get_connection(self.db_path)
        cur = conn.cursor()

        cur.execute(f"""
            SELECT id, created_at, {', '.join(ORDER_COLUMNS)}
            FROM orders
            WHERE id = ?
        """, [order_id])
        row = cur.fetchone()

        if not row:
            conn.close()
            return None

        order = Order.model_validate(dict(row))
        order.items = self._items(cur, order_id)

        conn.close()
        return order

    def list_orders(self, status: Optional[str] = None, limit: int = 50) -> List[Order]:
        conn = get_connection(self.db_path)
        cur = conn.cursor()

        sql_query = f"SELECT id, created_at, {', '.join(ORDER_COLUMNS)} FROM orders WHERE 1=1"
        params: list = []
        if status:
            sql_query += " AND status = ?"
            params.append(status)
        sql_query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        cur.execute(sql_query, params)
        orders = [Order.model_validate(dict(row)) for row in cur.fetchall()]

        conn.close()
        return orders

    def update_status(self, order_id: int, status: str) -> Order:
        conn = get_connection(self.db_path)
        cur = conn.cursor()

        cur.execute(
            "UPDATE orders SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            [status, order_id],
        )
        conn.commit()
        rows_affected = cur.rowcount
        conn.close()

        if rows_affected == 0:
            raise NotFoundError("Order not found")
        logger.info(f"📋 Order #{order_id} status → {status}")
        return self.get_order(order_id)
