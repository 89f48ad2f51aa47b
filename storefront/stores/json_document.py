"""Product stores backed by a single JSON array document (GitHub file or local file)."""
import hashlib
import json
import logging
import os
from abc import abstractmethod
from typing import Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from integrations.github import GitHubContentsClient

from ..errors import BadRequestError, ConflictError, NotFoundError, StorefrontError
from ..product_utils import find_product, next_product_id
from ..schemas import Product
from .base import CatalogSnapshot, ProductStore, upstream_error

logger = logging.getLogger(__name__)


def parse_products(text: str) -> List[Product]:
    if not text.strip():
        return []
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"❌ products.json parse error: {e}")
        raise StorefrontError("products.json is not valid JSON")
    if not isinstance(raw, list):
        raise StorefrontError("products.json must contain a JSON array")
    try:
        return [Product.model_validate(item) for item in raw]
    except ValidationError as e:
        logger.error(f"❌ products.json has an invalid product: {e}")
        raise StorefrontError("products.json contains an invalid product")


def dump_products(products: List[Product]) -> str:
    return json.dumps([p.to_json() for p in products], indent=2, ensure_ascii=False)


class JsonDocumentProductStore(ProductStore):
    """
    Read-modify-write over one document. Every mutation re-reads the document,
    edits the list in memory and writes the whole list back.
    """

    @abstractmethod
    def _read(self) -> Tuple[str, Optional[str]]:
        """Return (document text, revision)."""

    @abstractmethod
    def _write(self, text: str, revision: Optional[str], message: str) -> Optional[str]:
        """Write the document and return the new revision."""

    def load(self) -> CatalogSnapshot:
        text, revision = self._read()
        return CatalogSnapshot(products=parse_products(text), revision=revision)

    def create_product(self, product: Product) -> Product:
        snapshot = self.load()
        stored = product.model_copy(update={"id": next_product_id(snapshot.products)})
        products = snapshot.products + [stored]
        self._write(dump_products(products), snapshot.revision, f"feat(admin): add product #{stored.id}")
        logger.info(f"✅ [{self.name.upper()}] Product #{stored.id} added ({len(products)} products)")
        return stored

    def delete_product(self, product_id: int) -> Product:
        snapshot = self.load()
        product = find_product(snapshot.products, product_id)
        if not product:
            raise NotFoundError("Product not found")
        remaining = [p for p in snapshot.products if p.id != product_id]
        self._write(dump_products(remaining), snapshot.revision, f"chore(admin): delete product #{product_id}")
        logger.info(f"🗑️ [{self.name.upper()}] Product #{product_id} deleted")
        return product

    def save_stock(self, snapshot: CatalogSnapshot, changed: List[Product]) -> Optional[str]:
        # Only the first product with a given id is replaced, the one find_product resolved
        pending: Dict[int, Product] = {p.id: p for p in changed}
        products = [pending.pop(p.id, p) for p in snapshot.products]
        return self._write(dump_products(products), snapshot.revision, "chore: decrement stock on checkout")

    def replace_all(self, products: List[Product], revision: Optional[str]) -> Optional[str]:
        if not revision:
            raise BadRequestError("sha is required to save products.json")
        return self._write(dump_products(products), revision, "chore(admin): update products.json")


class GitHubProductStore(JsonDocumentProductStore):
    """Catalog file in a GitHub repository; the blob sha is the revision token."""

    name = "github"

    def __init__(self, client: GitHubContentsClient, path: str = "data/products.json") -> None:
        self.client = client
        self.path = path

    def _read(self) -> Tuple[str, Optional[str]]:
        try:
            result = self.client.get_file(self.path)
        except httpx.HTTPError as e:
            logger.error(f"❌ [GITHUB] READ failed for {self.path}: {e}")
            raise upstream_error("GitHub", "READ", e)
        return result["text"], result["sha"]

    def _write(self, text: str, revision: Optional[str], message: str) -> Optional[str]:
        try:
            result = self.client.put_file(self.path, text, revision, message)
        except httpx.HTTPError as e:
            logger.error(f"❌ [GITHUB] WRITE failed for {self.path}: {e}")
            raise upstream_error("GitHub", "WRITE", e)
        logger.info(f"📝 [GITHUB] {message} (commit {result.get('commit')})")
        return result.get("sha")

    def close(self) -> None:
        self.client.close()


class LocalJsonProductStore(JsonDocumentProductStore):
    """
    Catalog file on local disk. The revision is the SHA-256 of the file bytes;
    only the admin ``replace_all`` checks it.
    """

    name = "local"

    def __init__(self, path: str) -> None:
        self.path = path

    @staticmethod
    def _digest(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def _read(self) -> Tuple[str, Optional[str]]:
        try:
            with open(self.path, "rb") as f:
                data = f.read()
        except FileNotFoundError:
            logger.warning(f"⚠️ {self.path} not found, starting with an empty catalog")
            data = b""
        return data.decode("utf-8"), self._digest(data)

    def _write(self, text: str, revision: Optional[str], message: str) -> Optional[str]:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        data = text.encode("utf-8")
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, self.path)
        logger.info(f"📝 [LOCAL] {message}")
        return self._digest(data)

    def replace_all(self, products: List[Product], revision: Optional[str]) -> Optional[str]:
        _, current = self._read()
        if revision and revision != current:
            raise ConflictError("products.json changed since it was read; reload and retry")
        return super().replace_all(products, revision)
