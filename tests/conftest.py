import json

import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.main import create_app
from storefront.media import LocalMediaHost
from storefront.notifications import Mailer
from storefront.schemas import Product
from storefront.services import Services
from storefront.stores.json_document import LocalJsonProductStore
from storefront.stores.sqlite_orders import SQLiteOrderStore

ADMIN_KEY = "test-admin-key"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

CUSTOMER = {
    "name": "Asha Rao",
    "email": "asha@example.com",
    "phone": "9876543210",
    "address": "12 MG Road, Bengaluru",
    "landmark": "Near the metro station",
    "pincode": "560001",
}

CATALOG = [
    {
        "id": 1,
        "name": "Rose Ring",
        "price": 500,
        "category": "Rings",
        "description": "Rose gold plated ring",
        "trending": False,
        "bestSeller": True,
        "variants": [
            {"color": "Gold", "variantNumber": 1, "images": ["https://img.test/ring-gold.jpg"], "stock": 5},
            {"color": "Silver", "variantNumber": 2, "images": ["https://img.test/ring-silver.jpg"], "stock": 1},
        ],
    },
    {
        "id": 2,
        "name": "Pearl Necklace",
        "price": 1200,
        "category": "Necklaces",
        "description": "Freshwater pearls",
        "trending": True,
        "bestSeller": False,
        "variants": [
            {"color": "White", "images": ["https://img.test/pearl.jpg"], "stock": 2},
        ],
    },
    {
        "id": 3,
        "name": "Hoop Earrings",
        "price": 300,
        "category": "Earrings",
        "description": "Classic hoops",
        "trending": True,
        "bestSeller": True,
        "variants": [
            {"color": "Gold", "images": [], "stock": 0},
        ],
    },
]


class RecordingMailer(Mailer):
    name = "recording"

    def __init__(self):
        self.sent = []

    def send_order_confirmation(self, order):
        self.sent.append(order)


def catalog_products():
    return [Product.model_validate(item) for item in CATALOG]


def order_form(cart, total, customer=None):
    return {
        "cartItems": json.dumps(cart),
        "customerDetails": json.dumps(customer or CUSTOMER),
        "totalsFromClient": json.dumps({"total": total}),
    }


def screenshot_file():
    return {"screenshot": ("payment.png", PNG_BYTES, "image/png")}


@pytest.fixture
def products_file(tmp_path):
    path = tmp_path / "data" / "products.json"
    path.parent.mkdir()
    path.write_text(json.dumps(CATALOG, indent=2))
    return path


@pytest.fixture
def settings(tmp_path):
    return Settings(
        local_products_file=str(tmp_path / "data" / "products.json"),
        orders_db_path=str(tmp_path / "orders.db"),
        media_dir=str(tmp_path / "media"),
        admin_key=ADMIN_KEY,
    )


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def services(settings, products_file, mailer):
    return Services(
        settings=settings,
        products=LocalJsonProductStore(str(products_file)),
        orders=SQLiteOrderStore(settings.orders_db_path),
        images=LocalMediaHost(settings.media_dir),
        mailer=mailer,
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services=services))


@pytest.fixture
def admin_headers():
    return {"x-admin-key": ADMIN_KEY}


def read_catalog(path):
    return {item["id"]: item for item in json.loads(path.read_text())}
