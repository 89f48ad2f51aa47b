# storefront/config.py
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env(*names: str, default: Optional[str] = None) -> Optional[str]:
    """First non-empty value among several accepted variable names."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


class Settings(BaseModel):
    product_backend: str = "auto"
    order_backend: str = "auto"

    github_token: Optional[str] = None
    github_owner: Optional[str] = None
    github_repo: Optional[str] = None
    github_branch: str = "main"
    products_path: str = "data/products.json"

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_products_table: str = "products"
    supabase_orders_table: str = "orders"
    supabase_order_items_table: str = "order_items"

    local_products_file: str = "data/products.json"
    orders_db_path: str = "orders.db"

    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "pinkaura-products"
    cloudinary_payments_folder: str = "pinkaura-payments"
    media_dir: str = "media"
    media_url_prefix: str = "/media"

    sendgrid_api_key: Optional[str] = None
    sendgrid_from_email: Optional[str] = None
    emailjs_service_id: Optional[str] = None
    emailjs_template_id: Optional[str] = None
    emailjs_public_key: Optional[str] = None
    emailjs_private_key: Optional[str] = None
    store_owner_email: Optional[str] = None

    admin_key: Optional[str] = None
    allow_origins: List[str] = ["*"]

    shipping_cost: float = 60
    free_shipping_threshold: float = 999
    total_tolerance: float = 1
    max_upload_bytes: int = 5 * 1024 * 1024

    log_level: str = "INFO"
    ephemeral_filesystem: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        origins = [o.strip() for o in (os.getenv("ALLOW_ORIGIN") or "*").split(",") if o.strip()]
        return cls(
            product_backend=(os.getenv("PRODUCT_BACKEND") or "auto").lower(),
            order_backend=(os.getenv("ORDER_BACKEND") or "auto").lower(),
            github_token=_env("GITHUB_TOKEN", "GH_TOKEN"),
            github_owner=_env("GH_OWNER", "GITHUB_OWNER"),
            github_repo=_env("GH_REPO", "GITHUB_REPO"),
            github_branch=_env("GH_BRANCH", "GITHUB_BRANCH", default="main"),
            products_path=_env("PRODUCTS_PATH", "GH_FILE_PATH", default="data/products.json"),
            supabase_url=_env("SUPABASE_URL"),
            supabase_key=_env("SUPABASE_SERVICE_KEY", "SUPABASE_KEY"),
            supabase_products_table=_env("SUPABASE_PRODUCTS_TABLE", default="products"),
            supabase_orders_table=_env("SUPABASE_ORDERS_TABLE", default="orders"),
            supabase_order_items_table=_env("SUPABASE_ORDER_ITEMS_TABLE", default="order_items"),
            local_products_file=_env("LOCAL_PRODUCTS_FILE", default="data/products.json"),
            orders_db_path=_env("ORDERS_DB_PATH", default="orders.db"),
            cloudinary_cloud_name=_env("CLOUDINARY_CLOUD_NAME"),
            cloudinary_api_key=_env("CLOUDINARY_API_KEY"),
            cloudinary_api_secret=_env("CLOUDINARY_API_SECRET"),
            cloudinary_folder=_env("CLOUDINARY_FOLDER", default="pinkaura-products"),
            cloudinary_payments_folder=_env("CLOUDINARY_PAYMENTS_FOLDER", default="pinkaura-payments"),
            media_dir=_env("MEDIA_DIR", default="media"),
            media_url_prefix=_env("MEDIA_URL_PREFIX", default="/media"),
            sendgrid_api_key=_env("SENDGRID_API_KEY"),
            sendgrid_from_email=_env("SENDGRID_FROM_EMAIL"),
            emailjs_service_id=_env("EMAILJS_SERVICE_ID"),
            emailjs_template_id=_env("EMAILJS_TEMPLATE_ID"),
            emailjs_public_key=_env("EMAILJS_PUBLIC_KEY"),
            emailjs_private_key=_env("EMAILJS_PRIVATE_KEY"),
            store_owner_email=_env("STORE_OWNER_EMAIL"),
            admin_key=_env("ADMIN_KEY"),
            allow_origins=origins or ["*"],
            shipping_cost=float(_env("SHIPPING_COST", default="60")),
            free_shipping_threshold=float(_env("FREE_SHIPPING_THRESHOLD", default="999")),
            total_tolerance=float(_env("TOTAL_TOLERANCE", default="1")),
            max_upload_bytes=int(_env("MAX_UPLOAD_BYTES", default=str(5 * 1024 * 1024))),
            log_level=(_env("LOG_LEVEL", default="INFO")).upper(),
            ephemeral_filesystem=(os.getenv("RENDER") or "").lower() == "true",
        )

    @property
    def github_configured(self) -> bool:
        return bool(self.github_token and self.github_owner and self.github_repo)

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def cloudinary_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)

    @property
    def emailjs_configured(self) -> bool:
        return bool(self.emailjs_service_id and self.emailjs_template_id and self.emailjs_public_key)

    def resolved_product_backend(self) -> str:
        if self.product_backend != "auto":
            return self.product_backend
        if self.supabase_configured:
            return "supabase"
        if self.github_configured:
            return "github"
        return "local"

    def resolved_order_backend(self) -> str:
        if self.order_backend != "auto":
            return self.order_backend
        return "supabase" if self.supabase_configured else "sqlite"
