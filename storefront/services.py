"""Wires the configured backends together."""
import logging
from dataclasses import dataclass

from integrations.cloudinary import CloudinaryClient
from integrations.github import GitHubContentsClient
from integrations.mail import EmailJSClient, SendGridClient
from integrations.supabase import SupabaseClient

from .config import Settings
from .errors import ConfigurationError
from .media import CloudinaryImageHost, ImageHost, LocalMediaHost
from .notifications import EmailJSMailer, LogMailer, Mailer, SendGridMailer
from .stores.base import OrderStore, ProductStore
from .stores.json_document import GitHubProductStore, LocalJsonProductStore
from .stores.sqlite_orders import SQLiteOrderStore
from .stores.supabase import SupabaseOrderStore, SupabaseProductStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    products: ProductStore
    orders: OrderStore
    images: ImageHost
    mailer: Mailer

    def close(self) -> None:
        for component in (self.products, self.orders, self.images, self.mailer):
            try:
                component.close()
            except Exception as e:
                logger.warning(f"⚠️ Error closing {type(component).__name__}: {e}")


def _supabase_client(settings: Settings) -> SupabaseClient:
    if not settings.supabase_configured:
        raise ConfigurationError("Missing env vars: SUPABASE_URL, SUPABASE_SERVICE_KEY")
    return SupabaseClient(url=settings.supabase_url, service_key=settings.supabase_key)


def build_product_store(settings: Settings) -> ProductStore:
    backend = settings.resolved_product_backend()

    if backend == "github":
        missing = [
            name for name, value in (
                ("GITHUB_TOKEN", settings.github_token),
                ("GH_OWNER", settings.github_owner),
                ("GH_REPO", settings.github_repo),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing env vars: {', '.join(missing)}")
        client = GitHubContentsClient(
            token=settings.github_token,
            owner=settings.github_owner,
            repo=settings.github_repo,
            branch=settings.github_branch,
        )
        return GitHubProductStore(client, settings.products_path)

    if backend == "supabase":
        return SupabaseProductStore(_supabase_client(settings), settings.supabase_products_table)

    if backend == "local":
        if settings.ephemeral_filesystem:
            logger.warning("⚠️  Running with an ephemeral filesystem: products saved to JSON files will be lost on restart.")
        return LocalJsonProductStore(settings.local_products_file)

    raise ConfigurationError(f"Unknown PRODUCT_BACKEND: {backend}")


def build_order_store(settings: Settings) -> OrderStore:
    backend = settings.resolved_order_backend()

    if backend == "supabase":
        return SupabaseOrderStore(
            _supabase_client(settings),
            settings.supabase_orders_table,
            settings.supabase_order_items_table,
        )

    if backend == "sqlite":
        return SQLiteOrderStore(settings.orders_db_path)

    raise ConfigurationError(f"Unknown ORDER_BACKEND: {backend}")


def build_image_host(settings: Settings) -> ImageHost:
    if settings.cloudinary_configured:
        return CloudinaryImageHost(CloudinaryClient(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
        ))
    return LocalMediaHost(settings.media_dir, settings.media_url_prefix)


def build_mailer(settings: Settings) -> Mailer:
    if settings.sendgrid_api_key and settings.sendgrid_from_email:
        return SendGridMailer(
            SendGridClient(api_key=settings.sendgrid_api_key, from_email=settings.sendgrid_from_email),
            owner_email=settings.store_owner_email,
        )
    if settings.emailjs_configured:
        return EmailJSMailer(EmailJSClient(
            service_id=settings.emailjs_service_id,
            template_id=settings.emailjs_template_id,
            public_key=settings.emailjs_public_key,
            private_key=settings.emailjs_private_key,
        ))
    return LogMailer()


def build_services(settings: Settings) -> Services:
    services = Services(
        settings=settings,
        products=build_product_store(settings),
        orders=build_order_store(settings),
        images=build_image_host(settings),
        mailer=build_mailer(settings),
    )
    logger.info(
        f"📦 Backends - products: {services.products.name}, orders: {services.orders.name}, "
        f"images: {services.images.name}, email: {services.mailer.name}"
    )
    return services
