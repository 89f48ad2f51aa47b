# storefront/main.py
import logging
import os
import time
import traceback
from typing import Any, Dict, Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Body,
    Depends,
    FastAPI,
    File,
    Form,
    Header,
    Query,
    Request,
    UploadFile,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from .config import Settings
from .errors import BadRequestError, NotFoundError, StorefrontError, UnauthorizedError
from .media import LocalMediaHost, image_public_ids
from .notifications import delete_images
from .orders import UploadedImage, checkout_stock, parse_json_field, parse_model, place_order
from .product_utils import SORT_OPTIONS, filter_products, paginate, sort_products
from .schemas import (
    ORDER_STATUSES,
    NewProductData,
    OrderStatusUpdate,
    Product,
    SaveCatalogRequest,
    Variant,
)
from .services import Services, build_services
from .validators import validate_image_upload

logger = logging.getLogger(__name__)

router = APIRouter()


def get_services(request: Request) -> Services:
    services = request.app.state.services
    if services is None:
        services = build_services(request.app.state.settings)
        request.app.state.services = services
    return services


def require_admin(request: Request, x_admin_key: Optional[str] = Header(None)) -> None:
    admin_key = request.app.state.settings.admin_key
    if not admin_key:
        logger.warning(f"🔒 Admin request to {request.url.path} refused: ADMIN_KEY is not set")
        raise StorefrontError("Admin access is not configured", status_code=503)
    if x_admin_key != admin_key:
        logger.warning(f"🔒 Rejected admin request to {request.url.path}")
        raise UnauthorizedError("Invalid admin key")


def _read_upload(upload: Optional[UploadFile]) -> Optional[UploadedImage]:
    if upload is None:
        return None
    return UploadedImage(
        data=upload.file.read(),
        filename=upload.filename or "upload",
        content_type=upload.content_type,
    )


# ==================== ENDPOINTS ====================

@router.get("/")
def root():
    return {
        "status": "API running",
        "version": "1.0.0",
        "endpoints": {
            "health": "GET /api/health - Backend status",
            "products": "GET /api/products - Catalog with optional filters",
            "product": "GET /api/products/{id} - One product",
            "add-product": "POST /api/products - Add a product with its image (admin)",
            "delete-product": "DELETE /api/products/{id} - Delete a product and its images (admin)",
            "save-product": "POST /api/save-product - Overwrite the catalog (admin)",
            "checkout": "POST /api/checkout - Decrement stock for a cart",
            "orders": "POST /api/orders - Place an order with a payment screenshot",
            "list-orders": "GET /api/orders - List orders (admin)",
            "order": "GET /api/orders/{id} - Order with items (admin)",
            "order-status": "PATCH /api/orders/{id} - Change order status (admin)",
        },
    }


@router.get("/api/health")
def health_check(services: Services = Depends(get_services)):
    """Health check endpoint"""
    warnings = []
    if services.settings.ephemeral_filesystem and "local" in (services.products.name, services.images.name):
        warnings.append("Files written to local disk will be lost on server restart.")
    if services.settings.ephemeral_filesystem and services.orders.name == "sqlite":
        warnings.append("The sqlite order database will be lost on server restart.")
    if not services.settings.admin_key:
        warnings.append("ADMIN_KEY is not set; admin routes are disabled.")

    return {
        "success": True,
        "status": "healthy",
        "backends": {
            "products": services.products.name,
            "orders": services.orders.name,
            "images": services.images.name,
            "email": services.mailer.name,
        },
        "warnings": warnings,
    }


@router.get("/api/products")
def get_products(
    category: Optional[str] = Query(None, description="Filter by category"),
    trending: Optional[bool] = Query(None),
    best_seller: Optional[bool] = Query(None, alias="bestSeller"),
    search: Optional[str] = Query(None, description="Match on name or description"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    sort: Optional[str] = Query(None, description=f"One of {', '.join(SORT_OPTIONS)}"),
    page: Optional[int] = Query(None, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    displayable_only: bool = Query(False, alias="displayableOnly"),
    services: Services = Depends(get_services),
):
    """
    Catalog as stored, with the revision token (``sha``) the admin editor
    sends back on save. Without ``page`` the whole filtered list is returned.
    """
    if sort and sort not in SORT_OPTIONS:
        raise BadRequestError(f"sort must be one of: {', '.join(SORT_OPTIONS)}")

    snapshot = services.products.load()
    products = filter_products(
        snapshot.products,
        category=category,
        trending=trending,
        best_seller=best_seller,
        search=search,
        min_price=min_price,
        max_price=max_price,
        displayable_only=displayable_only,
    )
    if sort:
        products = sort_products(products, sort)

    response: Dict[str, Any] = {"success": True, "sha": snapshot.revision, "total": len(products)}
    if page:
        products, total_pages = paginate(products, page, page_size)
        response.update({"page": page, "pageSize": page_size, "totalPages": total_pages})

    response["products"] = [p.to_json() for p in products]
    return response


@router.get("/api/products/{product_id}")
def get_product(product_id: int, services: Services = Depends(get_services)):
    product = services.products.get_product(product_id)
    return {"success": True, "product": product.to_json()}


@router.post("/api/products", dependencies=[Depends(require_admin)])
def add_product(
    image: Optional[UploadFile] = File(None),
    productData: Optional[str] = Form(None),
    services: Services = Depends(get_services),
):
    """Upload the product image, then append the product to the catalog."""
    settings = services.settings
    data: NewProductData = parse_model(NewProductData, parse_json_field(productData, "productData"), "productData")

    upload = _read_upload(image)
    validate_image_upload(
        upload.data if upload else b"",
        upload.content_type if upload else None,
        settings.max_upload_bytes,
    )

    logger.info(f"🖼️ [CATALOG] Uploading image for new product '{data.name}' ({len(upload.data)} bytes)")
    stored_image = services.images.upload(
        upload.data,
        upload.filename,
        upload.content_type,
        folder=settings.cloudinary_folder,
        resize=True,
    )

    new_product = Product(
        id=0,
        name=data.name,
        price=data.price,
        category=data.category,
        description=data.description,
        trending=data.trending,
        best_seller=data.best_seller,
        cloudinary_id=stored_image.public_id,
        variants=[Variant(
            color=data.color,
            variant_number=1,
            images=[stored_image.url],
            stock=data.stock,
            cloudinary_ids=[stored_image.public_id],
        )],
    )

    try:
        product = services.products.create_product(new_product)
    except Exception:
        logger.error(f"❌ [CATALOG] Saving product '{data.name}' failed, removing uploaded image")
        delete_images(services.images, [stored_image.public_id])
        raise

    return {"success": True, "message": "Product added successfully", "product": product.to_json()}


@router.delete("/api/products/{product_id}", dependencies=[Depends(require_admin)])
def delete_product(
    product_id: int,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
):
    product = services.products.delete_product(product_id)
    public_ids = image_public_ids(product)
    if public_ids:
        background_tasks.add_task(delete_images, services.images, public_ids)
    return {"success": True, "message": "Product deleted successfully"}


@router.post("/api/save-product", dependencies=[Depends(require_admin)])
def save_products(request: SaveCatalogRequest, services: Services = Depends(get_services)):
    """Overwrite the whole catalog with what the admin editor sends."""
    start_time = time.time()
    new_sha = services.products.replace_all(request.products, request.sha)
    logger.info(
        f"✅ [CATALOG] Catalog saved - Products: {len(request.products)}, "
        f"Backend: {services.products.name}, Time: {time.time() - start_time:.2f}s"
    )
    return {"success": True, "sha": new_sha}


@router.post("/api/checkout")
def checkout(payload: Dict[str, Any] = Body(...), services: Services = Depends(get_services)):
    """Decrement stock for a cart without creating an order."""
    start_time = time.time()
    products = checkout_stock(services, payload.get("cart"))
    logger.info(f"✅ [CHECKOUT] Completed in {time.time() - start_time:.2f}s")
    return {"ok": True, "productsUpdated": [p.to_json() for p in products]}


@router.post("/api/orders")
def create_order(
    background_tasks: BackgroundTasks,
    screenshot: Optional[UploadFile] = File(None),
    cartItems: Optional[str] = Form(None),
    customerDetails: Optional[str] = Form(None),
    totalsFromClient: Optional[str] = Form(None),
    services: Services = Depends(get_services),
):
    """
    Place an order paid by UPI. The payment screenshot is stored for manual
    verification and the order starts as ``pending_verification``.
    """
    logger.info("🛒 [ORDERS] New order request")
    result = place_order(
        services,
        cart_items=cartItems,
        customer_details=customerDetails,
        totals_from_client=totalsFromClient,
        screenshot=_read_upload(screenshot),
        schedule=background_tasks.add_task,
    )
    return {
        "success": True,
        "message": "Order placed successfully",
        "orderId": result.order.id,
        "status": result.order.status,
        "totals": result.totals.model_dump(),
        "stockUpdated": result.stock_updated,
    }


@router.get("/api/orders", dependencies=[Depends(require_admin)])
def list_orders(
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    services: Services = Depends(get_services),
):
    if status and status not in ORDER_STATUSES:
        raise BadRequestError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
    orders = services.orders.list_orders(status=status, limit=limit)
    return {"success": True, "orders": [o.model_dump() for o in orders]}


@router.get("/api/orders/{order_id}", dependencies=[Depends(require_admin)])
def get_order(order_id: int, services: Services = Depends(get_services)):
    order = services.orders.get_order(order_id)
    if not order:
        raise NotFoundError("Order not found")
    return {"success": True, "order": order.model_dump()}


@router.patch("/api/orders/{order_id}", dependencies=[Depends(require_admin)])
def update_order_status(
    order_id: int,
    update: OrderStatusUpdate,
    services: Services = Depends(get_services),
):
    order = services.orders.update_status(order_id, update.status)
    return {"success": True, "order": order.model_dump()}


def serve_media(public_id: str, services: Services = Depends(get_services)):
    """Files stored by the local image host."""
    if not isinstance(services.images, LocalMediaHost):
        raise NotFoundError("Image not found")
    path = services.images.file_path(public_id)
    if not os.path.isfile(path):
        raise NotFoundError("Image not found")
    return FileResponse(path)


# ==================== APP ====================

def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    if settings is None:
        settings = services.settings if services else Settings.from_env()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title="PinkAura Storefront API", version="1.0.0")
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def startup_event():
        if app.state.services is None:
            logger.info("📦 Initializing storefront backends...")
            app.state.services = build_services(settings)
        if not settings.admin_key:
            logger.warning("⚠️  ADMIN_KEY is not set: admin routes will answer 503.")

    @app.on_event("shutdown")
    def shutdown_event():
        if app.state.services is not None:
            app.state.services.close()

    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request").replace("Value error, ", "")
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": f"{location}: {message}" if location else message},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"❌ Unhandled error in {request.method} {request.url.path}: {exc}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal Server Error"})

    app.include_router(router)
    app.add_api_route(f"{settings.media_url_prefix.rstrip('/')}/{{public_id:path}}", serve_media, methods=["GET"])

    return app


app = create_app()
