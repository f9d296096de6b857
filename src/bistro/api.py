"""FastAPI REST API for the bistro site."""

import uuid
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .catalog import ALL_CATEGORIES, CatalogReader, ConfigReader
from .document_store import DocumentStore
from .errors import (
    BistroError,
    DocumentStoreError,
    EmptyCartError,
    MenuItemNotFoundError,
    OrderCancellationError,
    OrderInProgressError,
    OrderNotFoundError,
    OrderPlacementError,
    ValidationError,
)
from .forms import generate_time_slots, submit_contact_message, submit_reservation
from .local_storage import is_valid_session_id
from .log import configure_logging
from .models import (
    TAX_RATE,
    CartItem,
    ContactMessage,
    MenuItem,
    Order,
    OrderDetails,
    PaymentMethod,
    Reservation,
    quantize_money,
)
from .settings import Settings
from .storefront import CheckoutFlow, CheckoutStep, Storefront

logger = structlog.get_logger(__name__)


# --- Pydantic Schemas ---


class CartItemSchema(BaseModel):
    id: str
    name: str
    price: Decimal = Field(..., gt=0)
    quantity: int = Field(default=1, ge=1)
    image: Optional[str] = None
    options: dict[str, str] = Field(default_factory=dict)


class CartResponse(BaseModel):
    items: list[CartItemSchema]
    total_items: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal


class AddToCartRequest(BaseModel):
    """Request body for adding a menu item with chosen options."""

    quantity: int = Field(default=1, description="Clamped to 1-10")
    options: dict[str, str] = Field(
        default_factory=dict,
        description="Option name -> choice name; unset options use the first choice",
    )


class QuantityUpdateRequest(BaseModel):
    quantity: int


class OrderDetailsRequest(BaseModel):
    """Customer details collected by the checkout form."""

    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    delivery_address: Optional[str] = None
    table_number: Optional[str] = None
    special_instructions: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CASH

    def to_details(self) -> OrderDetails:
        return OrderDetails(
            customer_name=self.customer_name,
            customer_email=self.customer_email,
            customer_phone=self.customer_phone,
            delivery_address=self.delivery_address,
            table_number=self.table_number,
            special_instructions=self.special_instructions,
            payment_method=self.payment_method,
        )


class CheckoutStepResponse(BaseModel):
    step: CheckoutStep


class OrderItemSchema(BaseModel):
    id: str
    name: str
    price: Decimal
    quantity: int
    options: dict[str, str]


class OrderSchema(BaseModel):
    id: str
    guest_id: str
    items: list[OrderItemSchema]
    status: str
    subtotal: Decimal
    total: Decimal
    created_at: str
    updated_at: str
    customer_name: str
    customer_email: str
    customer_phone: str
    delivery_address: Optional[str] = None
    table_number: Optional[str] = None
    special_instructions: Optional[str] = None
    payment_method: str
    payment_status: str


class PlaceOrderResponse(BaseModel):
    order_id: str
    order: OrderSchema


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
    count: int
    current_order_id: Optional[str] = None


class CurrentOrderResponse(BaseModel):
    order: Optional[OrderSchema] = None


class ConfirmationResponse(BaseModel):
    """Order confirmation; ``order`` is null when no ID was given."""

    order: Optional[OrderSchema] = None


class ContactRequest(BaseModel):
    name: str = ""
    email: str = ""
    subject: str = ""
    message: str = ""


class ReservationRequest(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    date: str = Field(default="", description="YYYY-MM-DD")
    time: str = Field(default="", description="A slot such as '7:30 PM'")
    guests: int = 2
    special_requests: str = ""


class SubmissionResponse(BaseModel):
    id: str
    status: str


class TimeSlotsResponse(BaseModel):
    date: Optional[str]
    slots: list[str]


class ErrorResponse(BaseModel):
    detail: str
    error_type: str
    errors: Optional[dict[str, str]] = None


# --- Helper Functions ---


def cart_to_schema(storefront: Storefront) -> CartResponse:
    cart = storefront.cart
    subtotal = cart.subtotal
    return CartResponse(
        items=[CartItemSchema(**item.to_dict()) for item in cart.items],
        total_items=cart.total_items,
        subtotal=subtotal,
        tax=quantize_money(subtotal * TAX_RATE),
        total=quantize_money(subtotal * (1 + TAX_RATE)),
    )


def order_to_schema(order: Order) -> OrderSchema:
    """Convert dataclass Order to Pydantic schema."""
    return OrderSchema(
        id=order.id,
        guest_id=order.guest_id,
        items=[OrderItemSchema(**item.to_dict()) for item in order.items],
        status=order.status.value,
        subtotal=order.subtotal,
        total=order.total,
        created_at=order.created_at,
        updated_at=order.updated_at,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        delivery_address=order.delivery_address,
        table_number=order.table_number,
        special_instructions=order.special_instructions,
        payment_method=order.payment_method.value,
        payment_status=order.payment_status.value,
    )


def order_list_response(storefront: Storefront) -> OrderListResponse:
    current = storefront.orders.current_order
    orders = storefront.orders.orders
    return OrderListResponse(
        orders=[order_to_schema(o) for o in orders],
        count=len(orders),
        current_order_id=current.id if current else None,
    )


def menu_item_detail(reader: CatalogReader, item: MenuItem) -> dict:
    defaults = item.default_options()
    return {
        "item": item.to_dict(),
        "default_options": defaults,
        "unit_price": str(item.unit_price(defaults)),
        "related_items": [r.to_dict() for r in reader.related_items(item)],
    }


def _config_payload(reader: ConfigReader) -> dict:
    config = reader.config
    return {
        "config": config.to_dict() if config else None,
        "state": reader.state.value,
        "error": reader.error,
    }


# --- Dependencies ---


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_config_reader(request: Request) -> ConfigReader:
    reader: ConfigReader = request.app.state.config_reader
    reader.ensure_loaded()
    return reader


def get_catalog_reader(request: Request) -> CatalogReader:
    reader: CatalogReader = request.app.state.catalog_reader
    reader.ensure_loaded()
    return reader


def get_session_id(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
) -> str:
    """Read the visitor's session cookie, issuing a new one if missing."""
    session_id = request.cookies.get(settings.session_cookie)
    if session_id and is_valid_session_id(session_id):
        return session_id

    session_id = uuid.uuid4().hex
    response.set_cookie(
        settings.session_cookie,
        session_id,
        max_age=60 * 60 * 24 * 365,
        httponly=True,
        samesite="lax",
    )
    return session_id


def get_storefront(
    session_id: str = Depends(get_session_id),
    settings: Settings = Depends(get_settings),
    store: DocumentStore = Depends(get_document_store),
) -> Storefront:
    remote = store if settings.remote_orders else None
    return Storefront.open(settings.data_dir, session_id, remote=remote)


# --- Global Exception Handler ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    ValidationError: 422,
    EmptyCartError: 409,
    OrderInProgressError: 409,
    OrderNotFoundError: 404,
    MenuItemNotFoundError: 404,
    OrderPlacementError: 500,
    OrderCancellationError: 500,
    DocumentStoreError: 502,
}

# Remote failures are reported to visitors without internals
PUBLIC_MESSAGES: dict[type, str] = {
    DocumentStoreError: "There was an error processing your request. Please try again.",
}


async def bistro_error_handler(request: Request, exc: BistroError) -> JSONResponse:
    """Map BistroError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=str(exc))
    content = {
        "detail": PUBLIC_MESSAGES.get(type(exc), str(exc)),
        "error_type": type(exc).__name__,
    }
    if isinstance(exc, ValidationError):
        content["errors"] = exc.errors
    return JSONResponse(status_code=status_code, content=content)


# --- FastAPI App ---


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup and release the document store on shutdown."""
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)
    logger.info("api_starting", document_store=settings.document_store)

    yield

    logger.info("api_stopping")
    app.state.document_store.close()


def create_app(settings: Settings | None = None, store: DocumentStore | None = None) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Runtime settings (defaults to the environment).
        store: Document store override (defaults to the configured backend).
    """
    settings = settings or Settings.from_env()
    store = store or settings.create_document_store()

    app = FastAPI(
        title="bistro API",
        description="Restaurant menu, cart, ordering and reservations",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.document_store = store
    app.state.config_reader = ConfigReader(store, settings.restaurant_document)
    app.state.catalog_reader = CatalogReader(store, settings.restaurant_document)

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BistroError, bistro_error_handler)
    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    # --- Site pages ---

    @app.get("/api/health")
    def health_check(request: Request):
        """Health check endpoint."""
        return {
            "status": "ok",
            "version": __version__,
            "document_store": request.app.state.settings.document_store,
            "config_state": request.app.state.config_reader.state.value,
            "catalog_state": request.app.state.catalog_reader.state.value,
        }

    @app.get("/api/config")
    def get_config(reader: ConfigReader = Depends(get_config_reader)):
        """Restaurant profile: name, logo, contact info, hours and theming."""
        return _config_payload(reader)

    @app.post("/api/config/refresh")
    def refresh_config(request: Request):
        """Re-fetch the configuration and catalog documents."""
        config_reader: ConfigReader = request.app.state.config_reader
        catalog_reader: CatalogReader = request.app.state.catalog_reader
        config_reader.refresh()
        catalog_reader.refresh()
        payload = _config_payload(config_reader)
        payload["catalog_state"] = catalog_reader.state.value
        return payload

    @app.get("/api/home")
    def home(
        config_reader: ConfigReader = Depends(get_config_reader),
        catalog_reader: CatalogReader = Depends(get_catalog_reader),
    ):
        """Home page: profile, featured dishes, testimonials and story."""
        catalog = catalog_reader.catalog
        config = config_reader.config
        return {
            "restaurant": config.to_dict() if config else None,
            "featured_items": [i.to_dict() for i in catalog_reader.featured_items()],
            "categories": [c.to_dict() for c in catalog_reader.sorted_categories()],
            "testimonials": [t.to_dict() for t in catalog.testimonials],
            "story": catalog.story,
            "loading_error": config_reader.error or catalog_reader.error,
        }

    @app.get("/api/about")
    def about(
        config_reader: ConfigReader = Depends(get_config_reader),
        catalog_reader: CatalogReader = Depends(get_catalog_reader),
    ):
        config = config_reader.config
        return {
            "name": config.name if config else "",
            "description": config.description if config else "",
            "story": catalog_reader.catalog.story,
            "business_hours": (
                [h.to_dict() for h in config.business_hours] if config else []
            ),
        }

    # --- Menu ---

    @app.get("/api/menu")
    def list_menu(
        category: str = Query(default=ALL_CATEGORIES, description="Category ID or 'all'"),
        reader: CatalogReader = Depends(get_catalog_reader),
    ):
        items = reader.items_in_category(category)
        return {
            "categories": [c.to_dict() for c in reader.sorted_categories()],
            "active_category": category,
            "items": [i.to_dict() for i in items],
            "count": len(items),
            "state": reader.state.value,
            "error": reader.error,
        }

    @app.get("/api/menu/{item_id}")
    def get_menu_item(item_id: str, reader: CatalogReader = Depends(get_catalog_reader)):
        item = reader.get_item(item_id)
        return menu_item_detail(reader, item)

    @app.post("/api/menu/{item_id}/add-to-cart", response_model=CartResponse)
    def add_menu_item_to_cart(
        item_id: str,
        request: AddToCartRequest,
        reader: CatalogReader = Depends(get_catalog_reader),
        storefront: Storefront = Depends(get_storefront),
    ):
        """Add a menu item with the chosen options; option surcharges are priced in."""
        item = reader.get_item(item_id)
        unknown = {
            name: "Unknown option" for name in request.options
            if name not in {o.name for o in item.options}
        }
        for option in item.options:
            choice = request.options.get(option.name)
            if choice is not None and option.find_choice(choice) is None:
                unknown[option.name] = "Unknown choice"
        if unknown:
            raise ValidationError(unknown)

        storefront.cart.add_item(item.to_cart_item(request.quantity, request.options))
        return cart_to_schema(storefront)

    # --- Cart ---

    @app.get("/api/cart", response_model=CartResponse)
    def get_cart(storefront: Storefront = Depends(get_storefront)):
        return cart_to_schema(storefront)

    @app.post("/api/cart/items", response_model=CartResponse)
    def add_cart_item(request: CartItemSchema, storefront: Storefront = Depends(get_storefront)):
        """Add a line, replacing any line with the same ID."""
        storefront.cart.add_item(CartItem(**request.model_dump()))
        return cart_to_schema(storefront)

    @app.patch("/api/cart/items/{item_id}", response_model=CartResponse)
    def update_cart_item(
        item_id: str,
        request: QuantityUpdateRequest,
        storefront: Storefront = Depends(get_storefront),
    ):
        """Set a line's quantity; quantities below 1 are ignored."""
        storefront.cart.update_quantity(item_id, request.quantity)
        return cart_to_schema(storefront)

    @app.delete("/api/cart/items/{item_id}", response_model=CartResponse)
    def remove_cart_item(item_id: str, storefront: Storefront = Depends(get_storefront)):
        storefront.cart.remove_item(item_id)
        return cart_to_schema(storefront)

    @app.delete("/api/cart", response_model=CartResponse)
    def clear_cart(storefront: Storefront = Depends(get_storefront)):
        storefront.cart.clear_cart()
        return cart_to_schema(storefront)

    # --- Checkout and orders ---

    @app.post("/api/checkout/details", response_model=CheckoutStepResponse)
    def checkout_details(
        request: OrderDetailsRequest,
        storefront: Storefront = Depends(get_storefront),
    ):
        """Validate the details step; answers with the next step."""
        flow = CheckoutFlow(storefront)
        flow.continue_to_details()
        return CheckoutStepResponse(step=flow.continue_to_payment(request.to_details()))

    @app.post("/api/orders", response_model=PlaceOrderResponse, status_code=201)
    def place_order(
        request: OrderDetailsRequest,
        storefront: Storefront = Depends(get_storefront),
    ):
        order_id = CheckoutFlow(storefront).place_order(request.to_details())
        order = storefront.orders.get_order(order_id)
        return PlaceOrderResponse(order_id=order_id, order=order_to_schema(order))

    @app.get("/api/orders", response_model=OrderListResponse)
    def list_orders(storefront: Storefront = Depends(get_storefront)):
        return order_list_response(storefront)

    @app.get("/api/orders/current", response_model=CurrentOrderResponse)
    def get_current_order(storefront: Storefront = Depends(get_storefront)):
        current = storefront.orders.current_order
        return CurrentOrderResponse(order=order_to_schema(current) if current else None)

    @app.get("/api/orders/{order_id}", response_model=OrderSchema)
    def get_order(order_id: str, storefront: Storefront = Depends(get_storefront)):
        return order_to_schema(storefront.orders.get_order(order_id))

    @app.post("/api/orders/{order_id}/cancel", response_model=OrderListResponse)
    def cancel_order(order_id: str, storefront: Storefront = Depends(get_storefront)):
        """Cancel an order; unknown IDs leave the orders unchanged."""
        storefront.orders.cancel_order(order_id)
        return order_list_response(storefront)

    @app.get("/api/order-confirmation", response_model=ConfirmationResponse)
    def order_confirmation(
        id: Optional[str] = Query(default=None, description="Order ID"),
        storefront: Storefront = Depends(get_storefront),
    ):
        """Re-read a placed order; without an ID this is a generic success."""
        if not id:
            return ConfirmationResponse(order=None)
        return ConfirmationResponse(order=order_to_schema(storefront.orders.get_order(id)))

    # --- Contact and reservations ---

    @app.post("/api/contact", response_model=SubmissionResponse, status_code=201)
    def contact(request: ContactRequest, store: DocumentStore = Depends(get_document_store)):
        message = ContactMessage(**request.model_dump())
        doc_id = submit_contact_message(store, message)
        return SubmissionResponse(id=doc_id, status="unread")

    @app.get("/api/reservations/time-slots", response_model=TimeSlotsResponse)
    def reservation_time_slots(
        day: Optional[str] = Query(default=None, alias="date", description="YYYY-MM-DD"),
    ):
        """Offered times for a date; today's list starts after the current hour."""
        parsed = None
        if day:
            try:
                parsed = date.fromisoformat(day)
            except ValueError:
                raise ValidationError({"date": "Date is invalid"})
        return TimeSlotsResponse(date=day, slots=generate_time_slots(parsed))

    @app.post("/api/reservations", response_model=SubmissionResponse, status_code=201)
    def reserve(request: ReservationRequest, store: DocumentStore = Depends(get_document_store)):
        reservation = Reservation(**request.model_dump())
        doc_id = submit_reservation(store, reservation)
        return SubmissionResponse(id=doc_id, status="pending")


app = create_app()
