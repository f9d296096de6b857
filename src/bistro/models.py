"""Data models for bistro."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any
import uuid

TAX_RATE = Decimal("0.08")
CENTS = Decimal("0.01")
MIN_ITEM_QUANTITY = 1
MAX_ITEM_QUANTITY = 10


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _generate_id(prefix: str) -> str:
    """Generate a random identifier such as ``order_3f9c0a1b2d4e``."""
    return f"{prefix}_{uuid.uuid4().hex[:13]}"


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp into an aware datetime.

    Naive values are taken to be UTC.

    Raises:
        ValueError: If the value isn't an ISO 8601 string.
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"expected ISO 8601 timestamp, got {value!r}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_decimal(value: Any) -> Decimal:
    """
    Convert a JSON number or string to Decimal without float noise.

    Raises:
        ValueError: If the value isn't numeric.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"expected a number, got {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"expected a number, got {value!r}")
    if not result.is_finite():
        raise ValueError(f"expected a finite number, got {value!r}")
    return result


def quantize_money(amount: Decimal) -> Decimal:
    """Round a money amount to cents."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def clamp_quantity(quantity: int) -> int:
    """Bound a quantity picked on the item page to 1-10."""
    return max(MIN_ITEM_QUANTITY, min(MAX_ITEM_QUANTITY, quantity))


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Statuses that still count as "in flight" for the current order
ACTIVE_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY}
)


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    ONLINE = "online"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


# Models for the cart and orders


@dataclass
class CartItem:
    """A selected catalog item waiting for checkout."""

    id: str
    name: str
    price: Decimal  # unit price, option surcharges included
    quantity: int = 1
    image: str | None = None
    options: dict[str, str] = field(default_factory=dict)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "quantity": self.quantity,
            "options": dict(self.options),
        }
        if self.image is not None:
            result["image"] = self.image
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartItem":
        price = to_decimal(data["price"])
        if price <= 0:
            raise ValueError(f"price must be positive, got {price}")
        quantity = data.get("quantity", 1)
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValueError(f"quantity must be an integer >= 1, got {quantity!r}")
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            price=price,
            quantity=quantity,
            image=data.get("image"),
            options=dict(data.get("options") or {}),
        )


@dataclass(frozen=True)
class OrderItem:
    """A cart line copied into a placed order."""

    id: str
    name: str
    price: Decimal
    quantity: int
    options: dict[str, str] = field(default_factory=dict)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "quantity": self.quantity,
            "options": dict(self.options),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            price=to_decimal(data["price"]),
            quantity=int(data["quantity"]),
            options=dict(data.get("options") or {}),
        )

    @classmethod
    def from_cart_item(cls, item: CartItem) -> "OrderItem":
        return cls(
            id=item.id,
            name=item.name,
            price=item.price,
            quantity=item.quantity,
            options=dict(item.options),
        )


@dataclass
class OrderDetails:
    """Customer-supplied checkout details."""

    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    delivery_address: str | None = None
    table_number: str | None = None
    special_instructions: str | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH


@dataclass(frozen=True)
class Order:
    """A placed order: a cart snapshot plus customer and payment metadata."""

    id: str
    guest_id: str
    items: tuple[OrderItem, ...]
    status: OrderStatus
    total: Decimal
    created_at: str
    updated_at: str
    customer_name: str
    customer_phone: str
    customer_email: str
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    delivery_address: str | None = None
    table_number: str | None = None
    special_instructions: str | None = None

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "guestId": self.guest_id,
            "items": [item.to_dict() for item in self.items],
            "status": self.status.value,
            "total": str(self.total),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "customerEmail": self.customer_email,
            "paymentMethod": self.payment_method.value,
            "paymentStatus": self.payment_status.value,
        }
        if self.delivery_address is not None:
            result["deliveryAddress"] = self.delivery_address
        if self.table_number is not None:
            result["tableNumber"] = self.table_number
        if self.special_instructions is not None:
            result["specialInstructions"] = self.special_instructions
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        # Validate timestamps here so later age checks can't fail
        parse_timestamp(data["createdAt"])
        updated_at = data.get("updatedAt") or data["createdAt"]
        parse_timestamp(updated_at)
        return cls(
            id=data["id"],
            guest_id=data.get("guestId", ""),
            items=tuple(OrderItem.from_dict(i) for i in data.get("items", [])),
            status=OrderStatus(data["status"]),
            total=to_decimal(data["total"]),
            created_at=data["createdAt"],
            updated_at=updated_at,
            customer_name=data.get("customerName", ""),
            customer_phone=data.get("customerPhone", ""),
            customer_email=data.get("customerEmail", ""),
            payment_method=PaymentMethod(data.get("paymentMethod", "cash")),
            payment_status=PaymentStatus(data.get("paymentStatus", "pending")),
            delivery_address=data.get("deliveryAddress"),
            table_number=data.get("tableNumber"),
            special_instructions=data.get("specialInstructions"),
        )

    @classmethod
    def create(
        cls,
        guest_id: str,
        items: list[CartItem],
        details: OrderDetails,
    ) -> "Order":
        """Create a pending order with generated ID and timestamps."""
        now = _utc_now()
        snapshot = tuple(OrderItem.from_cart_item(item) for item in items)
        subtotal = sum((item.line_total for item in snapshot), Decimal("0"))
        return cls(
            id=_generate_id("order"),
            guest_id=guest_id,
            items=snapshot,
            status=OrderStatus.PENDING,
            total=quantize_money(subtotal * (1 + TAX_RATE)),
            created_at=now,
            updated_at=now,
            customer_name=details.customer_name or "",
            customer_phone=details.customer_phone or "",
            customer_email=details.customer_email or "",
            payment_method=details.payment_method or PaymentMethod.CASH,
            payment_status=PaymentStatus.PENDING,
            delivery_address=details.delivery_address,
            table_number=details.table_number,
            special_instructions=details.special_instructions,
        )


# Models for the catalog document


@dataclass(frozen=True)
class OptionChoice:
    name: str
    price: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.price is not None:
            result["price"] = str(self.price)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OptionChoice":
        price = data.get("price")
        return cls(
            name=data["name"],
            price=to_decimal(price) if price is not None else None,
        )


@dataclass(frozen=True)
class MenuOption:
    """A customizable option on a menu item (size, spice level, ...)."""

    name: str
    choices: tuple[OptionChoice, ...] = ()

    def find_choice(self, choice_name: str) -> OptionChoice | None:
        for choice in self.choices:
            if choice.name == choice_name:
                return choice
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "choices": [c.to_dict() for c in self.choices]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MenuOption":
        return cls(
            name=data["name"],
            choices=tuple(OptionChoice.from_dict(c) for c in data.get("choices", [])),
        )


@dataclass(frozen=True)
class MenuItem:
    """A dish on the menu."""

    id: str
    name: str
    price: Decimal
    description: str = ""
    image: str = ""
    category: str = ""
    featured: bool = False
    options: tuple[MenuOption, ...] = ()
    allergens: tuple[str, ...] = ()
    dietary: tuple[str, ...] = ()
    related_items: tuple[str, ...] = ()

    def default_options(self) -> dict[str, str]:
        """Select the first choice of every option."""
        return {
            option.name: option.choices[0].name
            for option in self.options
            if option.choices
        }

    def unit_price(self, selected: dict[str, str] | None = None) -> Decimal:
        """Base price plus the surcharge of every selected choice."""
        total = self.price
        for option in self.options:
            choice_name = (selected or {}).get(option.name)
            if choice_name is None:
                continue
            choice = option.find_choice(choice_name)
            if choice is not None and choice.price:
                total += choice.price
        return total

    def to_cart_item(
        self, quantity: int = 1, selected: dict[str, str] | None = None
    ) -> CartItem:
        """Build the cart line for this item with the given option choices."""
        options = self.default_options()
        options.update(selected or {})
        return CartItem(
            id=self.id,
            name=self.name,
            price=self.unit_price(options),
            quantity=clamp_quantity(quantity),
            image=self.image or None,
            options=options,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "image": self.image,
            "category": self.category,
            "featured": self.featured,
            "options": [o.to_dict() for o in self.options],
            "allergens": list(self.allergens),
            "dietary": list(self.dietary),
            "relatedItems": list(self.related_items),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MenuItem":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            price=to_decimal(data.get("price", 0)),
            description=data.get("description", ""),
            image=data.get("image", ""),
            category=data.get("category", ""),
            featured=bool(data.get("featured", False)),
            options=tuple(MenuOption.from_dict(o) for o in data.get("options") or []),
            allergens=tuple(data.get("allergens") or []),
            dietary=tuple(data.get("dietary") or []),
            related_items=tuple(str(i) for i in data.get("relatedItems") or []),
        )


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    order: int = 0
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "name": self.name, "order": self.order}
        if self.description is not None:
            result["description"] = self.description
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Category":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            order=int(data.get("order", 0)),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class Testimonial:
    id: str
    name: str
    rating: int
    comment: str
    date: str = ""
    avatar: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "rating": self.rating,
            "comment": self.comment,
            "date": self.date,
        }
        if self.avatar is not None:
            result["avatar"] = self.avatar
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Testimonial":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            rating=int(data.get("rating", 0)),
            comment=data.get("comment", ""),
            date=data.get("date", ""),
            avatar=data.get("avatar"),
        )


@dataclass(frozen=True)
class Catalog:
    """Menu, categories, testimonials and the restaurant story."""

    menu: tuple[MenuItem, ...] = ()
    categories: tuple[Category, ...] = ()
    testimonials: tuple[Testimonial, ...] = ()
    story: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "menu": [m.to_dict() for m in self.menu],
            "categories": [c.to_dict() for c in self.categories],
            "testimonials": [t.to_dict() for t in self.testimonials],
            "story": self.story,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "Catalog":
        """Build a catalog from the restaurant document's top-level fields."""
        return cls(
            menu=tuple(MenuItem.from_dict(m) for m in data.get("menu") or []),
            categories=tuple(Category.from_dict(c) for c in data.get("categories") or []),
            testimonials=tuple(
                Testimonial.from_dict(t) for t in data.get("Testimonials") or []
            ),
            story=data.get("story") or "",
        )


# Models for the restaurant configuration


@dataclass(frozen=True)
class BusinessHours:
    day: str
    open: str
    close: str
    is_closed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day,
            "open": self.open,
            "close": self.close,
            "isClosed": self.is_closed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BusinessHours":
        return cls(
            day=data.get("day", ""),
            open=data.get("open", ""),
            close=data.get("close", ""),
            is_closed=bool(data.get("isClosed", False)),
        )


@dataclass(frozen=True)
class SocialMedia:
    facebook: str | None = None
    instagram: str | None = None
    twitter: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in (
                ("facebook", self.facebook),
                ("instagram", self.instagram),
                ("twitter", self.twitter),
            )
            if value is not None
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SocialMedia":
        return cls(
            facebook=data.get("facebook"),
            instagram=data.get("instagram"),
            twitter=data.get("twitter"),
        )


@dataclass(frozen=True)
class SpecialOffer:
    id: str
    title: str
    description: str
    image: str | None = None
    valid_until: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
        }
        if self.image is not None:
            result["image"] = self.image
        if self.valid_until is not None:
            result["validUntil"] = self.valid_until
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpecialOffer":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            image=data.get("image"),
            valid_until=data.get("validUntil"),
        )


@dataclass(frozen=True)
class RestaurantConfig:
    """Restaurant profile: identity, contact info, hours and theming."""

    name: str = ""
    logo: str = ""
    description: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    social_media: SocialMedia = field(default_factory=SocialMedia)
    business_hours: tuple[BusinessHours, ...] = ()
    primary_color: str = ""
    secondary_color: str = ""
    font_family: str = ""
    special_offers: tuple[SpecialOffer, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "logo": self.logo,
            "description": self.description,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "socialMedia": self.social_media.to_dict(),
            "businessHours": [h.to_dict() for h in self.business_hours],
            "primaryColor": self.primary_color,
            "secondaryColor": self.secondary_color,
            "fontFamily": self.font_family,
            "specialOffers": [o.to_dict() for o in self.special_offers],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RestaurantConfig":
        return cls(
            name=data.get("name", ""),
            logo=data.get("logo", ""),
            description=data.get("description", ""),
            address=data.get("address", ""),
            phone=data.get("phone", ""),
            email=data.get("email", ""),
            social_media=SocialMedia.from_dict(data.get("socialMedia") or {}),
            business_hours=tuple(
                BusinessHours.from_dict(h) for h in data.get("businessHours") or []
            ),
            primary_color=data.get("primaryColor", ""),
            secondary_color=data.get("secondaryColor", ""),
            font_family=data.get("fontFamily", ""),
            special_offers=tuple(
                SpecialOffer.from_dict(o) for o in data.get("specialOffers") or []
            ),
        )


# Models for outward form submissions


@dataclass
class ContactMessage:
    name: str
    email: str
    subject: str
    message: str

    def to_form(self) -> dict[str, str]:
        return {
            "name": self.name,
            "email": self.email,
            "subject": self.subject,
            "message": self.message,
        }


@dataclass
class Reservation:
    name: str
    email: str
    phone: str
    date: str  # YYYY-MM-DD
    time: str  # "7:30 PM"
    guests: int = 2
    special_requests: str = ""

    def to_form(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "date": self.date,
            "time": self.time,
            "guests": self.guests,
            "specialRequests": self.special_requests,
        }
