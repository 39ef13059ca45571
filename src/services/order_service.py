"""Order creation and lookup business logic."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from supabase import Client

from src.api.middleware.error_handler import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from src.core.config import get_settings
from src.core.supabase import execute_query, get_supabase_client
from src.models.order import (
    Order,
    OrderCreate,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShippingAddress,
)
from src.schemas.auth import CallerIdentity, first_present
from src.schemas.order import OrderCreateRequest, ShippingAddressInput
from src.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

# (attribute, API name) of shipping fields that must be present, in check order
REQUIRED_ADDRESS_FIELDS = (
    ("street", "street"),
    ("city", "city"),
    ("state", "state"),
    ("zip_code", "zipCode"),
    ("email", "email"),
    ("phone", "phone"),
)


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address."""
    return email.strip().lower()


def resolve_owner_id(explicit: str | None, caller: CallerIdentity, guest_user_id: str) -> str:
    """Pick the owner id for a new order. Never fails.

    Priority: explicit body value, caller identity, guest sentinel.
    """
    return first_present(explicit, caller.user_id) or guest_user_id


def resolve_contact_email(
    explicit: str | None,
    caller: CallerIdentity,
    shipping_email: str | None,
) -> str:
    """Pick the contact email for a new order.

    Priority: explicit body value, caller identity, shipping address email.

    Raises:
        ValidationError: If no source provides an email.
    """
    email = first_present(explicit, caller.email, shipping_email)
    if not email:
        raise ValidationError("User email is required")
    return normalize_email(email)


def validate_shipping_address(address: ShippingAddressInput | None, default_country: str) -> ShippingAddress:
    """Check required shipping fields and normalize the address.

    Raises:
        ValidationError: Naming the first missing field.
    """
    if address is None:
        raise ValidationError("Shipping address is required")

    for field_name, label in REQUIRED_ADDRESS_FIELDS:
        if not first_present(getattr(address, field_name)):
            raise ValidationError(
                f"Shipping address {label} is required",
                details=[{"loc": ["shippingAddress", label], "msg": "Field required", "type": "missing"}],
            )

    return ShippingAddress(
        street=address.street.strip(),
        city=address.city.strip(),
        state=address.state.strip(),
        zipCode=address.zip_code.strip(),
        country=first_present(address.country) or default_country,
        email=normalize_email(address.email),
        phone=address.phone.strip(),
    )


class OrderService:
    """Service for creating and reading orders."""

    def __init__(
        self,
        supabase_client: Client | None = None,
        catalog_service: CatalogService | None = None,
    ) -> None:
        """Initialize order service.

        Args:
            supabase_client: Optional Supabase client for testing.
            catalog_service: Optional catalog service for testing.
        """
        self._supabase_client = supabase_client
        self.catalog_service = catalog_service or CatalogService(supabase_client)
        self.settings = get_settings()

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def create_order(self, data: OrderCreateRequest, caller: CallerIdentity) -> Order:
        """Validate a cart, price it against the catalog, and store the order.

        Everything is validated before the single insert, so a failure
        never leaves a partial order behind.

        Args:
            data: Order creation request.
            caller: Identity of the caller, possibly anonymous.

        Returns:
            Order: The stored order row.

        Raises:
            ValidationError: Missing items, bad quantity, missing address field or email.
            NotFoundError: A product does not exist.
            ConflictError: A product is out of stock.
            PersistenceError: The insert failed.
        """
        if not data.items:
            raise ValidationError("Items are required")
        for item in data.items:
            if item.quantity < 1:
                raise ValidationError(f"Quantity for product {item.product_id} must be at least 1")

        shipping_address = validate_shipping_address(data.shipping_address, self.settings.default_country)
        owner_id = resolve_owner_id(data.user, caller, self.settings.guest_user_id)
        user_email = resolve_contact_email(data.user_email, caller, shipping_address["email"])

        order_items: list[OrderItem] = []
        total = Decimal("0")

        for item in data.items:
            product = await self.catalog_service.get_product(item.product_id)
            if not product:
                raise NotFoundError(f"Product {item.product_id} not found")
            if not product.get("in_stock", True):
                raise ConflictError(f"Product {product.get('name', item.product_id)} is out of stock")

            price = Decimal(str(product["price"]))
            total += price * item.quantity

            order_items.append(
                OrderItem(
                    product=str(product["id"]),
                    name=product["name"],
                    image=product.get("image") or "",
                    unit=product.get("unit") or "pack",
                    amount=product.get("amount") or 1,
                    quantity=item.quantity,
                    price=float(price),
                )
            )

        order_data = OrderCreate(
            user_id=owner_id,
            user_email=user_email,
            items=order_items,
            total_amount=float(total),
            payment_method=(data.payment_method or PaymentMethod.CASH_ON_DELIVERY).value,
            payment_status=PaymentStatus.UNPAID.value,
            status=OrderStatus.PENDING.value,
            shipping_address=shipping_address,
        )

        response = execute_query(
            self.supabase.table("orders").insert(dict(order_data)),
            "create_order",
            user_id=owner_id,
        )
        if not response.data:
            logger.error("Order insert returned no rows for user %s", owner_id)
            raise PersistenceError("Failed to create order")

        order = response.data[0]
        logger.info(
            "Order %s created for %s: %d items, total %s",
            order["id"],
            owner_id,
            len(order_items),
            order_data["total_amount"],
        )
        return order

    async def get_order(self, order_id: str) -> Order | None:
        """Get an order by ID.

        Args:
            order_id: The order's ID.

        Returns:
            Order | None: The order data or None if not found.
        """
        response = execute_query(
            self.supabase.table("orders").select("*").eq("id", order_id).maybe_single(),
            "get_order",
            order_id=order_id,
        )

        return response.data if response and response.data else None

    async def list_orders_by_email(self, email: str) -> list[Order]:
        """Get all orders placed with an email, newest first.

        Args:
            email: Contact email; normalized before matching.

        Returns:
            list[Order]: Matching orders.

        Raises:
            ValidationError: If the email is blank.
        """
        if not first_present(email):
            raise ValidationError("Email is required")

        response = execute_query(
            self.supabase.table("orders")
            .select("*")
            .eq("user_email", normalize_email(email))
            .order("created_at", desc=True),
            "list_orders_by_email",
        )

        return response.data or []

    async def find_order_for_caller(self, order_id: str, caller: CallerIdentity) -> Order | None:
        """Get an order the caller is allowed to act on.

        A caller with an owner id or email must match the order on either
        one. An anonymous caller can reach any order by id, which is what
        guest order tracking relies on.

        Args:
            order_id: The order's ID.
            caller: Identity of the caller.

        Returns:
            Order | None: The order, or None if missing or not the caller's.
        """
        order = await self.get_order(order_id)
        if not order or caller.is_anonymous:
            return order

        if caller.user_id and order.get("user_id") == caller.user_id:
            return order
        if caller.email and (order.get("user_email") or "").lower() == caller.email:
            return order

        logger.info("Order %s does not belong to caller", order_id)
        return None

    async def set_payment_intent(self, order_id: str, intent_id: str) -> bool:
        """Record the latest PaymentIntent on an unpaid order.

        Replaces any earlier intent reference. Paid orders are left alone.

        Returns:
            bool: False if the order was paid in the meantime.
        """
        response = execute_query(
            self.supabase.table("orders")
            .update(
                {
                    "stripe_payment_intent_id": intent_id,
                    "updated_at": _now_iso(),
                }
            )
            .eq("id", order_id)
            .eq("payment_status", PaymentStatus.UNPAID.value),
            "set_payment_intent",
            order_id=order_id,
        )
        return bool(response.data)

    async def mark_paid_if_unpaid(self, order_id: str) -> Order | None:
        """Move an order from unpaid to paid/processing in one conditional update.

        The update only matches while ``payment_status`` is still unpaid,
        so concurrent callers cannot both apply it.

        Returns:
            Order | None: The updated row if this call made the transition,
            None if the order was already paid or does not exist.
        """
        update: dict[str, Any] = {
            "payment_status": PaymentStatus.PAID.value,
            "status": OrderStatus.PROCESSING.value,
            "updated_at": _now_iso(),
        }
        response = execute_query(
            self.supabase.table("orders")
            .update(update)
            .eq("id", order_id)
            .eq("payment_status", PaymentStatus.UNPAID.value),
            "mark_paid_if_unpaid",
            order_id=order_id,
        )
        return response.data[0] if response.data else None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
