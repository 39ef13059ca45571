"""Order API routes."""

from fastapi import APIRouter, status

from src.api.deps import Caller
from src.api.middleware.error_handler import NotFoundError
from src.schemas.order import OrderCreateRequest, OrderResponse
from src.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
    description="Creates a pending, unpaid order from cart items. Guest checkout is allowed.",
)
async def create_order(data: OrderCreateRequest, caller: Caller) -> OrderResponse:
    """Create an order from a cart.

    Args:
        data: Cart items, shipping address and optional owner/email overrides.
        caller: Caller identity from bearer token or identity headers.

    Returns:
        OrderResponse: The created order with item snapshots.

    Raises:
        ValidationError: 400 on missing items, address fields or email.
        ConflictError: 400 if a product is out of stock.
        NotFoundError: 404 if a product does not exist.
    """
    service = OrderService()
    order = await service.create_order(data, caller)
    return OrderResponse.model_validate(order)


@router.get(
    "/my-orders/{email}",
    response_model=list[OrderResponse],
    summary="List orders by email",
    description="Returns all orders placed with an email address, newest first.",
)
async def list_my_orders(email: str) -> list[OrderResponse]:
    """List orders for a contact email.

    Args:
        email: Contact email used at checkout.

    Returns:
        list[OrderResponse]: Orders, newest first.
    """
    service = OrderService()
    orders = await service.list_orders_by_email(email)
    return [OrderResponse.model_validate(order) for order in orders]


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order by ID",
    description="Returns a single order by ID. Accessible to anyone holding the ID (guest order tracking).",
)
async def get_order(order_id: str) -> OrderResponse:
    """Get a single order by ID.

    Raises:
        NotFoundError: 404 if order not found.
    """
    service = OrderService()
    order = await service.get_order(order_id)
    if not order:
        raise NotFoundError("Order not found")
    return OrderResponse.model_validate(order)
