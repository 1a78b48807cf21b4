"""
Orders router.

Placing an order records the purchase on each book, which is what the
dashboard analytics aggregate. Customers see their own orders; admins see
every order.
"""

import structlog
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, status

from bookstore_api.dependencies import (
    get_audit_service,
    get_client_ip,
    get_current_user,
    get_order_service,
    get_user_agent,
)
from bookstore_api.models.audit import AuditAction, ResourceType
from bookstore_api.models.auth import CurrentUser, ErrorResponse
from bookstore_api.models.order import CancelOrderRequest, OrderView, PlaceOrderRequest
from bookstore_api.services.audit_service import AuditService
from bookstore_api.services.order_service import (
    OrderNotFoundError, OrderRejectedError, OrderService
)
from shared.metrics import setup_metrics

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "Order or book not found"}
    }
)


@router.post(
    "",
    response_model=OrderView,
    status_code=status.HTTP_201_CREATED,
    summary="Place Order",
    description="""
    Buy one or more available books.

    Each book is marked purchased by the caller (status ``Pending``) with the
    shipping country and optional coordinates as its purchase location.

    **Error Responses:**
    - 400: A book is not available or listed twice
    - 404: A book does not exist
    """,
    responses={400: {"model": ErrorResponse, "description": "Order rejected"}}
)
async def place_order(
    order_request: PlaceOrderRequest,
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
    audit_service: AuditService = Depends(get_audit_service),
    client_ip: str = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent)
) -> OrderView:
    try:
        order = await order_service.place_order(current_user, order_request)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OrderRejectedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    _, bookstore_metrics = setup_metrics()
    bookstore_metrics.orders_placed.labels(payment_method=order.payment_method.value).inc()

    await audit_service.record(
        AuditAction.ORDER_PLACE,
        ResourceType.ORDER,
        user_id=current_user.id,
        resource_id=order.id,
        details={"books": len(order.books), "total_amount": order.total_amount},
        ip_address=client_ip,
        user_agent=user_agent,
        status_code=status.HTTP_201_CREATED,
    )

    return order


@router.get("", response_model=List[OrderView], summary="List Orders")
async def list_orders(
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
) -> List[OrderView]:
    return await order_service.list_orders(current_user)


@router.get("/{order_id}", response_model=OrderView, summary="Get Order")
async def get_order(
    order_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
) -> OrderView:
    order = await order_service.get_order(current_user, order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.post(
    "/{order_id}/cancel",
    response_model=OrderView,
    summary="Cancel Order",
    responses={400: {"model": ErrorResponse, "description": "Already delivered or cancelled"}}
)
async def cancel_order(
    order_id: str,
    cancel_request: Optional[CancelOrderRequest] = Body(None),
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
    audit_service: AuditService = Depends(get_audit_service),
    client_ip: str = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent)
) -> OrderView:
    reason = cancel_request.reason if cancel_request else None

    try:
        order = await order_service.cancel_order(current_user, order_id, reason)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OrderRejectedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    _, bookstore_metrics = setup_metrics()
    bookstore_metrics.orders_cancelled.inc()

    await audit_service.record(
        AuditAction.ORDER_CANCEL,
        ResourceType.ORDER,
        user_id=current_user.id,
        resource_id=order_id,
        details={"reason": reason},
        ip_address=client_ip,
        user_agent=user_agent,
    )

    return order
