"""FastAPI routes for the Ordering domain: orders, admin, webhooks, inventory and maintenance."""

import json

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    CancelOrderRequest,
    ConfirmPaymentRequest,
    ManualConfirmationResponse,
    MarkPaymentRefundedRequest,
    OrderDetailView,
    OrderItemView,
    OrderPlacedResponse,
    OrderStatusResponse,
    OrderStatusView,
    PaymentInstructionsResponse,
    PendingPaymentView,
    PlaceOrderRequest,
    PollResponse,
    RegisterStockRequest,
    RestockRequest,
    StatusChangeSchema,
    SweepResponse,
    UpdateOrderStatusRequest,
    VariantStockResponse,
)
from ordering.expiry.sweeper import expire_order, sweep_expired_orders
from ordering.notifications import notify_safely
from ordering.order.cancellation import CancelOrder
from ordering.order.creation import PlaceOrder
from ordering.order.instructions import transfer_instructions
from ordering.order.numbering import payment_memo
from ordering.order.order import Order, parse_status
from ordering.order.status import MarkPaymentRefunded, UpdateOrderStatus
from ordering.reconciliation.manual import ConfirmPaymentManually
from ordering.reconciliation.poller import BankFeedPoller
from ordering.reconciliation.webhook import receive_bank_webhook
from ordering.settings import get_settings
from ordering.stock.management import RegisterVariantStock, RestockVariant
from ordering.stock.stock import VariantStock


def _instructions_response(order):
    instructions = transfer_instructions(order, get_settings().payment_reference_prefix)
    if instructions is None:
        return None
    return PaymentInstructionsResponse(
        bank_code=instructions.bank_code,
        account_number=instructions.account_number,
        account_name=instructions.account_name,
        amount=instructions.amount,
        memo=instructions.memo,
        reserved_until=instructions.reserved_until,
        qr_image_url=instructions.qr_image_url,
    )


def _owned_order(order_id, user_id):
    """Load an order; a caller who does not own it gets the same 404 as a missing one."""
    order = current_domain.repository_for(Order).get(order_id)
    if user_id is not None and str(order.user_id) != user_id:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _status_view(order):
    return OrderStatusView(
        order_id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        payment_status=order.payment_status,
        total=order.pricing.total,
        currency=order.pricing.currency,
        created_at=order.created_at,
    )


def _status_response(order):
    return OrderStatusResponse(order_id=str(order.id), status=order.status, payment_status=order.payment_status)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderPlacedResponse)
async def place_order(body: PlaceOrderRequest) -> OrderPlacedResponse:
    items_data = [item.model_dump() for item in body.items]
    command = PlaceOrder(
        user_id=body.user_id,
        items=json.dumps(items_data),
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        payment_method=body.payment_method,
        discount=body.discount,
        coupon_code=body.coupon_code,
    )
    order_id = current_domain.process(command, asynchronous=False)

    order = current_domain.repository_for(Order).get(order_id)
    return OrderPlacedResponse(
        order_id=order_id,
        order_number=order.order_number,
        total=order.pricing.total,
        payment_status=order.payment_status,
        payment_instructions=_instructions_response(order),
    )


@order_router.get("/{order_id}", response_model=OrderStatusView)
async def get_order(order_id: str, x_user_id: str | None = Header(default=None)) -> OrderStatusView:
    return _status_view(_owned_order(order_id, x_user_id))


@order_router.get("/{order_id}/payment-instructions", response_model=PaymentInstructionsResponse)
async def get_payment_instructions(
    order_id: str, x_user_id: str | None = Header(default=None)
) -> PaymentInstructionsResponse:
    instructions = _instructions_response(_owned_order(order_id, x_user_id))
    if instructions is None:
        raise HTTPException(status_code=404, detail="Order is not paid by bank transfer")
    return instructions


@order_router.post("/{order_id}/cancel", response_model=OrderStatusResponse)
async def cancel_order(
    order_id: str, body: CancelOrderRequest, x_user_id: str | None = Header(default=None)
) -> OrderStatusResponse:
    _owned_order(order_id, x_user_id)
    current_domain.process(
        CancelOrder(order_id=order_id, reason=body.reason, cancelled_by="Customer"),
        asynchronous=False,
    )
    return _status_response(current_domain.repository_for(Order).get(order_id))


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@admin_router.get("/pending-payment", response_model=list[PendingPaymentView])
async def list_pending_payments() -> list[PendingPaymentView]:
    prefix = get_settings().payment_reference_prefix
    orders = current_domain.repository_for(Order).find_awaiting_transfer()
    views = [
        PendingPaymentView(
            order_id=str(order.id),
            order_number=order.order_number,
            user_id=str(order.user_id),
            amount=order.bank_transfer.amount,
            memo=payment_memo(order.payment_reference, prefix),
            reserved_until=order.reserved_until,
            time_left_minutes=order.minutes_left_to_pay(),
            is_expired=order.is_payment_expired(),
        )
        for order in orders
    ]
    return sorted(views, key=lambda view: view.reserved_until)


@admin_router.get("/{order_id}", response_model=OrderDetailView)
async def get_order_detail(order_id: str) -> OrderDetailView:
    order = current_domain.repository_for(Order).get(order_id)
    transfer = order.bank_transfer
    return OrderDetailView(
        **_status_view(order).model_dump(),
        user_id=str(order.user_id),
        payment_method=order.payment_method,
        payment_reference=order.payment_reference,
        subtotal=order.pricing.subtotal,
        tax=order.pricing.tax,
        shipping_fee=order.pricing.shipping_fee,
        discount=order.pricing.discount,
        items=[
            OrderItemView(
                variant_id=str(item.variant_id),
                product_name=item.product_name,
                sku=item.sku,
                unit_price=item.unit_price,
                quantity=item.quantity,
                subtotal=item.subtotal,
            )
            for item in order.items
        ],
        status_history=[
            StatusChangeSchema(status=change.status, changed_at=change.changed_at, note=change.note)
            for change in order.history
        ],
        reserved_until=order.reserved_until,
        transaction_id=transfer.transaction_id if transfer else None,
        paid_amount=transfer.paid_amount if transfer else None,
        paid_at=order.paid_at,
        tracking_number=order.tracking_number,
        carrier=order.carrier,
    )


@admin_router.put("/{order_id}/status", response_model=OrderStatusResponse)
async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> OrderStatusResponse:
    parse_status(body.status)
    current_domain.process(
        UpdateOrderStatus(
            order_id=order_id,
            status=body.status,
            note=body.note,
            tracking_number=body.tracking_number,
            carrier=body.carrier,
        ),
        asynchronous=False,
    )
    return _status_response(current_domain.repository_for(Order).get(order_id))


@admin_router.post("/{order_id}/confirm-payment", response_model=ManualConfirmationResponse)
async def confirm_payment(order_id: str, body: ConfirmPaymentRequest) -> ManualConfirmationResponse:
    transaction_id = current_domain.process(
        ConfirmPaymentManually(
            order_id=order_id,
            transaction_id=body.transaction_id,
            amount=body.amount,
            note=body.note,
        ),
        asynchronous=False,
    )
    order = current_domain.repository_for(Order).get(order_id)
    notify_safely(
        "payment_confirmed",
        order_id=str(order.id),
        order_number=order.order_number,
        transaction_id=transaction_id,
    )
    return ManualConfirmationResponse(**_status_response(order).model_dump(), transaction_id=transaction_id)


@admin_router.post("/{order_id}/cancel-expired", response_model=OrderStatusResponse)
async def cancel_expired_order(order_id: str) -> OrderStatusResponse:
    return _status_response(expire_order(order_id))


@admin_router.post("/{order_id}/payment-refunded", response_model=OrderStatusResponse)
async def mark_payment_refunded(order_id: str, body: MarkPaymentRefundedRequest) -> OrderStatusResponse:
    current_domain.process(MarkPaymentRefunded(order_id=order_id, note=body.note), asynchronous=False)
    return _status_response(current_domain.repository_for(Order).get(order_id))


# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks/banking", tags=["webhooks"])


@webhook_router.post("/{bank}")
async def bank_webhook(bank: str, request: Request, x_signature: str | None = Header(default=None)) -> JSONResponse:
    body = await request.body()
    return JSONResponse(status_code=200, content=receive_bank_webhook(bank, body, x_signature))


# ---------------------------------------------------------------------------
# Inventory Router
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


def _stock_response(stock):
    return VariantStockResponse(
        variant_id=str(stock.variant_id),
        sku=stock.sku,
        available=stock.available,
        active_reservations=stock.reserved_units(),
    )


@inventory_router.post("", status_code=201, response_model=VariantStockResponse)
async def register_stock(body: RegisterStockRequest) -> VariantStockResponse:
    variant_id = current_domain.process(
        RegisterVariantStock(variant_id=body.variant_id, sku=body.sku, available=body.available),
        asynchronous=False,
    )
    return _stock_response(current_domain.repository_for(VariantStock).get(variant_id))


@inventory_router.put("/{variant_id}/restock", response_model=VariantStockResponse)
async def restock_variant(variant_id: str, body: RestockRequest) -> VariantStockResponse:
    current_domain.process(RestockVariant(variant_id=variant_id, quantity=body.quantity), asynchronous=False)
    return _stock_response(current_domain.repository_for(VariantStock).get(variant_id))


@inventory_router.get("/{variant_id}", response_model=VariantStockResponse)
async def get_stock(variant_id: str) -> VariantStockResponse:
    return _stock_response(current_domain.repository_for(VariantStock).get(variant_id))


# ---------------------------------------------------------------------------
# Maintenance Router (external cron alternative to the scheduler)
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/sweep-expired-orders", response_model=SweepResponse)
async def sweep_expired() -> SweepResponse:
    report = sweep_expired_orders()
    return SweepResponse(expired=report.expired, skipped=report.skipped, failed=report.failed)


@maintenance_router.post("/poll-bank-feed", response_model=PollResponse)
async def poll_bank_feed() -> PollResponse:
    report = BankFeedPoller().poll_once()
    return PollResponse(
        fetched=report.fetched,
        matched=report.matched,
        invalid=report.invalid,
        failed=report.failed,
        outcomes=report.outcomes,
        feed_error=report.feed_error,
    )
