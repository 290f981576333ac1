"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    full_name: str
    phone: str
    street: str
    ward: str | None = None
    district: str | None = None
    city: str


class OrderLineSchema(BaseModel):
    """A cart line resolved by the catalog: price and product snapshot."""

    variant_id: str
    product_id: str | None = None
    product_name: str
    product_slug: str | None = None
    sku: str | None = None
    image: str | None = None
    attributes: dict[str, str] | None = None
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    user_id: str
    items: list[OrderLineSchema]
    shipping_address: AddressSchema
    payment_method: str
    discount: float = Field(default=0.0, ge=0)
    coupon_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "items": [
                        {
                            "variant_id": "var-001",
                            "product_name": "Linen Shirt",
                            "sku": "SHIRT-M-WHT",
                            "attributes": {"size": "M", "color": "white"},
                            "unit_price": 250000,
                            "quantity": 2,
                        }
                    ],
                    "shipping_address": {
                        "full_name": "Nguyen Van A",
                        "phone": "0900000000",
                        "street": "1 Le Loi",
                        "district": "District 1",
                        "city": "Ho Chi Minh City",
                    },
                    "payment_method": "bank_transfer",
                }
            ]
        }
    }


class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# Admin Request Schemas
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str
    note: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None


class ConfirmPaymentRequest(BaseModel):
    transaction_id: str | None = None
    amount: float | None = Field(default=None, ge=0)
    note: str | None = None


class MarkPaymentRefundedRequest(BaseModel):
    note: str | None = None


# ---------------------------------------------------------------------------
# Inventory Request Schemas
# ---------------------------------------------------------------------------
class RegisterStockRequest(BaseModel):
    variant_id: str
    sku: str | None = None
    available: int = Field(ge=0)


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class PaymentInstructionsResponse(BaseModel):
    bank_code: str
    account_number: str
    account_name: str | None = None
    amount: float
    memo: str
    reserved_until: datetime
    qr_image_url: str


class OrderPlacedResponse(BaseModel):
    order_id: str
    order_number: str
    total: float
    payment_status: str
    payment_instructions: PaymentInstructionsResponse | None = None


class OrderStatusView(BaseModel):
    """What the buyer sees: status and payment status, never matching internals."""

    order_id: str
    order_number: str
    status: str
    payment_status: str
    total: float
    currency: str
    created_at: datetime | None = None


class StatusChangeSchema(BaseModel):
    status: str
    changed_at: datetime
    note: str | None = None


class OrderItemView(BaseModel):
    variant_id: str
    product_name: str
    sku: str | None = None
    unit_price: float
    quantity: int
    subtotal: float


class OrderDetailView(OrderStatusView):
    user_id: str
    payment_method: str
    payment_reference: str | None = None
    subtotal: float
    tax: float
    shipping_fee: float
    discount: float
    items: list[OrderItemView]
    status_history: list[StatusChangeSchema]
    reserved_until: datetime | None = None
    transaction_id: str | None = None
    paid_amount: float | None = None
    paid_at: datetime | None = None
    tracking_number: str | None = None
    carrier: str | None = None


class PendingPaymentView(BaseModel):
    order_id: str
    order_number: str
    user_id: str
    amount: float
    memo: str
    reserved_until: datetime
    time_left_minutes: int
    is_expired: bool


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str
    payment_status: str


class ManualConfirmationResponse(OrderStatusResponse):
    transaction_id: str


class VariantStockResponse(BaseModel):
    variant_id: str
    sku: str | None = None
    available: int
    active_reservations: int


class SweepResponse(BaseModel):
    expired: int
    skipped: int
    failed: int


class PollResponse(BaseModel):
    fetched: int
    matched: int
    invalid: int
    failed: int
    outcomes: dict[str, int]
    feed_error: str | None = None
