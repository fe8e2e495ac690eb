# marketplace/domain/schemas.py
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# Decimal w JSON jako liczba, nie string
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """API mowi camelCase, serwisy zwracaja snake_case - aliasy robia mapowanie."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


# --- koszyk: wejscie ---

class AddItemIn(CamelModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi byc > 0)")
    quantity: int = Field(1, description="Ilosc produktu")


class UpdateQuantityIn(CamelModel):
    quantity: int


class ApplyCouponIn(CamelModel):
    coupon_code: str | None = None


class ShippingAddressIn(CamelModel):
    state: str | None = None
    city: str | None = None
    pincode: str | None = Field(None, max_length=10)
    address: str | None = None


class CheckoutIn(CamelModel):
    shipping_address: ShippingAddressIn | None = None


# --- koszyk: odpowiedzi ---

class SellerOut(CamelModel):
    id: int | None = None
    name: str | None = None
    verified: bool | None = None


class AvailabilityOut(CamelModel):
    is_available: bool
    price_changed: bool
    stock_changed: bool
    current_stock: int


class CartLineOut(CamelModel):
    item_id: int | None
    product_id: int
    category_id: int | None = None
    title: str
    slug: str | None = None
    image: str | None = None
    quantity: int
    price: Amount
    original_price: Amount
    discount_percent: Amount
    gst_percent: Amount
    listing_type: str
    condition: str | None = None
    unit: str | None = None
    seller: SellerOut
    availability: AvailabilityOut
    added_at: datetime | None = None


class BreakdownRowOut(CamelModel):
    item_id: int | None
    product_id: int
    title: str
    quantity: int
    unit_price: Amount
    gst_percent: Amount
    discount: Amount
    subtotal: Amount
    gst_amount: Amount


class CouponSummaryOut(CamelModel):
    id: int
    code: str
    description: str | None = None
    discount_type: str
    discount_value: Amount


class PricingSummaryOut(CamelModel):
    item_subtotal: Amount
    discount_amount: Amount
    coupon_discount: Amount
    coupon_details: CouponSummaryOut | None = None
    coupon_error: str | None = None
    subtotal_after_discounts: Amount
    gst_amount: Amount
    shipping_charges: Amount
    platform_fee: Amount
    final_payable_amount: Amount
    items_breakdown: List[BreakdownRowOut]
    total_savings: Amount


class SavingsOut(CamelModel):
    item_discounts: Amount
    coupon_discount: Amount
    total_savings: Amount
    savings_percent: Amount


class CartCouponOut(CamelModel):
    code: str
    discount: Amount
    valid: bool
    details: CouponSummaryOut | None = None


class CartWarningOut(CamelModel):
    item_id: int | None
    type: str
    message: str


class CartOut(CamelModel):
    items: List[CartLineOut]
    summary: PricingSummaryOut
    savings: SavingsOut
    coupon: CartCouponOut | None = None
    item_count: int
    has_issues: bool
    warnings: List[CartWarningOut]


class CartItemOut(CamelModel):
    item_id: int
    product_id: int
    quantity: int
    price_at_add: Amount
    discount_percent_at_add: Amount
    listing_type: str


class AddItemOut(CamelModel):
    item: CartItemOut
    session_token: str | None = None


class CartCountOut(CamelModel):
    count: int


class AppliedCouponOut(CamelModel):
    coupon: CouponSummaryOut
    discount_amount: Amount


class MergeOut(CamelModel):
    merged_items: int
    updated_items: int


class PriceDriftOut(CamelModel):
    old_price: Amount
    new_price: Amount
    difference: Amount
    change_percent: Amount


class StockItemOut(CamelModel):
    item_id: int | None
    product_id: int
    available: bool
    reason: str | None = None
    message: str | None = None
    requested_quantity: int | None = None
    available_quantity: int | None = None
    stock_available: int | None = None
    price_changed: bool = False
    price_details: PriceDriftOut | None = None


class StockSummaryOut(CamelModel):
    total_items: int
    available_items: int
    unavailable_items: int
    price_changed_items: int


class StockValidationOut(CamelModel):
    valid: bool
    items: List[StockItemOut]
    summary: StockSummaryOut


class EstimatedDeliveryOut(CamelModel):
    min_days: int
    max_days: int
    message: str


class ShippingEstimateOut(CamelModel):
    available: bool
    message: str | None = None
    zone: str | None = None
    base_charges: Amount | None = None
    charges: Amount | None = None
    is_free_shipping: bool | None = None
    free_shipping_threshold: Amount | None = None
    estimated_delivery: EstimatedDeliveryOut | None = None


class CheckoutSessionOut(CamelModel):
    session_token: str
    session_id: int
    summary: PricingSummaryOut
    expires_at: datetime
    expires_in: int


class CheckoutSessionDetailOut(CamelModel):
    session_token: str
    session_id: int
    status: str
    cart_snapshot: Any
    item_subtotal: Amount
    discount_amount: Amount
    coupon_discount: Amount
    gst_amount: Amount
    shipping_charges: Amount
    platform_fee: Amount
    final_amount: Amount
    coupon_code: str | None = None
    expires_at: datetime


# --- kupony ---

class ValidateCouponIn(CamelModel):
    coupon_code: str = Field(..., min_length=1)
    order_value: Decimal = Field(..., ge=0)


class CouponValidationOut(CamelModel):
    valid: bool
    coupon: CouponSummaryOut | None = None
    discount_amount: Amount | None = None
    error: str | None = None
    message: str
    required_amount: Amount | None = None


class CouponOut(CamelModel):
    code: str
    description: str | None = None
    discount_type: str
    discount_value: Amount
    max_discount: Amount | None = None
    min_order_value: Amount
    valid_until: datetime


class EligibilityOut(CamelModel):
    eligible: bool
    reason: str | None = None
    used_count: int | None = None
    remaining_uses: int | None = None
    max_allowed: int | None = None


# --- RFQ / oferty ---

class RFQCreateIn(CamelModel):
    """Schema dla tworzenia zapytania ofertowego."""

    title: str = Field(..., min_length=1, max_length=255)
    quantity: Decimal = Field(..., gt=0)
    unit: str = Field(..., min_length=1, max_length=50)
    category_id: int | None = None
    budget_min: Decimal | None = Field(None, ge=0)
    budget_max: Decimal | None = Field(None, ge=0)
    required_by_date: date | None = None
    detailed_requirements: str | None = None
    preferred_location: str | None = None
    attachments: List[str] = Field(default_factory=list)
    duration_days: int = Field(7, ge=1, le=90, description="Ile dni RFQ przyjmuje oferty")


class QuoteSubmitIn(CamelModel):
    quote_price: Decimal
    delivery_days: int
    valid_until: date
    notes: str | None = None


class QuoteAcceptIn(CamelModel):
    fulfill_rfq: bool = False


class QuoteRejectIn(CamelModel):
    reason: str | None = None


class QuoteOut(CamelModel):
    id: int
    quote_number: str
    rfq_id: int
    supplier_id: int
    buyer_id: int
    quote_price: Amount
    quantity: Amount
    unit: str
    delivery_days: int
    valid_until: date
    notes: str | None = None
    status: str
    accepted_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime | None = None


class RFQOut(CamelModel):
    id: int
    rfq_number: str
    buyer_id: int
    category_id: int | None = None
    title: str
    quantity: Amount
    unit: str
    budget_min: Amount | None = None
    budget_max: Amount | None = None
    required_by_date: date | None = None
    detailed_requirements: str | None = None
    preferred_location: str | None = None
    attachments: List[str] = []
    duration_days: int
    status: str
    view_count: int
    quote_count: int
    expires_at: datetime | None = None
    created_at: datetime | None = None


class RFQListItemOut(RFQOut):
    has_quoted: bool


class RFQDetailOut(RFQOut):
    has_quoted: bool
    my_quote: QuoteOut | None = None


class RFQClosedOut(RFQOut):
    expired_quotes: int


class PaginationOut(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class RFQListOut(CamelModel):
    rfqs: List[RFQListItemOut]
    pagination: PaginationOut


class QuoteSupplierOut(CamelModel):
    id: int
    name: str | None = None
    company_name: str | None = None
    verified: bool = False


class QuoteWithSupplierOut(QuoteOut):
    supplier: QuoteSupplierOut


class QuoteRFQOut(CamelModel):
    id: int
    rfq_number: str
    title: str
    status: str


class QuoteWithRFQOut(QuoteOut):
    rfq: QuoteRFQOut
