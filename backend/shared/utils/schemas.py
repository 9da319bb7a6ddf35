"""
Shared Pydantic schemas used across the application.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Common Types
# =============================================================================

ProductType = Literal["simple", "variant", "combo"]
SelectionType = Literal["single", "multiple"]
PriceType = Literal["add", "replace", "multiply"]
OrderType = Literal["dine_in", "takeaway", "delivery"]
OrderStatus = Literal["draft", "open", "preparing", "ready", "completed", "cancelled", "voided"]
PaymentStatus = Literal["unpaid", "partial", "paid", "refunded", "void"]
PaymentMethod = Literal["cash", "card", "other"]


class OutputModel(BaseModel):
    """Base for response models built from ORM rows or domain dataclasses."""

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    """Body returned for every handled error."""

    detail: str
    kind: str


class HealthOutput(BaseModel):
    status: str
    database: str
    environment: str


# =============================================================================
# Catalog Schemas
# =============================================================================


class CategoryProductOutput(OutputModel):
    """Product listed under a category in the browse tree."""

    id: int
    name: str
    display_name: str | None = None
    product_type: ProductType
    base_price: Decimal
    price: Decimal
    sku: str | None = None
    is_available: bool = True
    has_modifiers: bool = False
    is_combo: bool = False


class CategoryOutput(OutputModel):
    id: int
    name: str
    display_name: str | None = None
    sort_order: int
    color_hex: str | None = None
    is_active: bool
    parent_id: int | None = None


class CategoryNodeOutput(OutputModel):
    """One node of the category tree. children is ordered by (sort_order, name)."""

    id: int
    name: str
    display_name: str | None = None
    sort_order: int
    color_hex: str | None = None
    is_active: bool
    parent_id: int | None = None
    parent_ids: list[int] = Field(default_factory=list)
    children: list["CategoryNodeOutput"] = Field(default_factory=list)
    products: list[CategoryProductOutput] | None = None


class SubcategoryLinkOutput(OutputModel):
    """A junction row: subcategory placed under an additional parent."""

    id: int
    name: str
    display_name: str | None = None
    parent_id: int
    sort_order: int


class SetParentsRequest(BaseModel):
    parent_ids: list[int] = Field(default_factory=list)


class AssignParentRequest(BaseModel):
    parent_id: int | None = None


class EffectivePriceOutput(OutputModel):
    product_id: int
    location_id: int | None = None
    price: Decimal
    base_price: Decimal
    is_location_specific: bool


class LocationPriceRequest(BaseModel):
    price: Decimal = Field(ge=0)


class LocationPriceOutput(OutputModel):
    product_id: int
    location_id: int
    price: Decimal


class AvailabilityOutput(BaseModel):
    product_id: int
    is_available: bool


class ModifierOutput(OutputModel):
    id: int
    name: str
    display_name: str | None = None
    price_type: PriceType
    price_change: Decimal | None = None
    is_default: bool
    sort_order: int


class ResolvedGroupOutput(OutputModel):
    """Modifier group as offered for one product, overrides applied."""

    id: int
    link_id: int
    name: str
    display_name: str | None = None
    selection_type: SelectionType
    is_required: bool
    min_selections: int
    max_selections: int
    sort_order: int
    modifiers: list[ModifierOutput] = Field(default_factory=list)


class LinkModifierGroupRequest(BaseModel):
    """Attach a group to a product. None keeps the group's own rule."""

    modifier_group_id: int
    is_required: bool | None = None
    min_selections: int | None = Field(default=None, ge=0)
    max_selections: int | None = Field(default=None, ge=0)
    sort_order: int = 0
    excluded_modifier_ids: list[int] = Field(default_factory=list)


class UpdateModifierLinkRequest(BaseModel):
    is_required: bool | None = None
    min_selections: int | None = Field(default=None, ge=0)
    max_selections: int | None = Field(default=None, ge=0)
    sort_order: int | None = None
    is_active: bool | None = None
    excluded_modifier_ids: list[int] | None = None


class ModifierLinkOutput(OutputModel):
    id: int
    product_id: int
    modifier_group_id: int
    is_required: bool | None = None
    min_selections: int | None = None
    max_selections: int | None = None
    sort_order: int
    is_active: bool
    excluded_modifier_ids: list[int] = Field(default_factory=list)


class ExpandedItemOutput(OutputModel):
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    selection_group: str | None = None
    is_combo_item: bool = True
    combo_product_id: int
    sort_order: int


class ComboExpansionOutput(OutputModel):
    combo_product_id: int
    combo_name: str
    combo_price: Decimal
    quantity: int
    items: list[ExpandedItemOutput]
    total_quantity: int


class ComboItemRequest(BaseModel):
    item_product_id: int
    quantity: int = 1
    price_override: Decimal | None = Field(default=None, ge=0)
    selection_group: str | None = Field(default=None, max_length=100)
    sort_order: int | None = None


class ReplaceComboItemsRequest(BaseModel):
    items: list[ComboItemRequest] = Field(min_length=1)


class ComboSavingsOutput(OutputModel):
    regular_price: Decimal
    savings: Decimal
    display_savings: Decimal


class ComboSummaryOutput(OutputModel):
    combo_product_id: int
    price: Decimal
    regular_price: Decimal
    savings: Decimal
    display_savings: Decimal
    groups: dict[str, list[ExpandedItemOutput]]


# =============================================================================
# Order Schemas
# =============================================================================


class OrderItemInput(BaseModel):
    """A requested line. Combo products expand into one line per component."""

    product_id: int
    quantity: int = 1
    modifier_ids: list[int] = Field(default_factory=list)
    special_instructions: str | None = Field(default=None, max_length=500)


class CreateOrderRequest(BaseModel):
    """Body of POST /api/orders."""

    location_id: int | None = None  # Falls back to the token's location
    order_type: OrderType = "dine_in"
    customer_name: str | None = Field(default=None, max_length=200)
    customer_phone: str | None = Field(default=None, max_length=50)
    customer_email: str | None = Field(default=None, max_length=200)
    table_number: str | None = Field(default=None, max_length=20)
    notes: str | None = Field(default=None, max_length=2000)
    items: list[OrderItemInput] = Field(min_length=1)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    tax_rate: Decimal | None = Field(default=None, ge=0, le=1)


class UpdateOrderStatusRequest(BaseModel):
    order_status: OrderStatus
    void_reason: str | None = Field(default=None, max_length=500)


class ApplyPaymentRequest(BaseModel):
    amount: Decimal
    payment_method: PaymentMethod = "cash"
    cash_tendered: Decimal | None = None
    reference: str | None = Field(default=None, max_length=200)


class RefundRequest(BaseModel):
    amount: Decimal | None = None


class OrderItemModifierOutput(OutputModel):
    id: int
    modifier_id: int
    modifier_group_id: int
    modifier_name: str
    price_type: PriceType
    modifier_price: Decimal
    quantity: int


class OrderItemOutput(OutputModel):
    id: int
    product_id: int
    item_name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    special_instructions: str | None = None
    sort_order: int
    is_combo_item: bool
    combo_product_id: int | None = None
    selection_group: str | None = None
    modifiers: list[OrderItemModifierOutput] = Field(default_factory=list)


class PaymentOutput(OutputModel):
    id: int
    order_id: int
    payment_method: PaymentMethod
    amount: Decimal
    cash_tendered: Decimal | None = None
    cash_change: Decimal | None = None
    payment_status: str
    reference: str | None = None
    processed_by_user_id: int | None = None
    captured_at: datetime | None = None


class OrderOutput(OutputModel):
    id: int
    location_id: int
    order_number: str
    display_number: str
    order_type: OrderType
    order_status: OrderStatus
    payment_status: PaymentStatus
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    table_number: str | None = None
    notes: str | None = None
    sent_to_kitchen_at: datetime | None = None
    kitchen_completed_at: datetime | None = None
    completed_at: datetime | None = None
    voided_at: datetime | None = None
    void_reason: str | None = None
    voided_by_user_id: int | None = None
    created_by_user_id: int | None = None
    created_at: datetime | None = None
    meta: dict = Field(default_factory=dict)
    items: list[OrderItemOutput] = Field(default_factory=list)
    payments: list[PaymentOutput] = Field(default_factory=list)


class OrderListOutput(BaseModel):
    orders: list[OrderOutput]
    total: int
    limit: int
    offset: int


class OrderStatsOutput(BaseModel):
    total_orders: int
    open_orders: int
    completed_orders: int
    total_sales: Decimal
