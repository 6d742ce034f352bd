"""Pydantic request/response schemas for the Warehouse API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Operator identity
# ---------------------------------------------------------------------------
class Operator(BaseModel):
    """Who is acting. Authentication happens upstream; we only attribute."""

    name: str | None = None
    role: str | None = None


# ---------------------------------------------------------------------------
# Inventory Request Schemas
# ---------------------------------------------------------------------------
class AddStockRequest(BaseModel):
    name: str | None = None
    quantity: int = Field(ge=0)
    location_code: str
    shelf_number: str | None = None
    price: float = Field(ge=0, default=0.0)
    unit: str | None = None
    supplier: str | None = None
    barcode: str | None = None
    asin: str | None = None
    status: str = "active"
    damaged_items: int = Field(ge=0, default=0)
    fulfillment_type: str = "mf"
    store_name: str | None = None


class DeductStockRequest(BaseModel):
    quantity: int
    reason: str | None = None


class EditStockEntryRequest(BaseModel):
    changes: dict[str, Any]
    confirm_increase: bool = False


class MoveStockRequest(BaseModel):
    quantity: int
    location_code: str
    shelf_number: str | None = None


# ---------------------------------------------------------------------------
# Location Request Schemas
# ---------------------------------------------------------------------------
class SetLocationAvailabilityRequest(BaseModel):
    is_available: bool


# ---------------------------------------------------------------------------
# Job Request Schemas
# ---------------------------------------------------------------------------
class PickItemRequest(BaseModel):
    stock_entry_id: str
    quantity: int
    reason: str | None = None
    store_name: str | None = None


class ScanItemRequest(BaseModel):
    barcode: str
    location_code: str
    shelf_number: str | None = None
    quantity: int = 1


class ChangeItemQuantityRequest(BaseModel):
    barcode: str
    location_code: str
    shelf_number: str | None = None
    quantity: int


class SetItemVerifiedRequest(BaseModel):
    barcode: str
    verified: bool = True
    location_code: str | None = None
    shelf_number: str | None = None
    expected_revision: int | None = None


class UpdateJobItemRequest(BaseModel):
    barcode: str | None = None
    quantity: int
    restore_stock: bool = False
    expected_revision: int | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class HiddenProductSchema(BaseModel):
    stock_entry_id: str
    location_code: str
    shelf_number: str | None = None


class AddStockResponse(BaseModel):
    stock_entry_id: str
    removed_hidden_products: list[HiddenProductSchema] = []


class StockEntryResponse(BaseModel):
    id: str
    name: str
    quantity: int
    price: float | None = None
    unit: str | None = None
    supplier: str | None = None
    location_code: str
    shelf_number: str | None = None
    barcode: str | None = None
    asin: str | None = None
    status: str | None = None
    damaged_items: int | None = None
    fulfillment_type: str | None = None
    store_name: str | None = None
    last_updated: datetime | None = None


class LocationSummaryResponse(BaseModel):
    name: str
    asin: str | None = None
    barcode: str | None = None
    location_code: str
    shelf_number: str | None = None
    quantity: int
    last_updated: datetime | None = None
    stock_entry_ids: list[str]


class DeductStockResponse(BaseModel):
    quantity: int


class EditStockEntryResponse(BaseModel):
    changed_fields: list[str]


class MoveStockResponse(BaseModel):
    stock_entry_id: str


class LocationResponse(BaseModel):
    location_code: str
    is_available: bool
    max_shelf_number: int | None = None


class JobIdResponse(BaseModel):
    job_id: str


class JobItemResponse(BaseModel):
    barcode: str | None = None
    name: str | None = None
    asin: str | None = None
    quantity: int
    verified: bool = False
    location_code: str | None = None
    shelf_number: str | None = None
    reason: str | None = None
    store_name: str | None = None
    position: int
    reconciled_quantity: int = 0
    revision: int = 1


class PendingStockUpdateResponse(BaseModel):
    stock_entry_id: str
    deducted_quantity: int
    reason: str | None = None
    store_name: str | None = None
    location_code: str | None = None
    shelf_number: str | None = None
    barcode: str | None = None


class JobResponse(BaseModel):
    id: str
    job_number: str
    status: str
    created_by: str | None = None
    picker: str | None = None
    packer: str | None = None
    picking_time: int | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime | None = None
    item_count: int
    total_units: int
    items: list[JobItemResponse]
    pending_updates: list[PendingStockUpdateResponse] = []


class ActivityResponse(BaseModel):
    user: str
    role: str | None = None
    detail: str
    time: datetime
