"""StockEntry aggregate (CQRS): one ledger row of a product at a location.

Rows are keyed logically by their *merge key* ``(name, asin, barcode,
location_code, shelf_number)``. Several persisted rows may share a merge key
because inbound stock is recorded independently; readers aggregate them (see
``warehouse.ledger.summaries``). Nothing collapses rows on insert.

Quantity never goes below zero: every method that takes stock out checks the
row first and leaves it untouched when the check fails.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Integer, String

from warehouse.config import AWAITING_LOCATION, is_known_location, is_valid_shelf
from warehouse.domain import warehouse
from warehouse.errors import (
    InsufficientStockError,
    InvalidLocationError,
    InvalidQuantityError,
    QuantityIncreaseNotConfirmedError,
)
from warehouse.ledger.events import (
    StockAdded,
    StockDeducted,
    StockEntryEdited,
    StockRelocated,
    StockRestored,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class EntryStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"


class FulfillmentType(Enum):
    FBA = "fba"
    MF = "mf"


# Fields an operator may change through an edit. Quantity is handled apart
# because increases need confirmation.
EDITABLE_FIELDS = (
    "name",
    "price",
    "location_code",
    "shelf_number",
    "supplier",
    "asin",
    "status",
    "damaged_items",
    "fulfillment_type",
    "store_name",
    "unit",
    "barcode",
)


def normalize(value):
    """Missing optional identifiers compare equal to the empty string."""
    return "" if value is None else str(value)


def merge_key(name, asin, barcode, location_code, shelf_number):
    return (
        normalize(name),
        normalize(asin),
        normalize(barcode),
        normalize(location_code),
        normalize(shelf_number),
    )


def validate_location(location_code, shelf_number):
    """Reject unknown location codes and out-of-range shelves."""
    if not is_known_location(location_code):
        raise InvalidLocationError({"location_code": [f"Unknown location code: {location_code}"]})
    if not is_valid_shelf(location_code, shelf_number):
        raise InvalidLocationError(
            {"shelf_number": [f"Shelf {shelf_number} does not exist at location {location_code}"]}
        )


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@warehouse.aggregate
class StockEntry:
    """Quantity of one product held at one location/shelf."""

    name = String(required=True, max_length=255)
    quantity = Integer(default=0, min_value=0)
    price = Float(default=0.0, min_value=0.0)
    unit = String(max_length=50)
    supplier = String(max_length=255)
    location_code = String(required=True, max_length=50)
    shelf_number = String(max_length=10)
    barcode = String(max_length=100)
    asin = String(max_length=500)  # May hold several comma-separated ASINs
    status = String(choices=EntryStatus, default=EntryStatus.ACTIVE.value)
    damaged_items = Integer(default=0, min_value=0)
    fulfillment_type = String(choices=FulfillmentType, default=FulfillmentType.MF.value)
    store_name = String(max_length=255)
    last_updated = DateTime()

    @invariant.post
    def shelf_must_exist_at_location(self):
        if not is_known_location(self.location_code) or not is_valid_shelf(self.location_code, self.shelf_number):
            raise ValidationError(
                {"shelf_number": [f"Shelf {self.shelf_number} does not exist at location {self.location_code}"]}
            )

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        name,
        quantity,
        location_code,
        shelf_number=None,
        price=0.0,
        unit=None,
        supplier=None,
        barcode=None,
        asin=None,
        status=EntryStatus.ACTIVE.value,
        damaged_items=0,
        fulfillment_type=FulfillmentType.MF.value,
        store_name=None,
    ):
        """Record a new ledger row. Names are stored uppercased."""
        if quantity is None or quantity < 0:
            raise InvalidQuantityError({"quantity": ["Quantity cannot be negative"]})
        if not name or not name.strip():
            raise ValidationError({"name": ["Product name is required"]})
        shelf_number = _clean(shelf_number)
        validate_location(location_code, shelf_number)

        now = datetime.now(UTC)
        entry = cls(
            name=name.strip().upper(),
            quantity=quantity,
            price=price or 0.0,
            unit=_clean(unit),
            supplier=_clean(supplier),
            location_code=location_code,
            shelf_number=shelf_number,
            barcode=_clean(barcode),
            asin=_clean(asin),
            status=status or EntryStatus.ACTIVE.value,
            damaged_items=damaged_items or 0,
            fulfillment_type=fulfillment_type or FulfillmentType.MF.value,
            store_name=_clean(store_name),
            last_updated=now,
        )
        entry.raise_(
            StockAdded(
                stock_entry_id=str(entry.id),
                name=entry.name,
                barcode=entry.barcode,
                location_code=entry.location_code,
                shelf_number=entry.shelf_number,
                quantity=entry.quantity,
                added_at=now,
            )
        )
        return entry

    @classmethod
    def clone_at(cls, source, location_code, shelf_number, quantity):
        """New row carrying ``source``'s product fields at another location."""
        return cls.create(
            name=source.name,
            quantity=quantity,
            location_code=location_code,
            shelf_number=shelf_number,
            price=source.price,
            unit=source.unit,
            supplier=source.supplier,
            barcode=source.barcode,
            asin=source.asin,
            status=source.status,
            damaged_items=0,
            fulfillment_type=source.fulfillment_type,
            store_name=source.store_name,
        )

    # -------------------------------------------------------------------
    # Identity helpers
    # -------------------------------------------------------------------
    @property
    def merge_key(self):
        return merge_key(self.name, self.asin, self.barcode, self.location_code, self.shelf_number)

    @property
    def location_label(self):
        if self.location_code == AWAITING_LOCATION or not self.shelf_number:
            return self.location_code
        return f"{self.location_code}-{self.shelf_number}"

    def describe(self):
        return f"{self.name} (barcode: {self.barcode or 'n/a'})"

    # -------------------------------------------------------------------
    # Quantity changes
    # -------------------------------------------------------------------
    def deduct(self, quantity, reason=None):
        """Take ``quantity`` units out of this row."""
        if quantity is None or quantity <= 0:
            raise InvalidQuantityError({"quantity": ["Quantity must be positive"]})
        if quantity > self.quantity:
            raise InsufficientStockError(
                {"quantity": [f"Insufficient stock: {self.quantity} available, {quantity} requested"]}
            )

        now = datetime.now(UTC)
        previous = self.quantity
        self.quantity = previous - quantity
        self.last_updated = now
        self.raise_(
            StockDeducted(
                stock_entry_id=str(self.id),
                quantity=quantity,
                previous_quantity=previous,
                new_quantity=self.quantity,
                reason=reason,
                deducted_at=now,
            )
        )

    def restore(self, quantity, reason=None):
        """Put ``quantity`` units back into this row."""
        if quantity is None or quantity <= 0:
            raise InvalidQuantityError({"quantity": ["Quantity must be positive"]})

        now = datetime.now(UTC)
        previous = self.quantity
        self.quantity = previous + quantity
        self.last_updated = now
        self.raise_(
            StockRestored(
                stock_entry_id=str(self.id),
                quantity=quantity,
                previous_quantity=previous,
                new_quantity=self.quantity,
                reason=reason,
                restored_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------
    def edit(self, changes, confirm_increase=False):
        """Apply a partial update and return the itemized diff.

        ``changes`` maps field names to new values. A quantity increase is
        rejected unless ``confirm_increase`` is set, because the operator may
        mean newly received stock or a count correction. Decreases apply at
        once. Returns a list of ``(field, old, new)`` for fields that changed.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS) - {"quantity"}
        if unknown:
            raise ValidationError({"fields": [f"Fields cannot be edited: {', '.join(sorted(unknown))}"]})

        new_quantity = changes.get("quantity")
        if new_quantity is not None:
            if new_quantity < 0:
                raise InvalidQuantityError({"quantity": ["Quantity cannot be negative"]})
            if new_quantity > self.quantity and not confirm_increase:
                raise QuantityIncreaseNotConfirmedError(
                    {
                        "quantity": [
                            f"Increasing quantity from {self.quantity} to {new_quantity} requires confirmation"
                        ]
                    }
                )

        updates = {}
        for field_name, value in changes.items():
            if field_name == "name" and value is not None:
                value = value.strip().upper()
            elif field_name in ("shelf_number", "barcode", "asin", "unit", "supplier", "store_name"):
                value = _clean(value)
            if value != getattr(self, field_name):
                updates[field_name] = value

        if "price" in updates and updates["price"] is not None and updates["price"] < 0:
            raise ValidationError({"price": ["Price cannot be negative"]})
        if "damaged_items" in updates and updates["damaged_items"] is not None and updates["damaged_items"] < 0:
            raise ValidationError({"damaged_items": ["Damaged items cannot be negative"]})
        if "name" in updates and not updates["name"]:
            raise ValidationError({"name": ["Product name is required"]})
        if "location_code" in updates or "shelf_number" in updates:
            validate_location(
                updates.get("location_code", self.location_code),
                updates.get("shelf_number", self.shelf_number),
            )

        if not updates:
            return []

        diff = [(field_name, getattr(self, field_name), value) for field_name, value in updates.items()]
        now = datetime.now(UTC)
        with atomic_change(self):
            for field_name, value in updates.items():
                setattr(self, field_name, value)
            self.last_updated = now

        self.raise_(
            StockEntryEdited(
                stock_entry_id=str(self.id),
                changes=json.dumps([{"field": f, "old": old, "new": new} for f, old, new in diff], default=str),
                edited_at=now,
            )
        )
        return diff

    # -------------------------------------------------------------------
    # Relocation
    # -------------------------------------------------------------------
    def relocate(self, location_code, shelf_number):
        """Move the whole row, keeping its identity."""
        shelf_number = _clean(shelf_number)
        validate_location(location_code, shelf_number)
        if (location_code, normalize(shelf_number)) == (self.location_code, normalize(self.shelf_number)):
            raise InvalidLocationError({"location_code": ["Stock is already at this location"]})

        now = datetime.now(UTC)
        from_location, from_shelf = self.location_code, self.shelf_number
        with atomic_change(self):
            self.location_code = location_code
            self.shelf_number = shelf_number
            self.last_updated = now

        self.raise_(
            StockRelocated(
                stock_entry_id=str(self.id),
                quantity=self.quantity,
                from_location=from_location,
                from_shelf=from_shelf,
                to_location=location_code,
                to_shelf=shelf_number,
                relocated_at=now,
            )
        )
