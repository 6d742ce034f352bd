"""Domain events for the StockEntry aggregate.

Events describe ledger movements for downstream consumers (dashboards,
replenishment). The activity log is written directly by command handlers and
does not depend on these events being processed.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from warehouse.domain import warehouse


@warehouse.event(part_of="StockEntry")
class StockAdded:
    """A new ledger row was created for a product at a location."""

    __version__ = 1

    stock_entry_id = Identifier(required=True)
    name = String(required=True)
    barcode = String()
    location_code = String(required=True)
    shelf_number = String()
    quantity = Integer(required=True)
    added_at = DateTime(required=True)


@warehouse.event(part_of="StockEntry")
class StockDeducted:
    """Quantity was taken out of a ledger row."""

    __version__ = 1

    stock_entry_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    reason = String()
    deducted_at = DateTime(required=True)


@warehouse.event(part_of="StockEntry")
class StockRestored:
    """Quantity was put back into a ledger row (move target, job correction)."""

    __version__ = 1

    stock_entry_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    reason = String()
    restored_at = DateTime(required=True)


@warehouse.event(part_of="StockEntry")
class StockEntryEdited:
    """One or more fields of a ledger row changed."""

    __version__ = 1

    stock_entry_id = Identifier(required=True)
    changes = Text(required=True)  # JSON list of {field, old, new}
    edited_at = DateTime(required=True)


@warehouse.event(part_of="StockEntry")
class StockRelocated:
    """A whole ledger row moved to another location, keeping its identity."""

    __version__ = 1

    stock_entry_id = Identifier(required=True)
    quantity = Integer(required=True)
    from_location = String(required=True)
    from_shelf = String()
    to_location = String(required=True)
    to_shelf = String()
    relocated_at = DateTime(required=True)
