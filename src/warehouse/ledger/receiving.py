"""Stock receiving: AddStock command and handler.

Each inbound record becomes a new ledger row, even when a row with the same
merge key exists. Zero-quantity rows sharing the new row's barcode are
"hidden products" left behind after stock ran out; they are removed once the
product is restocked and reported back so the operator knows where they were.
"""

import structlog
from protean import handle
from protean.fields import Float, Integer, String
from protean.utils.globals import current_domain

from warehouse.audit.activity_log import record_activity
from warehouse.domain import warehouse
from warehouse.ledger.queries import hidden_products
from warehouse.ledger.stock_entry import EntryStatus, FulfillmentType, StockEntry
from warehouse.lookup import get_product_lookup
from warehouse.movement.location import ensure_location_available

logger = structlog.get_logger(__name__)


@warehouse.command(part_of="StockEntry")
class AddStock:
    """Record stock received into a location."""

    name = String(max_length=255)
    quantity = Integer(required=True)
    location_code = String(required=True, max_length=50)
    shelf_number = String(max_length=10)
    price = Float(default=0.0)
    unit = String(max_length=50)
    supplier = String(max_length=255)
    barcode = String(max_length=100)
    asin = String(max_length=500)
    status = String(default=EntryStatus.ACTIVE.value)
    damaged_items = Integer(default=0)
    fulfillment_type = String(default=FulfillmentType.MF.value)
    store_name = String(max_length=255)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


def _seed_from_catalogue(command):
    """Fill name, unit and asin from the product lookup when missing."""
    name, unit, asin = command.name, command.unit, command.asin
    if command.barcode and not (name and unit and asin):
        product = get_product_lookup().lookup(command.barcode)
        if product:
            name = name or product.get("name")
            unit = unit or product.get("unit")
            asin = asin or product.get("asin")
    return name, unit, asin


@warehouse.command_handler(part_of=StockEntry)
class AddStockHandler:
    @handle(AddStock)
    def add_stock(self, command):
        ensure_location_available(command.location_code)
        name, unit, asin = _seed_from_catalogue(command)

        entry = StockEntry.create(
            name=name,
            quantity=command.quantity,
            location_code=command.location_code,
            shelf_number=command.shelf_number,
            price=command.price,
            unit=unit,
            supplier=command.supplier,
            barcode=command.barcode,
            asin=asin,
            status=command.status,
            damaged_items=command.damaged_items,
            fulfillment_type=command.fulfillment_type,
            store_name=command.store_name,
        )

        repo = current_domain.repository_for(StockEntry)
        removed = []
        for hidden in hidden_products(entry.barcode):
            removed.append(
                {
                    "stock_entry_id": str(hidden.id),
                    "location_code": hidden.location_code,
                    "shelf_number": hidden.shelf_number,
                }
            )
            repo._dao.delete(hidden)
            record_activity(
                command.operator,
                command.operator_role,
                f"removed hidden product {hidden.describe()} from {hidden.location_label}",
            )

        repo.add(entry)
        record_activity(
            command.operator,
            command.operator_role,
            f"added {entry.quantity} of {entry.describe()} at {entry.location_label}",
        )
        logger.info(
            "Stock added",
            stock_entry_id=str(entry.id),
            barcode=entry.barcode,
            quantity=entry.quantity,
            hidden_removed=len(removed),
        )
        return {"stock_entry_id": str(entry.id), "removed_hidden_products": removed}
