"""Stock moves between locations: MoveStock command and handler.

A full move relocates the row in place and keeps its id. A partial move
splits the row: the moved units merge into the destination row with the same
merge key, or into a fresh clone when there is none.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from warehouse.audit.activity_log import record_activity
from warehouse.domain import warehouse
from warehouse.errors import InvalidLocationError, InvalidQuantityError
from warehouse.ledger.queries import find_merge_candidates, get_entry
from warehouse.ledger.stock_entry import StockEntry, merge_key, normalize, validate_location
from warehouse.movement.location import ensure_location_available

logger = structlog.get_logger(__name__)


@warehouse.command(part_of="StockEntry")
class MoveStock:
    """Move units of a ledger row to another location/shelf."""

    stock_entry_id = Identifier(required=True)
    quantity = Integer(required=True)
    location_code = String(required=True, max_length=50)
    shelf_number = String(max_length=10)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command_handler(part_of=StockEntry)
class MoveStockHandler:
    @handle(MoveStock)
    def move_stock(self, command):
        source = get_entry(command.stock_entry_id)
        quantity = command.quantity
        if quantity is None or quantity < 1 or quantity > source.quantity:
            raise InvalidQuantityError(
                {"quantity": [f"Move quantity must be between 1 and {source.quantity}"]}
            )

        dest_location = command.location_code
        dest_shelf = (command.shelf_number or "").strip() or None
        validate_location(dest_location, dest_shelf)
        if (dest_location, normalize(dest_shelf)) == (source.location_code, normalize(source.shelf_number)):
            raise InvalidLocationError({"location_code": ["Stock is already at this location"]})
        ensure_location_available(dest_location)

        repo = current_domain.repository_for(StockEntry)
        from_label = source.location_label

        if quantity == source.quantity:
            source.relocate(dest_location, dest_shelf)
            repo.add(source)
            target = source
            merged = False
        else:
            key = merge_key(source.name, source.asin, source.barcode, dest_location, dest_shelf)
            candidates = find_merge_candidates(key)
            source.deduct(quantity, reason=f"moved to {dest_location}")
            merged = bool(candidates)
            if merged:
                target = candidates[0]
                target.restore(quantity, reason=f"moved from {from_label}")
            else:
                target = StockEntry.clone_at(source, dest_location, dest_shelf, quantity)
            repo.add(source)
            repo.add(target)

        record_activity(
            command.operator,
            command.operator_role,
            f"moved {quantity} of {source.describe()} from {from_label} to {target.location_label}",
        )
        logger.info(
            "Stock moved",
            source_id=str(source.id),
            target_id=str(target.id),
            quantity=quantity,
            merged=merged,
        )
        return str(target.id)
