"""Stock deduction: command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from warehouse.audit.activity_log import record_activity
from warehouse.domain import warehouse
from warehouse.ledger.queries import get_entry
from warehouse.ledger.stock_entry import StockEntry

logger = structlog.get_logger(__name__)


@warehouse.command(part_of="StockEntry")
class DeductStock:
    """Take units out of a ledger row."""

    stock_entry_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String(max_length=255)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command_handler(part_of=StockEntry)
class DeductStockHandler:
    @handle(DeductStock)
    def deduct_stock(self, command):
        entry = get_entry(command.stock_entry_id)
        entry.deduct(command.quantity, reason=command.reason)
        current_domain.repository_for(StockEntry).add(entry)

        detail = f"deducted {command.quantity} of {entry.describe()} from {entry.location_label}"
        if command.reason:
            detail += f" (reason: {command.reason})"
        record_activity(command.operator, command.operator_role, detail)
        logger.info("Stock deducted", stock_entry_id=str(entry.id), quantity=command.quantity)
        return entry.quantity
