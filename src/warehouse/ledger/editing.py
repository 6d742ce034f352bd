"""Stock entry edits and deletion: commands and handler.

Edits arrive as a partial patch. The audit entry lists every field that
actually changed as ``field: old → new``; a patch that changes nothing writes
nothing.
"""

import json

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from warehouse.audit.activity_log import record_activity
from warehouse.domain import warehouse
from warehouse.ledger.queries import get_entry
from warehouse.ledger.stock_entry import StockEntry
from warehouse.movement.location import ensure_location_available

logger = structlog.get_logger(__name__)


def _display(value):
    return "empty" if value in (None, "") else str(value)


def format_changes(diff):
    return ", ".join(f"{field}: {_display(old)} → {_display(new)}" for field, old, new in diff)


@warehouse.command(part_of="StockEntry")
class EditStockEntry:
    """Change any subset of a ledger row's fields."""

    stock_entry_id = Identifier(required=True)
    changes = Text(required=True)  # JSON object of field -> new value
    confirm_increase = Boolean(default=False)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command(part_of="StockEntry")
class DeleteStockEntry:
    """Remove a ledger row outright."""

    stock_entry_id = Identifier(required=True)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command_handler(part_of=StockEntry)
class StockEntryEditingHandler:
    @handle(EditStockEntry)
    def edit_stock_entry(self, command):
        entry = get_entry(command.stock_entry_id)
        patch = json.loads(command.changes)
        if "location_code" in patch and patch["location_code"] != entry.location_code:
            ensure_location_available(patch["location_code"])

        label = entry.describe()
        diff = entry.edit(patch, confirm_increase=command.confirm_increase)
        if not diff:
            return []

        current_domain.repository_for(StockEntry).add(entry)
        record_activity(
            command.operator,
            command.operator_role,
            f"edited {label}: {format_changes(diff)}",
        )
        logger.info("Stock entry edited", stock_entry_id=str(entry.id), fields=[field for field, _, _ in diff])
        return [field for field, _, _ in diff]

    @handle(DeleteStockEntry)
    def delete_stock_entry(self, command):
        entry = get_entry(command.stock_entry_id)
        current_domain.repository_for(StockEntry)._dao.delete(entry)
        record_activity(
            command.operator,
            command.operator_role,
            f"deleted {entry.describe()} at {entry.location_label} ({entry.quantity} units)",
        )
        logger.info("Stock entry deleted", stock_entry_id=str(entry.id))
