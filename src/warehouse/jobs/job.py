"""Job aggregate (CQRS): a picking → packing work order.

State Machine:
    PICKING → AWAITING_PACK → COMPLETED
    (deletion is allowed from any state)

During picking the job accumulates items and the ledger deductions they
imply (pending updates). Nothing touches the ledger until picking finishes;
the reconciliation engine then applies the pending updates and sweeps any
drift between item quantities and what was actually deducted.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String

from warehouse.domain import warehouse
from warehouse.errors import EmptyJobError, InvalidQuantityError, ItemConflictError
from warehouse.jobs.events import (
    JobItemPicked,
    JobItemRemoved,
    JobItemUpdated,
    JobItemVerified,
    JobStarted,
    PackingCompleted,
    PickingFinished,
)
from warehouse.ledger.stock_entry import normalize


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class JobStatus(Enum):
    PICKING = "picking"
    AWAITING_PACK = "awaiting_pack"
    COMPLETED = "completed"


_VALID_TRANSITIONS = {
    JobStatus.PICKING: {JobStatus.AWAITING_PACK},
    JobStatus.AWAITING_PACK: {JobStatus.COMPLETED},
    JobStatus.COMPLETED: set(),  # Terminal
}


def item_key(barcode, location_code, shelf_number):
    """Identity of an item inside a job."""
    return (normalize(barcode), normalize(location_code), normalize(shelf_number))


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@warehouse.entity(part_of="Job")
class JobItem:
    """A product line of a job, tied to the location it is picked from.

    ``reconciled_quantity`` is how much of ``quantity`` has been deducted from
    the ledger on this item's behalf. ``revision`` increases on every change
    so concurrent packers can detect stale reads.
    """

    barcode = String(max_length=100)
    name = String(max_length=255)
    asin = String(max_length=500)
    quantity = Integer(required=True, min_value=1)
    verified = Boolean(default=False)
    location_code = String(max_length=50)
    shelf_number = String(max_length=10)
    reason = String(max_length=255)
    store_name = String(max_length=255)
    position = Integer(required=True)
    reconciled_quantity = Integer(default=0)
    revision = Integer(default=1)

    @property
    def key(self):
        return item_key(self.barcode, self.location_code, self.shelf_number)

    @property
    def location_label(self):
        return f"{self.location_code}-{self.shelf_number}" if self.shelf_number else self.location_code

    def touch(self):
        self.revision = (self.revision or 0) + 1


@warehouse.entity(part_of="Job")
class PendingStockUpdate:
    """A ledger deduction owed by the job, applied when picking finishes."""

    stock_entry_id = Identifier(required=True)
    deducted_quantity = Integer(required=True, min_value=1)
    reason = String(max_length=255)
    store_name = String(max_length=255)
    location_code = String(max_length=50)
    shelf_number = String(max_length=10)
    barcode = String(max_length=100)
    sequence = Integer(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@warehouse.aggregate
class Job:
    """A picking/packing work order."""

    job_number = String(required=True, max_length=20)
    status = String(choices=JobStatus, default=JobStatus.PICKING.value)
    created_by = String(max_length=100)
    picker = String(max_length=100)
    packer = String(max_length=100)
    items = HasMany(JobItem)
    pending_updates = HasMany(PendingStockUpdate)
    picking_started_at = DateTime()
    picking_time = Integer()  # Seconds, recorded when picking finishes
    created_at = DateTime()
    completed_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def start(cls, operator):
        """Open a picking session."""
        now = datetime.now(UTC)
        job = cls(
            job_number=str(int(now.timestamp() * 1000)),
            status=JobStatus.PICKING.value,
            created_by=operator,
            picking_started_at=now,
            created_at=now,
            updated_at=now,
        )
        job.raise_(
            JobStarted(
                job_id=str(job.id),
                job_number=job.job_number,
                created_by=operator,
                started_at=now,
            )
        )
        return job

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_status(self, expected, action):
        if JobStatus(self.status) != expected:
            raise ValidationError({"status": [f"Cannot {action} while job is {self.status}"]})

    def _assert_can_transition(self, target_status):
        current = JobStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _touch(self):
        self.updated_at = datetime.now(UTC)

    @property
    def ordered_items(self):
        return sorted(self.items, key=lambda item: item.position)

    @property
    def ordered_pending_updates(self):
        return sorted(self.pending_updates, key=lambda update: update.sequence)

    @property
    def item_count(self):
        return len(self.items)

    @property
    def total_units(self):
        return sum(item.quantity for item in self.items)

    @property
    def summary(self):
        return f"job {self.job_number} with {self.item_count} items ({self.total_units} total units)"

    def find_item(self, barcode, location_code, shelf_number):
        key = item_key(barcode, location_code, shelf_number)
        return next((item for item in self.items if item.key == key), None)

    def item_at(self, index):
        items = self.ordered_items
        if index is None or not 0 <= index < len(items):
            raise ValidationError({"index": [f"No item at index {index}"]})
        return items[index]

    def _add_item(self, barcode, name, asin, quantity, location_code, shelf_number, reason=None, store_name=None):
        item = self.find_item(barcode, location_code, shelf_number)
        if item is not None:
            item.quantity += quantity
            if reason:
                item.reason = reason
            if store_name:
                item.store_name = store_name
            item.touch()
            return item

        position = max((i.position for i in self.items), default=-1) + 1
        item = JobItem(
            barcode=barcode,
            name=name,
            asin=asin,
            quantity=quantity,
            location_code=location_code,
            shelf_number=shelf_number,
            reason=reason,
            store_name=store_name,
            position=position,
        )
        self.add_items(item)
        return item

    def pending_for(self, stock_entry_id, key):
        """The update owed to a row on behalf of the item at ``key``."""
        return next(
            (
                u
                for u in self.pending_updates
                if str(u.stock_entry_id) == str(stock_entry_id)
                and item_key(u.barcode, u.location_code, u.shelf_number) == key
            ),
            None,
        )

    def owed_to(self, stock_entry_id):
        return sum(u.deducted_quantity for u in self.pending_updates if str(u.stock_entry_id) == str(stock_entry_id))

    # -------------------------------------------------------------------
    # Picking
    # -------------------------------------------------------------------
    def pick(self, entry, quantity, reason=None, store_name=None):
        """Pick units from a ledger row, recording the deduction it owes.

        ``quantity`` plus whatever this job already owes the row may not
        exceed what the row holds.
        """
        self._assert_status(JobStatus.PICKING, "pick items")
        pending = self.pending_for(entry.id, item_key(entry.barcode, entry.location_code, entry.shelf_number))
        already_owed = self.owed_to(entry.id)
        if quantity is None or quantity < 1 or quantity + already_owed > entry.quantity:
            raise InvalidQuantityError(
                {"quantity": [f"Quantity must be between 1 and {entry.quantity - already_owed}"]}
            )

        item = self._add_item(
            barcode=entry.barcode,
            name=entry.name,
            asin=entry.asin,
            quantity=quantity,
            location_code=entry.location_code,
            shelf_number=entry.shelf_number,
            reason=reason,
            store_name=store_name,
        )

        if pending is not None:
            pending.deducted_quantity += quantity
            if reason:
                pending.reason = reason
            if store_name:
                pending.store_name = store_name
        else:
            sequence = max((u.sequence for u in self.pending_updates), default=-1) + 1
            self.add_pending_updates(
                PendingStockUpdate(
                    stock_entry_id=str(entry.id),
                    deducted_quantity=quantity,
                    reason=reason,
                    store_name=store_name,
                    location_code=entry.location_code,
                    shelf_number=entry.shelf_number,
                    barcode=entry.barcode,
                    sequence=sequence,
                )
            )
        self._touch()

        self.raise_(
            JobItemPicked(
                job_id=str(self.id),
                barcode=item.barcode,
                location_code=item.location_code,
                shelf_number=item.shelf_number,
                quantity=quantity,
                stock_entry_id=str(entry.id),
            )
        )
        return item

    def scan(self, barcode, location_code, shelf_number, quantity=1, name=None, asin=None):
        """Add units by barcode scan; the drift sweep accounts for them later."""
        self._assert_status(JobStatus.PICKING, "scan items")
        if quantity is None or quantity < 1:
            raise InvalidQuantityError({"quantity": ["Quantity must be positive"]})

        item = self._add_item(
            barcode=barcode,
            name=name or barcode,
            asin=asin,
            quantity=quantity,
            location_code=location_code,
            shelf_number=shelf_number,
        )
        self._touch()

        self.raise_(
            JobItemPicked(
                job_id=str(self.id),
                barcode=barcode,
                location_code=location_code,
                shelf_number=shelf_number,
                quantity=quantity,
            )
        )
        return item

    def change_item_quantity(self, barcode, location_code, shelf_number, quantity):
        """Set an item's quantity while picking; its pending update is left as is."""
        self._assert_status(JobStatus.PICKING, "change item quantities")
        if quantity is None or quantity < 1:
            raise InvalidQuantityError({"quantity": ["Quantity must be positive"]})
        item = self.find_item(barcode, location_code, shelf_number)
        if item is None:
            raise ValidationError({"barcode": [f"Item {barcode} is not part of this job"]})

        previous = item.quantity
        item.quantity = quantity
        item.touch()
        self._touch()
        return previous

    def credit_reconciled(self, barcode, location_code, shelf_number, quantity):
        """Record ledger units deducted on an item's behalf."""
        item = self.find_item(barcode, location_code, shelf_number)
        if item is not None:
            item.reconciled_quantity = (item.reconciled_quantity or 0) + quantity
        return item

    def finish_picking(self, picker):
        """Close the picking session. Pending updates must already be applied."""
        self._assert_can_transition(JobStatus.AWAITING_PACK)
        if not self.items:
            raise EmptyJobError({"items": ["Cannot finish picking a job without items"]})

        now = datetime.now(UTC)
        started = self.picking_started_at or self.created_at or now
        if started.tzinfo is None:
            started = started.replace(tzinfo=UTC)

        for update in list(self.pending_updates):
            self.remove_pending_updates(update)
        self.status = JobStatus.AWAITING_PACK.value
        self.picker = picker
        self.picking_time = max(0, int((now - started).total_seconds()))
        self.updated_at = now

        self.raise_(
            PickingFinished(
                job_id=str(self.id),
                job_number=self.job_number,
                picker=picker,
                item_count=self.item_count,
                total_units=self.total_units,
                picking_time=self.picking_time,
                finished_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Packing
    # -------------------------------------------------------------------
    def _assert_revision(self, item, expected_revision):
        if expected_revision is not None and expected_revision != item.revision:
            raise ItemConflictError(
                {"revision": [f"Item {item.barcode} changed (revision {item.revision}, expected {expected_revision})"]}
            )

    def set_verified(self, barcode, verified, location_code=None, shelf_number=None, expected_revision=None):
        """Mark one item verified; the barcode must resolve to a single item."""
        self._assert_status(JobStatus.AWAITING_PACK, "verify items")
        matches = [item for item in self.items if normalize(item.barcode) == normalize(barcode)]
        if location_code is not None:
            matches = [item for item in matches if normalize(item.location_code) == normalize(location_code)]
        if shelf_number is not None:
            matches = [item for item in matches if normalize(item.shelf_number) == normalize(shelf_number)]
        if not matches:
            raise ValidationError({"barcode": [f"Item {barcode} is not part of this job"]})
        if len(matches) > 1:
            raise ValidationError(
                {"barcode": [f"Item {barcode} is held at several locations; specify the location"]}
            )

        item = matches[0]
        self._assert_revision(item, expected_revision)
        item.verified = verified
        item.touch()
        self._touch()

        self.raise_(
            JobItemVerified(
                job_id=str(self.id),
                barcode=item.barcode,
                location_code=item.location_code,
                shelf_number=item.shelf_number,
                verified=verified,
            )
        )
        return item

    def update_item(self, index, barcode, quantity, name=None, asin=None, expected_revision=None):
        """Replace an item's barcode and/or quantity. Returns (item, old barcode, old quantity)."""
        self._assert_status(JobStatus.AWAITING_PACK, "update items")
        if quantity is None or quantity < 1:
            raise InvalidQuantityError({"quantity": ["Quantity must be positive"]})
        item = self.item_at(index)
        self._assert_revision(item, expected_revision)

        barcode = barcode or item.barcode
        if normalize(barcode) != normalize(item.barcode):
            clash = self.find_item(barcode, item.location_code, item.shelf_number)
            if clash is not None:
                raise ValidationError({"barcode": [f"Item {barcode} is already in this job at {item.location_label}"]})

        previous_barcode, previous_quantity = item.barcode, item.quantity
        if normalize(barcode) != normalize(previous_barcode):
            item.barcode = barcode
            item.name = name or barcode
            item.asin = asin
            item.verified = False
        item.quantity = quantity
        item.touch()
        self._touch()

        self.raise_(
            JobItemUpdated(
                job_id=str(self.id),
                previous_barcode=previous_barcode,
                barcode=item.barcode,
                previous_quantity=previous_quantity,
                quantity=quantity,
            )
        )
        return item, previous_barcode, previous_quantity

    def remove_item(self, index, expected_revision=None):
        self._assert_status(JobStatus.AWAITING_PACK, "remove items")
        item = self.item_at(index)
        self._assert_revision(item, expected_revision)
        self.remove_items(item)
        self._touch()

        self.raise_(
            JobItemRemoved(
                job_id=str(self.id),
                barcode=item.barcode,
                location_code=item.location_code,
                shelf_number=item.shelf_number,
                quantity=item.quantity,
            )
        )
        return item

    def complete_packing(self, packer):
        self._assert_can_transition(JobStatus.COMPLETED)
        now = datetime.now(UTC)
        self.status = JobStatus.COMPLETED.value
        self.packer = packer
        self.completed_at = now
        self.updated_at = now

        self.raise_(
            PackingCompleted(
                job_id=str(self.id),
                job_number=self.job_number,
                packer=packer,
                item_count=self.item_count,
                total_units=self.total_units,
                completed_at=now,
            )
        )
