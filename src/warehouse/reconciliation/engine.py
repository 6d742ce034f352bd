"""Stock reconciliation: commits a job's picks against the ledger.

The reconciler works on in-memory ledger rows: every row it touches is loaded
once into a per-run cache and mutated there. Nothing is written until
``commit()``, so a failure in any step (missing row, insufficient stock)
leaves the ledger, the job and the activity log untouched.

Two passes run when picking finishes:

1. Pending updates are applied in the order they were recorded. Each one
   credits the matching item's ``reconciled_quantity``.
2. The drift sweep compares every item's quantity with what has been
   reconciled for it. Positive drift is deducted from the rows holding the
   item's barcode at its location (largest row first); negative drift is put
   back into the first such row. Afterwards every item is fully reconciled,
   so running the sweep again changes nothing.
"""

import structlog
from protean.utils.globals import current_domain

from warehouse.audit.activity_log import record_activity
from warehouse.errors import InsufficientStockError, NotFoundError
from warehouse.ledger.queries import get_entry, stock_at
from warehouse.ledger.stock_entry import StockEntry, normalize

logger = structlog.get_logger(__name__)


class StockReconciler:
    """Applies job-driven ledger adjustments atomically."""

    def __init__(self, job, operator=None, operator_role=None):
        self.job = job
        self.operator = operator
        self.operator_role = operator_role
        self._rows = {}
        self._audit = []

    # -------------------------------------------------------------------
    # Row cache
    # -------------------------------------------------------------------
    def _row(self, stock_entry_id):
        key = str(stock_entry_id)
        if key not in self._rows:
            self._rows[key] = get_entry(key)
        return self._rows[key]

    def _rows_at(self, barcode, location_code, shelf_number):
        rows = [self._rows.setdefault(str(row.id), row) for row in stock_at(barcode, location_code, shelf_number)]
        return sorted(rows, key=lambda row: row.quantity, reverse=True)

    # -------------------------------------------------------------------
    # Adjustments
    # -------------------------------------------------------------------
    def deduct_at(self, barcode, location_code, shelf_number, quantity, reason):
        """Deduct ``quantity`` across the rows at a location, largest first."""
        rows = self._rows_at(barcode, location_code, shelf_number)
        if not rows:
            raise NotFoundError(
                {"barcode": [f"No stock entry for {barcode} at {location_code}-{shelf_number}"]}
            )
        available = sum(row.quantity for row in rows)
        if available < quantity:
            raise InsufficientStockError(
                {
                    "quantity": [
                        f"Insufficient stock for {barcode} at {location_code}-{shelf_number}: "
                        f"{available} available, {quantity} needed"
                    ]
                }
            )

        remaining = quantity
        for row in rows:
            if remaining == 0:
                break
            take = min(row.quantity, remaining)
            if take:
                row.deduct(take, reason=reason)
                remaining -= take
        return rows[0]

    def restore_at(self, barcode, location_code, shelf_number, quantity, reason, name=None, asin=None):
        """Put ``quantity`` back into the largest row at a location.

        When no row is left there (a drained row is cleared away once the
        product is restocked elsewhere), a new row is recorded from ``name``
        and ``asin``.
        """
        rows = self._rows_at(barcode, location_code, shelf_number)
        if rows:
            rows[0].restore(quantity, reason=reason)
            return rows[0]

        row = StockEntry.create(
            name=name or barcode,
            quantity=quantity,
            location_code=location_code,
            shelf_number=shelf_number,
            barcode=barcode,
            asin=asin,
        )
        self._rows[str(row.id)] = row
        logger.info("Ledger row recreated", stock_entry_id=str(row.id), barcode=barcode, location=row.location_label)
        return row

    def adjust_item(self, barcode, location_code, shelf_number, delta, reason, name=None, asin=None):
        """Deduct a positive ``delta`` or restore a negative one."""
        if delta > 0:
            return self.deduct_at(barcode, location_code, shelf_number, delta, reason)
        if delta < 0:
            return self.restore_at(barcode, location_code, shelf_number, -delta, reason, name=name, asin=asin)
        return None

    def note(self, detail):
        self._audit.append(detail)

    # -------------------------------------------------------------------
    # Passes
    # -------------------------------------------------------------------
    def apply_pending_updates(self):
        job_label = f"job {self.job.job_number}"
        for update in self.job.ordered_pending_updates:
            try:
                row = self._row(update.stock_entry_id)
            except NotFoundError:
                raise NotFoundError(
                    {"stock_entry_id": [f"Stock entry {update.stock_entry_id} picked for {job_label} no longer exists"]}
                )
            row.deduct(update.deducted_quantity, reason=update.reason or f"picked for {job_label}")
            self.job.credit_reconciled(update.barcode, update.location_code, update.shelf_number, update.deducted_quantity)

            detail = f"deducted {update.deducted_quantity} of {row.describe()} from {row.location_label} for {job_label}"
            if update.reason:
                detail += f" (reason: {update.reason})"
            if update.store_name:
                detail += f" (store: {update.store_name})"
            self.note(detail)

    def sweep(self):
        """Bring every item's reconciled quantity in line with its quantity."""
        job_label = f"job {self.job.job_number}"
        for item in self.job.ordered_items:
            delta = item.quantity - (item.reconciled_quantity or 0)
            if delta == 0:
                continue
            self.adjust_item(
                item.barcode,
                item.location_code,
                item.shelf_number,
                delta,
                f"reconciled for {job_label}",
                name=item.name,
                asin=item.asin,
            )
            item.reconciled_quantity = item.quantity
            verb = "deducted" if delta > 0 else "restored"
            self.note(f"{verb} {abs(delta)} of {item.name or item.barcode} at {item.location_label} to reconcile {job_label}")

    def release_item(self, item, reason):
        """Return everything reconciled for ``item`` to the ledger."""
        quantity = item.reconciled_quantity or 0
        if quantity:
            self.restore_at(
                item.barcode, item.location_code, item.shelf_number, quantity, reason, name=item.name, asin=item.asin
            )
            self.note(f"restored {quantity} of {item.name or item.barcode} at {item.location_label} ({reason})")
        item.reconciled_quantity = 0

    def rebalance_item(self, item, previous_barcode, reason):
        """Match the ledger to an item edited after picking."""
        reconciled = item.reconciled_quantity or 0
        if normalize(previous_barcode) != normalize(item.barcode) and reconciled:
            self.restore_at(previous_barcode, item.location_code, item.shelf_number, reconciled, reason)
            self.note(f"restored {reconciled} of {previous_barcode} at {item.location_label} ({reason})")
            reconciled = 0

        delta = item.quantity - reconciled
        if delta:
            self.adjust_item(
                item.barcode, item.location_code, item.shelf_number, delta, reason, name=item.name, asin=item.asin
            )
            verb = "deducted" if delta > 0 else "restored"
            self.note(f"{verb} {abs(delta)} of {item.name or item.barcode} at {item.location_label} ({reason})")
        item.reconciled_quantity = item.quantity

    def reconcile(self):
        self.apply_pending_updates()
        self.sweep()
        return self

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    def commit(self):
        """Persist every touched row and the collected audit entries."""
        repo = current_domain.repository_for(StockEntry)
        changed = list(self._rows.values())
        for row in changed:
            repo.add(row)
        for detail in self._audit:
            record_activity(self.operator, self.operator_role, detail)
        logger.info(
            "Ledger reconciled",
            job_number=self.job.job_number,
            rows_touched=len(changed),
            audit_entries=len(self._audit),
        )
        return changed
