"""Application tests for the stock reconciliation engine."""

import pytest
from protean import current_domain
from warehouse.audit.activity_log import ActivityLog
from warehouse.errors import InsufficientStockError, InvalidQuantityError, NotFoundError
from warehouse.jobs.job import Job, JobStatus
from warehouse.jobs.picking import ChangeItemQuantity, FinishPicking, PickItem, ScanItem, StartJob
from warehouse.ledger.deduction import DeductStock
from warehouse.ledger.editing import DeleteStockEntry
from warehouse.ledger.queries import get_entry
from warehouse.ledger.receiving import AddStock
from warehouse.movement.relocation import MoveStock
from warehouse.reconciliation.engine import StockReconciler


def _add_stock(**overrides):
    defaults = {
        "name": "blue widget",
        "quantity": 10,
        "location_code": "C3",
        "shelf_number": "2",
        "barcode": "0001",
    }
    defaults.update(overrides)
    return current_domain.process(AddStock(**defaults), asynchronous=False)["stock_entry_id"]


def _start_job():
    return current_domain.process(StartJob(operator="alice"), asynchronous=False)


def _pick(job_id, entry_id, quantity):
    current_domain.process(PickItem(job_id=job_id, stock_entry_id=entry_id, quantity=quantity), asynchronous=False)


def _scan(job_id, barcode="0001", location_code="C3", shelf_number="2", quantity=1):
    current_domain.process(
        ScanItem(
            job_id=job_id,
            barcode=barcode,
            location_code=location_code,
            shelf_number=shelf_number,
            quantity=quantity,
        ),
        asynchronous=False,
    )


def _finish(job_id):
    current_domain.process(FinishPicking(job_id=job_id, operator="alice"), asynchronous=False)


def _job(job_id):
    return current_domain.repository_for(Job).get(job_id)


def _activity_details():
    return [entry.detail for entry in current_domain.repository_for(ActivityLog)._dao.query.all().items]


class TestPendingUpdates:
    def test_updates_apply_in_order_across_rows(self):
        first = _add_stock(quantity=5)
        second = _add_stock(quantity=5, barcode="0002", location_code="D1", shelf_number="0")
        job_id = _start_job()
        _pick(job_id, first, 2)
        _pick(job_id, second, 4)
        _finish(job_id)
        assert get_entry(first).quantity == 3
        assert get_entry(second).quantity == 1

    def test_one_activity_entry_per_update(self):
        entry_id = _add_stock(quantity=5)
        job_id = _start_job()
        _pick(job_id, entry_id, 2)
        _pick(job_id, entry_id, 1)
        _finish(job_id)
        deductions = [d for d in _activity_details() if d.startswith("deducted 3 of BLUE WIDGET")]
        assert len(deductions) == 1

    def test_scanned_items_are_deducted_by_sweep(self):
        entry_id = _add_stock(quantity=5)
        job_id = _start_job()
        _scan(job_id, quantity=2)
        _finish(job_id)
        assert get_entry(entry_id).quantity == 3
        assert _job(job_id).items[0].reconciled_quantity == 2


    def test_row_moved_between_picks_credits_each_item(self):
        entry_id = _add_stock(quantity=10)
        job_id = _start_job()
        _pick(job_id, entry_id, 2)
        current_domain.process(
            MoveStock(stock_entry_id=entry_id, quantity=10, location_code="D1", shelf_number="0"),
            asynchronous=False,
        )
        _pick(job_id, entry_id, 1)
        assert len(_job(job_id).pending_updates) == 2

        _finish(job_id)

        assert get_entry(entry_id).quantity == 7
        job = _job(job_id)
        assert job.status == JobStatus.AWAITING_PACK.value
        reconciled = sorted((item.location_code, item.quantity, item.reconciled_quantity) for item in job.items)
        assert reconciled == [("C3", 2, 2), ("D1", 1, 1)]

    def test_picks_after_a_move_still_respect_row_quantity(self):
        entry_id = _add_stock(quantity=3)
        job_id = _start_job()
        _pick(job_id, entry_id, 2)
        current_domain.process(
            MoveStock(stock_entry_id=entry_id, quantity=3, location_code="D1", shelf_number="0"),
            asynchronous=False,
        )
        with pytest.raises(InvalidQuantityError):
            _pick(job_id, entry_id, 2)


class TestSweep:
    def test_positive_drift_spans_duplicate_rows_largest_first(self):
        small = _add_stock(quantity=2)
        large = _add_stock(quantity=4)
        job_id = _start_job()
        _scan(job_id, quantity=5)
        _finish(job_id)
        assert get_entry(large).quantity == 0
        assert get_entry(small).quantity == 1

    def test_sweep_is_idempotent(self):
        entry_id = _add_stock(quantity=10)
        job_id = _start_job()
        _pick(job_id, entry_id, 2)
        current_domain.process(
            ChangeItemQuantity(job_id=job_id, barcode="0001", location_code="C3", shelf_number="2", quantity=4),
            asynchronous=False,
        )
        _finish(job_id)

        job = _job(job_id)
        reconciler = StockReconciler(job)
        reconciler.sweep()
        assert reconciler.commit() == []
        assert get_entry(entry_id).quantity == 6

    def test_item_with_no_stock_at_location(self):
        _add_stock(quantity=10)
        job_id = _start_job()
        _scan(job_id, location_code="D1", shelf_number="0")
        with pytest.raises(NotFoundError):
            _finish(job_id)


class TestAtomicFailure:
    def test_missing_row_leaves_everything_unchanged(self):
        kept = _add_stock(quantity=10, barcode="0002", location_code="D1", shelf_number="0")
        doomed = _add_stock(quantity=10)
        job_id = _start_job()
        _pick(job_id, kept, 2)
        _pick(job_id, doomed, 2)
        current_domain.process(DeleteStockEntry(stock_entry_id=doomed), asynchronous=False)
        before = _activity_details()

        with pytest.raises(NotFoundError):
            _finish(job_id)

        assert get_entry(kept).quantity == 10
        job = _job(job_id)
        assert job.status == JobStatus.PICKING.value
        assert len(job.pending_updates) == 2
        assert all(item.reconciled_quantity == 0 for item in job.items)
        assert sorted(_activity_details()) == sorted(before)

    def test_insufficient_stock_leaves_everything_unchanged(self):
        first = _add_stock(quantity=10, barcode="0002", location_code="D1", shelf_number="0")
        second = _add_stock(quantity=5)
        job_id = _start_job()
        _pick(job_id, first, 3)
        _pick(job_id, second, 4)
        current_domain.process(DeductStock(stock_entry_id=second, quantity=3), asynchronous=False)
        before = _activity_details()

        with pytest.raises(InsufficientStockError):
            _finish(job_id)

        assert get_entry(first).quantity == 10
        assert get_entry(second).quantity == 2
        assert _job(job_id).status == JobStatus.PICKING.value
        assert sorted(_activity_details()) == sorted(before)
