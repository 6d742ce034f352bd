"""Picking session: commands and handler.

A job stays in ``picking`` while the operator collects items. Picks record
the deductions they owe; the ledger changes only when picking finishes.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from warehouse.audit.activity_log import record_activity
from warehouse.domain import warehouse
from warehouse.jobs.job import Job
from warehouse.ledger.queries import get_entry, stock_at
from warehouse.ledger.stock_entry import validate_location
from warehouse.lookup import get_product_lookup
from warehouse.reconciliation.engine import StockReconciler

logger = structlog.get_logger(__name__)


@warehouse.command(part_of="Job")
class StartJob:
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command(part_of="Job")
class PickItem:
    """Pick units from a specific ledger row."""

    job_id = Identifier(required=True)
    stock_entry_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String(max_length=255)
    store_name = String(max_length=255)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command(part_of="Job")
class ScanItem:
    """Add units by scanning a barcode at a location."""

    job_id = Identifier(required=True)
    barcode = String(required=True, max_length=100)
    location_code = String(required=True, max_length=50)
    shelf_number = String(max_length=10)
    quantity = Integer(default=1)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command(part_of="Job")
class ChangeItemQuantity:
    job_id = Identifier(required=True)
    barcode = String(required=True, max_length=100)
    location_code = String(required=True, max_length=50)
    shelf_number = String(max_length=10)
    quantity = Integer(required=True)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command(part_of="Job")
class FinishPicking:
    job_id = Identifier(required=True)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


def describe_product(barcode, location_code, shelf_number):
    """Display name and asin for a scanned barcode."""
    rows = stock_at(barcode, location_code, shelf_number)
    if rows:
        return rows[0].name, rows[0].asin
    product = get_product_lookup().lookup(barcode)
    if product:
        return product.get("name"), product.get("asin")
    return barcode, None


@warehouse.command_handler(part_of=Job)
class PickingHandler:
    @handle(StartJob)
    def start_job(self, command):
        job = Job.start(command.operator)
        current_domain.repository_for(Job).add(job)
        record_activity(command.operator, command.operator_role, f"started job {job.job_number}")
        logger.info("Job started", job_id=str(job.id), job_number=job.job_number)
        return str(job.id)

    @handle(PickItem)
    def pick_item(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        entry = get_entry(command.stock_entry_id)
        item = job.pick(entry, command.quantity, reason=command.reason, store_name=command.store_name)
        repo.add(job)

        record_activity(
            command.operator,
            command.operator_role,
            f"picked {command.quantity} of {entry.describe()} from {entry.location_label} for {job.summary}",
        )
        logger.info("Item picked", job_id=str(job.id), stock_entry_id=str(entry.id), quantity=command.quantity)
        return item.to_dict()

    @handle(ScanItem)
    def scan_item(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        validate_location(command.location_code, command.shelf_number)
        name, asin = describe_product(command.barcode, command.location_code, command.shelf_number)
        item = job.scan(
            command.barcode,
            command.location_code,
            command.shelf_number,
            quantity=command.quantity,
            name=name,
            asin=asin,
        )
        repo.add(job)

        record_activity(
            command.operator,
            command.operator_role,
            f"scanned {command.quantity} of {name} at {item.location_label} for {job.summary}",
        )
        logger.info("Item scanned", job_id=str(job.id), barcode=command.barcode, quantity=command.quantity)
        return item.to_dict()

    @handle(ChangeItemQuantity)
    def change_item_quantity(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        previous = job.change_item_quantity(
            command.barcode, command.location_code, command.shelf_number, command.quantity
        )
        repo.add(job)

        record_activity(
            command.operator,
            command.operator_role,
            f"changed quantity of {command.barcode} from {previous} to {command.quantity} in {job.summary}",
        )

    @handle(FinishPicking)
    def finish_picking(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        picker = command.operator or job.created_by

        # The ledger is only written by commit(), after the job accepted the transition.
        reconciler = StockReconciler(job, command.operator, command.operator_role)
        reconciler.reconcile()
        job.finish_picking(picker)
        reconciler.commit()
        repo.add(job)

        record_activity(command.operator, command.operator_role, f"completed picking for {job.summary}")
        logger.info(
            "Picking finished",
            job_id=str(job.id),
            job_number=job.job_number,
            items=job.item_count,
            units=job.total_units,
            picking_time=job.picking_time,
        )
        return job.to_dict()
