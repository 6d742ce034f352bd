"""Packing: commands and handler.

Edits and removals during packing leave the ledger alone unless the caller
asks for ``restore_stock``; then the ledger is brought back in line with the
edited item (or given back the removed item's units).
"""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from warehouse.audit.activity_log import record_activity
from warehouse.domain import warehouse
from warehouse.jobs.job import Job
from warehouse.jobs.picking import describe_product
from warehouse.reconciliation.engine import StockReconciler

logger = structlog.get_logger(__name__)


@warehouse.command(part_of="Job")
class SetItemVerified:
    """Mark a packed item as checked. Location narrows an ambiguous barcode."""

    job_id = Identifier(required=True)
    barcode = String(required=True, max_length=100)
    verified = Boolean(default=True)
    location_code = String(max_length=50)
    shelf_number = String(max_length=10)
    expected_revision = Integer()
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command(part_of="Job")
class UpdateJobItem:
    job_id = Identifier(required=True)
    index = Integer(required=True, min_value=0)
    barcode = String(max_length=100)
    quantity = Integer(required=True)
    restore_stock = Boolean(default=False)
    expected_revision = Integer()
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command(part_of="Job")
class RemoveJobItem:
    job_id = Identifier(required=True)
    index = Integer(required=True, min_value=0)
    restore_stock = Boolean(default=False)
    expected_revision = Integer()
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command(part_of="Job")
class CompletePacking:
    job_id = Identifier(required=True)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command_handler(part_of=Job)
class PackingHandler:
    @handle(SetItemVerified)
    def set_item_verified(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        item = job.set_verified(
            command.barcode,
            command.verified,
            location_code=command.location_code,
            shelf_number=command.shelf_number,
            expected_revision=command.expected_revision,
        )
        repo.add(job)

        state = "verified" if command.verified else "unverified"
        record_activity(
            command.operator,
            command.operator_role,
            f"marked {item.name or item.barcode} at {item.location_label} as {state} in {job.summary}",
        )
        return item.to_dict()

    @handle(UpdateJobItem)
    def update_job_item(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        current = job.item_at(command.index)
        name, asin = (None, None)
        if command.barcode and command.barcode != current.barcode:
            name, asin = describe_product(command.barcode, current.location_code, current.shelf_number)

        item, previous_barcode, previous_quantity = job.update_item(
            command.index,
            command.barcode,
            command.quantity,
            name=name,
            asin=asin,
            expected_revision=command.expected_revision,
        )

        if command.restore_stock:
            reconciler = StockReconciler(job, command.operator, command.operator_role)
            reconciler.rebalance_item(item, previous_barcode, f"item updated in job {job.job_number}")
            reconciler.commit()
        repo.add(job)

        record_activity(
            command.operator,
            command.operator_role,
            f"updated item {previous_barcode} x{previous_quantity} to {item.barcode} x{item.quantity} in {job.summary}",
        )
        logger.info(
            "Job item updated",
            job_id=str(job.id),
            barcode=item.barcode,
            quantity=item.quantity,
            restore_stock=command.restore_stock,
        )
        return item.to_dict()

    @handle(RemoveJobItem)
    def remove_job_item(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        item = job.remove_item(command.index, expected_revision=command.expected_revision)

        if command.restore_stock:
            reconciler = StockReconciler(job, command.operator, command.operator_role)
            reconciler.release_item(item, f"item removed from job {job.job_number}")
            reconciler.commit()
        repo.add(job)

        record_activity(
            command.operator,
            command.operator_role,
            f"removed {item.quantity} of {item.name or item.barcode} at {item.location_label} from {job.summary}",
        )
        logger.info("Job item removed", job_id=str(job.id), barcode=item.barcode, restore_stock=command.restore_stock)

    @handle(CompletePacking)
    def complete_packing(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        job.complete_packing(command.operator)
        repo.add(job)

        record_activity(command.operator, command.operator_role, f"completed packing for {job.summary}")
        logger.info("Packing completed", job_id=str(job.id), job_number=job.job_number)
        return job.to_dict()
