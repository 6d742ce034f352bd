"""Job deletion: command and handler.

Jobs can be deleted in any state. Pending updates of a job still in picking
were never applied, so they are simply dropped. With ``restore_stock`` the
units already deducted for the job's items go back to the ledger.
"""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from warehouse.audit.activity_log import record_activity
from warehouse.domain import warehouse
from warehouse.jobs.job import Job
from warehouse.reconciliation.engine import StockReconciler

logger = structlog.get_logger(__name__)


@warehouse.command(part_of="Job")
class DeleteJob:
    job_id = Identifier(required=True)
    restore_stock = Boolean(default=False)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command_handler(part_of=Job)
class DeleteJobHandler:
    @handle(DeleteJob)
    def delete_job(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        summary = job.summary

        if command.restore_stock:
            reconciler = StockReconciler(job, command.operator, command.operator_role)
            for item in job.ordered_items:
                reconciler.release_item(item, f"job {job.job_number} deleted")
            reconciler.commit()

        repo._dao.delete(job)
        record_activity(command.operator, command.operator_role, f"deleted {summary}")
        logger.info("Job deleted", job_id=str(job.id), status=job.status, restore_stock=command.restore_stock)
