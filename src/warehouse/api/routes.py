"""FastAPI routes for the Warehouse domain: ledger, locations, jobs, activity."""

import json

from fastapi import APIRouter, Depends, Header
from protean.utils.globals import current_domain

from warehouse.api.schemas import (
    ActivityResponse,
    AddStockRequest,
    AddStockResponse,
    ChangeItemQuantityRequest,
    DeductStockRequest,
    DeductStockResponse,
    EditStockEntryRequest,
    EditStockEntryResponse,
    JobIdResponse,
    JobItemResponse,
    JobResponse,
    LocationResponse,
    LocationSummaryResponse,
    MoveStockRequest,
    MoveStockResponse,
    Operator,
    PendingStockUpdateResponse,
    PickItemRequest,
    ScanItemRequest,
    SetItemVerifiedRequest,
    SetLocationAvailabilityRequest,
    StatusResponse,
    StockEntryResponse,
    UpdateJobItemRequest,
)
from warehouse.audit.activity_log import recent_activity
from warehouse.config import LOCATION_CODES, max_shelf_number
from warehouse.jobs.deletion import DeleteJob
from warehouse.jobs.job import Job
from warehouse.jobs.packing import CompletePacking, RemoveJobItem, SetItemVerified, UpdateJobItem
from warehouse.jobs.picking import ChangeItemQuantity, FinishPicking, PickItem, ScanItem, StartJob
from warehouse.ledger import queries
from warehouse.ledger.deduction import DeductStock
from warehouse.ledger.editing import DeleteStockEntry, EditStockEntry
from warehouse.ledger.receiving import AddStock
from warehouse.ledger.summaries import location_summaries
from warehouse.movement.location import SetLocationAvailability, unavailable_locations
from warehouse.movement.relocation import MoveStock


def operator_identity(
    x_operator_name: str | None = Header(default=None),
    x_operator_role: str | None = Header(default=None),
) -> Operator:
    """Operator attribution from request headers."""
    return Operator(name=x_operator_name, role=x_operator_role)


def _entry_response(entry) -> StockEntryResponse:
    return StockEntryResponse(
        id=str(entry.id),
        name=entry.name,
        quantity=entry.quantity,
        price=entry.price,
        unit=entry.unit,
        supplier=entry.supplier,
        location_code=entry.location_code,
        shelf_number=entry.shelf_number,
        barcode=entry.barcode,
        asin=entry.asin,
        status=entry.status,
        damaged_items=entry.damaged_items,
        fulfillment_type=entry.fulfillment_type,
        store_name=entry.store_name,
        last_updated=entry.last_updated,
    )


def _job_response(job) -> JobResponse:
    return JobResponse(
        id=str(job.id),
        job_number=job.job_number,
        status=job.status,
        created_by=job.created_by,
        picker=job.picker,
        packer=job.packer,
        picking_time=job.picking_time,
        created_at=job.created_at,
        completed_at=job.completed_at,
        updated_at=job.updated_at,
        item_count=job.item_count,
        total_units=job.total_units,
        items=[
            JobItemResponse(
                barcode=item.barcode,
                name=item.name,
                asin=item.asin,
                quantity=item.quantity,
                verified=bool(item.verified),
                location_code=item.location_code,
                shelf_number=item.shelf_number,
                reason=item.reason,
                store_name=item.store_name,
                position=item.position,
                reconciled_quantity=item.reconciled_quantity or 0,
                revision=item.revision or 1,
            )
            for item in job.ordered_items
        ],
        pending_updates=[
            PendingStockUpdateResponse(
                stock_entry_id=str(update.stock_entry_id),
                deducted_quantity=update.deducted_quantity,
                reason=update.reason,
                store_name=update.store_name,
                location_code=update.location_code,
                shelf_number=update.shelf_number,
                barcode=update.barcode,
            )
            for update in job.ordered_pending_updates
        ],
    )


# ---------------------------------------------------------------------------
# Inventory Router
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


@inventory_router.post("", status_code=201, response_model=AddStockResponse)
async def add_stock(body: AddStockRequest, operator: Operator = Depends(operator_identity)) -> AddStockResponse:
    command = AddStock(
        **body.model_dump(),
        operator=operator.name,
        operator_role=operator.role,
    )
    result = current_domain.process(command, asynchronous=False)
    return AddStockResponse(**result)


@inventory_router.get("", response_model=list[StockEntryResponse])
async def list_stock(
    barcode: str | None = None,
    location_code: str | None = None,
    shelf_number: str | None = None,
    status: str | None = None,
    name_prefix: str | None = None,
) -> list[StockEntryResponse]:
    """Raw ledger rows, optionally filtered."""
    if name_prefix is not None:
        rows = queries.search_by_name_prefix(name_prefix)
    elif location_code is not None:
        rows = queries.find_by_location(location_code, shelf_number)
    elif status is not None:
        rows = queries.find_by_status(status)
    else:
        rows = queries.all_entries()
    if barcode is not None:
        rows = [row for row in rows if row.barcode == barcode]
    if status is not None:
        rows = [row for row in rows if row.status == status]
    return [_entry_response(row) for row in rows]


@inventory_router.get("/summaries", response_model=list[LocationSummaryResponse])
async def get_location_summaries() -> list[LocationSummaryResponse]:
    """Stock per product and location, duplicate rows folded together."""
    return [LocationSummaryResponse(**summary) for summary in location_summaries()]


@inventory_router.get("/{stock_entry_id}", response_model=StockEntryResponse)
async def get_stock_entry(stock_entry_id: str) -> StockEntryResponse:
    return _entry_response(queries.get_entry(stock_entry_id))


@inventory_router.put("/{stock_entry_id}/deduct", response_model=DeductStockResponse)
async def deduct_stock(
    stock_entry_id: str,
    body: DeductStockRequest,
    operator: Operator = Depends(operator_identity),
) -> DeductStockResponse:
    command = DeductStock(
        stock_entry_id=stock_entry_id,
        quantity=body.quantity,
        reason=body.reason,
        operator=operator.name,
        operator_role=operator.role,
    )
    remaining = current_domain.process(command, asynchronous=False)
    return DeductStockResponse(quantity=remaining)


@inventory_router.patch("/{stock_entry_id}", response_model=EditStockEntryResponse)
async def edit_stock_entry(
    stock_entry_id: str,
    body: EditStockEntryRequest,
    operator: Operator = Depends(operator_identity),
) -> EditStockEntryResponse:
    command = EditStockEntry(
        stock_entry_id=stock_entry_id,
        changes=json.dumps(body.changes),
        confirm_increase=body.confirm_increase,
        operator=operator.name,
        operator_role=operator.role,
    )
    changed = current_domain.process(command, asynchronous=False)
    return EditStockEntryResponse(changed_fields=changed or [])


@inventory_router.delete("/{stock_entry_id}", response_model=StatusResponse)
async def delete_stock_entry(stock_entry_id: str, operator: Operator = Depends(operator_identity)) -> StatusResponse:
    command = DeleteStockEntry(
        stock_entry_id=stock_entry_id,
        operator=operator.name,
        operator_role=operator.role,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@inventory_router.post("/{stock_entry_id}/move", response_model=MoveStockResponse)
async def move_stock(
    stock_entry_id: str,
    body: MoveStockRequest,
    operator: Operator = Depends(operator_identity),
) -> MoveStockResponse:
    command = MoveStock(
        stock_entry_id=stock_entry_id,
        quantity=body.quantity,
        location_code=body.location_code,
        shelf_number=body.shelf_number,
        operator=operator.name,
        operator_role=operator.role,
    )
    target_id = current_domain.process(command, asynchronous=False)
    return MoveStockResponse(stock_entry_id=target_id)


# ---------------------------------------------------------------------------
# Location Router
# ---------------------------------------------------------------------------
location_router = APIRouter(prefix="/locations", tags=["locations"])


@location_router.get("", response_model=list[LocationResponse])
async def list_locations() -> list[LocationResponse]:
    unavailable = set(unavailable_locations())
    return [
        LocationResponse(
            location_code=code,
            is_available=code not in unavailable,
            max_shelf_number=max_shelf_number(code),
        )
        for code in LOCATION_CODES
    ]


@location_router.put("/{location_code}/availability", response_model=StatusResponse)
async def set_location_availability(
    location_code: str,
    body: SetLocationAvailabilityRequest,
    operator: Operator = Depends(operator_identity),
) -> StatusResponse:
    command = SetLocationAvailability(
        location_code=location_code,
        is_available=body.is_available,
        operator=operator.name,
        operator_role=operator.role,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Job Router
# ---------------------------------------------------------------------------
job_router = APIRouter(prefix="/jobs", tags=["jobs"])


def _load_job(job_id: str) -> JobResponse:
    return _job_response(current_domain.repository_for(Job).get(job_id))


@job_router.post("", status_code=201, response_model=JobIdResponse)
async def start_job(operator: Operator = Depends(operator_identity)) -> JobIdResponse:
    command = StartJob(operator=operator.name, operator_role=operator.role)
    job_id = current_domain.process(command, asynchronous=False)
    return JobIdResponse(job_id=job_id)


@job_router.get("", response_model=list[JobResponse])
async def list_jobs(status: str | None = None) -> list[JobResponse]:
    query = current_domain.repository_for(Job)._dao.query.limit(queries.QUERY_LIMIT)
    if status is not None:
        query = query.filter(status=status)
    jobs = sorted(query.all().items, key=lambda job: job.job_number, reverse=True)
    return [_job_response(job) for job in jobs]


@job_router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str) -> JobResponse:
    return _load_job(job_id)


@job_router.post("/{job_id}/picks", response_model=JobResponse)
async def pick_item(job_id: str, body: PickItemRequest, operator: Operator = Depends(operator_identity)) -> JobResponse:
    command = PickItem(
        job_id=job_id,
        stock_entry_id=body.stock_entry_id,
        quantity=body.quantity,
        reason=body.reason,
        store_name=body.store_name,
        operator=operator.name,
        operator_role=operator.role,
    )
    current_domain.process(command, asynchronous=False)
    return _load_job(job_id)


@job_router.post("/{job_id}/scans", response_model=JobResponse)
async def scan_item(job_id: str, body: ScanItemRequest, operator: Operator = Depends(operator_identity)) -> JobResponse:
    command = ScanItem(
        job_id=job_id,
        barcode=body.barcode,
        location_code=body.location_code,
        shelf_number=body.shelf_number,
        quantity=body.quantity,
        operator=operator.name,
        operator_role=operator.role,
    )
    current_domain.process(command, asynchronous=False)
    return _load_job(job_id)


@job_router.put("/{job_id}/items/quantity", response_model=JobResponse)
async def change_item_quantity(
    job_id: str,
    body: ChangeItemQuantityRequest,
    operator: Operator = Depends(operator_identity),
) -> JobResponse:
    command = ChangeItemQuantity(
        job_id=job_id,
        barcode=body.barcode,
        location_code=body.location_code,
        shelf_number=body.shelf_number,
        quantity=body.quantity,
        operator=operator.name,
        operator_role=operator.role,
    )
    current_domain.process(command, asynchronous=False)
    return _load_job(job_id)


@job_router.put("/{job_id}/finish-picking", response_model=JobResponse)
async def finish_picking(job_id: str, operator: Operator = Depends(operator_identity)) -> JobResponse:
    command = FinishPicking(job_id=job_id, operator=operator.name, operator_role=operator.role)
    current_domain.process(command, asynchronous=False)
    return _load_job(job_id)


@job_router.put("/{job_id}/items/verify", response_model=JobResponse)
async def set_item_verified(
    job_id: str,
    body: SetItemVerifiedRequest,
    operator: Operator = Depends(operator_identity),
) -> JobResponse:
    command = SetItemVerified(
        job_id=job_id,
        barcode=body.barcode,
        verified=body.verified,
        location_code=body.location_code,
        shelf_number=body.shelf_number,
        expected_revision=body.expected_revision,
        operator=operator.name,
        operator_role=operator.role,
    )
    current_domain.process(command, asynchronous=False)
    return _load_job(job_id)


@job_router.put("/{job_id}/items/{index}", response_model=JobResponse)
async def update_job_item(
    job_id: str,
    index: int,
    body: UpdateJobItemRequest,
    operator: Operator = Depends(operator_identity),
) -> JobResponse:
    command = UpdateJobItem(
        job_id=job_id,
        index=index,
        barcode=body.barcode,
        quantity=body.quantity,
        restore_stock=body.restore_stock,
        expected_revision=body.expected_revision,
        operator=operator.name,
        operator_role=operator.role,
    )
    current_domain.process(command, asynchronous=False)
    return _load_job(job_id)


@job_router.delete("/{job_id}/items/{index}", response_model=JobResponse)
async def remove_job_item(
    job_id: str,
    index: int,
    restore_stock: bool = False,
    expected_revision: int | None = None,
    operator: Operator = Depends(operator_identity),
) -> JobResponse:
    command = RemoveJobItem(
        job_id=job_id,
        index=index,
        restore_stock=restore_stock,
        expected_revision=expected_revision,
        operator=operator.name,
        operator_role=operator.role,
    )
    current_domain.process(command, asynchronous=False)
    return _load_job(job_id)


@job_router.put("/{job_id}/complete-packing", response_model=JobResponse)
async def complete_packing(job_id: str, operator: Operator = Depends(operator_identity)) -> JobResponse:
    command = CompletePacking(job_id=job_id, operator=operator.name, operator_role=operator.role)
    current_domain.process(command, asynchronous=False)
    return _load_job(job_id)


@job_router.delete("/{job_id}", response_model=StatusResponse)
async def delete_job(
    job_id: str,
    restore_stock: bool = False,
    operator: Operator = Depends(operator_identity),
) -> StatusResponse:
    command = DeleteJob(
        job_id=job_id,
        restore_stock=restore_stock,
        operator=operator.name,
        operator_role=operator.role,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Activity Router
# ---------------------------------------------------------------------------
activity_router = APIRouter(prefix="/activity", tags=["activity"])


@activity_router.get("", response_model=list[ActivityResponse])
async def list_activity(limit: int = 100) -> list[ActivityResponse]:
    return [
        ActivityResponse(user=entry.user, role=entry.role, detail=entry.detail, time=entry.time)
        for entry in recent_activity(limit)
    ]
