"""Domain events for the Job aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from warehouse.domain import warehouse


@warehouse.event(part_of="Job")
class JobStarted:
    """A picking session opened a new job."""

    __version__ = 1

    job_id = Identifier(required=True)
    job_number = String(required=True)
    created_by = String()
    started_at = DateTime(required=True)


@warehouse.event(part_of="Job")
class JobItemPicked:
    """Units were added to a job item during picking."""

    __version__ = 1

    job_id = Identifier(required=True)
    barcode = String()
    location_code = String()
    shelf_number = String()
    quantity = Integer(required=True)
    stock_entry_id = Identifier()  # Absent for scanned items


@warehouse.event(part_of="Job")
class PickingFinished:
    """Picking ended and the ledger was reconciled with the job's items."""

    __version__ = 1

    job_id = Identifier(required=True)
    job_number = String(required=True)
    picker = String()
    item_count = Integer(required=True)
    total_units = Integer(required=True)
    picking_time = Integer(required=True)  # Seconds
    finished_at = DateTime(required=True)


@warehouse.event(part_of="Job")
class JobItemVerified:
    """A packer confirmed (or un-confirmed) one item."""

    __version__ = 1

    job_id = Identifier(required=True)
    barcode = String()
    location_code = String()
    shelf_number = String()
    verified = Boolean(required=True)


@warehouse.event(part_of="Job")
class JobItemUpdated:
    """A job item's barcode or quantity changed during packing."""

    __version__ = 1

    job_id = Identifier(required=True)
    previous_barcode = String()
    barcode = String()
    previous_quantity = Integer(required=True)
    quantity = Integer(required=True)


@warehouse.event(part_of="Job")
class JobItemRemoved:
    """A job item was dropped during packing."""

    __version__ = 1

    job_id = Identifier(required=True)
    barcode = String()
    location_code = String()
    shelf_number = String()
    quantity = Integer(required=True)


@warehouse.event(part_of="Job")
class PackingCompleted:
    """The job was packed and closed."""

    __version__ = 1

    job_id = Identifier(required=True)
    job_number = String(required=True)
    packer = String()
    item_count = Integer(required=True)
    total_units = Integer(required=True)
    completed_at = DateTime(required=True)
