"""Location aggregate (CQRS): availability metadata for a storage location.

A location without a record is available. The flag is advisory: it only
blocks incoming stock when ``WAREHOUSE_ENFORCE_LOCATION_AVAILABILITY`` is on.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Boolean, DateTime, String
from protean.utils.globals import current_domain

from warehouse.audit.activity_log import record_activity
from warehouse.config import AWAITING_LOCATION, enforce_location_availability, is_known_location
from warehouse.domain import warehouse
from warehouse.errors import InvalidLocationError, LocationUnavailableError

logger = structlog.get_logger(__name__)


@warehouse.aggregate
class Location:
    """Availability flag for one location code."""

    location_code = String(required=True, max_length=50, unique=True)
    is_available = Boolean(default=True)
    updated_at = DateTime()

    def set_availability(self, is_available):
        self.is_available = is_available
        self.updated_at = datetime.now(UTC)


def find_location(location_code):
    results = current_domain.repository_for(Location)._dao.query.filter(location_code=location_code).all().items
    return results[0] if results else None


def is_location_available(location_code):
    location = find_location(location_code)
    return location is None or location.is_available


def unavailable_locations():
    return sorted(
        location.location_code
        for location in current_domain.repository_for(Location)._dao.query.filter(is_available=False).all().items
    )


def ensure_location_available(location_code):
    """Reject an unavailable destination when enforcement is configured."""
    if location_code == AWAITING_LOCATION or not enforce_location_availability():
        return
    if not is_location_available(location_code):
        raise LocationUnavailableError({"location_code": [f"Location {location_code} is not available"]})


@warehouse.command(part_of="Location")
class SetLocationAvailability:
    """Flag a location as available or unavailable."""

    location_code = String(required=True, max_length=50)
    is_available = Boolean(required=True)
    operator = String(max_length=100)
    operator_role = String(max_length=50)


@warehouse.command_handler(part_of=Location)
class LocationHandler:
    @handle(SetLocationAvailability)
    def set_location_availability(self, command):
        if command.location_code == AWAITING_LOCATION or not is_known_location(command.location_code):
            raise InvalidLocationError({"location_code": [f"Unknown location code: {command.location_code}"]})

        repo = current_domain.repository_for(Location)
        location = find_location(command.location_code)
        if location is None:
            location = Location(location_code=command.location_code)
        location.set_availability(command.is_available)
        repo.add(location)

        state = "available" if command.is_available else "unavailable"
        record_activity(
            command.operator,
            command.operator_role,
            f"marked location {command.location_code} as {state}",
        )
        logger.info("Location availability changed", location_code=command.location_code, is_available=state)
        return location.to_dict()
