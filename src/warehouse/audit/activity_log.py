"""Activity log: append-only audit sink for every warehouse mutation.

Entries are written by command handlers inside the same unit of work as the
change they describe, so an aborted command leaves no trace in the log.
"""

from datetime import UTC, datetime

import structlog
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from warehouse.domain import warehouse

logger = structlog.get_logger(__name__)

UNKNOWN_OPERATOR = "Unknown"


@warehouse.aggregate
class ActivityLog:
    """One human-readable audit line: who did what, and when."""

    user = String(required=True, max_length=100)
    role = String(max_length=50)
    detail = Text(required=True)
    time = DateTime(required=True)


def record_activity(user, role, detail):
    """Append an activity entry attributed to the operator."""
    entry = ActivityLog(
        user=user or UNKNOWN_OPERATOR,
        role=role,
        detail=detail,
        time=datetime.now(UTC),
    )
    current_domain.repository_for(ActivityLog).add(entry)
    logger.info("Activity recorded", user=entry.user, detail=detail)
    return entry


def recent_activity(limit=100):
    """Most recent entries first."""
    return current_domain.repository_for(ActivityLog)._dao.query.order_by("-time").limit(limit).all().items
