"""Warehouse bounded context: Inventory Ledger and Job Fulfillment.

Handles the multi-location stock ledger (CQRS), relocation of stock between
locations, and the picking → packing job workflow that reconciles its
deductions against the ledger when picking finishes.
"""

import structlog
from protean.domain import Domain

from warehouse.utils.logging import configure_logging

configure_logging()

warehouse = Domain(name="warehouse")

logger = structlog.get_logger(__name__)
