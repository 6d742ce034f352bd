"""Shared BDD fixtures and step definitions for job reconciliation."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from warehouse.jobs.job import Job
from warehouse.jobs.picking import StartJob
from warehouse.ledger.queries import stock_at
from warehouse.ledger.receiving import AddStock


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


@pytest.fixture()
def ledger():
    """Stock entry ids keyed by (barcode, location, shelf)."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a ledger row for "{barcode}" at "{location}" shelf "{shelf}" with {quantity:d} units'))
def ledger_row(ledger, barcode, location, shelf, quantity):
    result = current_domain.process(
        AddStock(
            name=f"product {barcode}",
            barcode=barcode,
            location_code=location,
            shelf_number=shelf,
            quantity=quantity,
        ),
        asynchronous=False,
    )
    ledger[(barcode, location, shelf)] = result["stock_entry_id"]


@given("a picking job", target_fixture="job_id")
def picking_job():
    return current_domain.process(StartJob(operator="picker"), asynchronous=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the ledger row for "{barcode}" at "{location}" shelf "{shelf}" holds {quantity:d} units'))
def ledger_row_holds(barcode, location, shelf, quantity):
    rows = stock_at(barcode, location, shelf)
    assert sum(row.quantity for row in rows) == quantity


@then(parsers.cfparse('the job is "{status}"'))
def job_status(job_id, status):
    assert current_domain.repository_for(Job).get(job_id).status == status


@then(parsers.cfparse('the job finish fails with "{error_name}"'))
def finish_failed(error, error_name):
    assert error["exc"] is not None
    assert type(error["exc"]).__name__ == error_name
