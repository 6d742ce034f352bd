import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from warehouse.domain import warehouse

    warehouse.init()
    warehouse.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from warehouse.domain import warehouse
    from warehouse.utils.db import drop_db, setup_db

    setup_db(warehouse)

    yield

    drop_db(warehouse)


@pytest.fixture(autouse=True)
def run_around_tests(monkeypatch):
    """Fixture to automatically cleanup infrastructure after every test"""
    monkeypatch.delenv("WAREHOUSE_ENFORCE_LOCATION_AVAILABILITY", raising=False)
    monkeypatch.delenv("PRODUCT_LOOKUP_ADAPTER", raising=False)

    yield

    from protean import current_domain
    from warehouse.lookup import reset_product_lookup

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_product_lookup()
