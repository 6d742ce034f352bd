"""Integration tests for Warehouse API endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain
from protean.integrations.fastapi import register_exception_handlers
from warehouse.api.routes import activity_router, inventory_router, job_router, location_router
from warehouse.jobs.job import Job
from warehouse.ledger.stock_entry import StockEntry

OPERATOR = {"X-Operator-Name": "alice", "X-Operator-Role": "admin"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(inventory_router)
    app.include_router(location_router)
    app.include_router(job_router)
    app.include_router(activity_router)
    register_exception_handlers(app)
    return TestClient(app)


def _add_stock(client, **overrides):
    """Helper: POST /inventory and return the stock_entry_id."""
    defaults = {
        "name": "blue widget",
        "quantity": 10,
        "location_code": "C3",
        "shelf_number": "2",
        "barcode": "0001",
    }
    defaults.update(overrides)
    response = client.post("/inventory", json=defaults, headers=OPERATOR)
    assert response.status_code == 201
    return response.json()["stock_entry_id"]


def _start_job(client):
    response = client.post("/jobs", headers=OPERATOR)
    assert response.status_code == 201
    return response.json()["job_id"]


class TestInventoryEndpoints:
    def test_add_stock(self, client):
        entry_id = _add_stock(client)
        entry = current_domain.repository_for(StockEntry).get(entry_id)
        assert entry.name == "BLUE WIDGET"

    def test_get_stock_entry(self, client):
        entry_id = _add_stock(client)
        response = client.get(f"/inventory/{entry_id}")
        assert response.status_code == 200
        assert response.json()["quantity"] == 10

    def test_missing_entry_is_404(self, client):
        response = client.get("/inventory/does-not-exist")
        assert response.status_code == 404

    def test_invalid_location_is_400(self, client):
        response = client.post(
            "/inventory",
            json={"name": "x", "quantity": 1, "location_code": "Z9", "shelf_number": "0"},
        )
        assert response.status_code == 400

    def test_summaries_fold_duplicate_rows(self, client):
        _add_stock(client, quantity=4)
        _add_stock(client, quantity=6)
        response = client.get("/inventory/summaries")
        assert response.status_code == 200
        summaries = response.json()
        assert len(summaries) == 1
        assert summaries[0]["quantity"] == 10
        assert len(summaries[0]["stock_entry_ids"]) == 2

    def test_list_filters_by_prefix(self, client):
        _add_stock(client)
        _add_stock(client, name="red widget", barcode="0002")
        response = client.get("/inventory", params={"name_prefix": "red"})
        assert [row["name"] for row in response.json()] == ["RED WIDGET"]

    def test_deduct(self, client):
        entry_id = _add_stock(client)
        response = client.put(f"/inventory/{entry_id}/deduct", json={"quantity": 4}, headers=OPERATOR)
        assert response.status_code == 200
        assert response.json()["quantity"] == 6

    def test_deduct_too_much_is_400(self, client):
        entry_id = _add_stock(client, quantity=2)
        response = client.put(f"/inventory/{entry_id}/deduct", json={"quantity": 4})
        assert response.status_code == 400

    def test_edit_unconfirmed_increase_is_400(self, client):
        entry_id = _add_stock(client)
        response = client.patch(f"/inventory/{entry_id}", json={"changes": {"quantity": 20}})
        assert response.status_code == 400
        response = client.patch(
            f"/inventory/{entry_id}",
            json={"changes": {"quantity": 20}, "confirm_increase": True},
        )
        assert response.status_code == 200
        assert response.json()["changed_fields"] == ["quantity"]

    def test_move(self, client):
        entry_id = _add_stock(client)
        response = client.post(
            f"/inventory/{entry_id}/move",
            json={"quantity": 4, "location_code": "D1", "shelf_number": "0"},
            headers=OPERATOR,
        )
        assert response.status_code == 200
        assert response.json()["stock_entry_id"] != entry_id

    def test_delete(self, client):
        entry_id = _add_stock(client)
        assert client.delete(f"/inventory/{entry_id}").status_code == 200
        assert client.get(f"/inventory/{entry_id}").status_code == 404


class TestLocationEndpoints:
    def test_list_locations(self, client):
        response = client.get("/locations")
        codes = {row["location_code"]: row for row in response.json()}
        assert codes["O3"]["max_shelf_number"] == 7
        assert codes["FG"]["max_shelf_number"] == 5
        assert codes["C3"]["is_available"] is True

    def test_mark_unavailable(self, client):
        response = client.put("/locations/C3/availability", json={"is_available": False})
        assert response.status_code == 200
        codes = {row["location_code"]: row for row in client.get("/locations").json()}
        assert codes["C3"]["is_available"] is False


class TestJobEndpoints:
    def test_full_workflow(self, client):
        entry_id = _add_stock(client, quantity=10)
        job_id = _start_job(client)

        response = client.post(f"/jobs/{job_id}/picks", json={"stock_entry_id": entry_id, "quantity": 3})
        assert response.status_code == 200
        assert response.json()["pending_updates"][0]["deducted_quantity"] == 3

        response = client.put(f"/jobs/{job_id}/finish-picking", headers=OPERATOR)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "awaiting_pack"
        assert body["picker"] == "alice"
        assert client.get(f"/inventory/{entry_id}").json()["quantity"] == 7

        response = client.put(f"/jobs/{job_id}/items/verify", json={"barcode": "0001"})
        assert response.json()["items"][0]["verified"] is True

        response = client.put(f"/jobs/{job_id}/complete-packing", headers={"X-Operator-Name": "bob"})
        assert response.json()["status"] == "completed"
        assert response.json()["packer"] == "bob"

    def test_finish_empty_job_is_400(self, client):
        job_id = _start_job(client)
        response = client.put(f"/jobs/{job_id}/finish-picking")
        assert response.status_code == 400

    def test_stale_revision_is_400(self, client):
        entry_id = _add_stock(client)
        job_id = _start_job(client)
        client.post(f"/jobs/{job_id}/picks", json={"stock_entry_id": entry_id, "quantity": 1})
        client.put(f"/jobs/{job_id}/finish-picking")
        response = client.put(f"/jobs/{job_id}/items/verify", json={"barcode": "0001", "expected_revision": 99})
        assert response.status_code == 400

    def test_remove_item_with_restore(self, client):
        entry_id = _add_stock(client, quantity=10)
        job_id = _start_job(client)
        client.post(f"/jobs/{job_id}/picks", json={"stock_entry_id": entry_id, "quantity": 3})
        client.put(f"/jobs/{job_id}/finish-picking")

        response = client.delete(f"/jobs/{job_id}/items/0", params={"restore_stock": True})
        assert response.status_code == 200
        assert response.json()["items"] == []
        assert client.get(f"/inventory/{entry_id}").json()["quantity"] == 10

    def test_list_jobs_by_status(self, client):
        _start_job(client)
        response = client.get("/jobs", params={"status": "picking"})
        assert len(response.json()) == 1
        assert client.get("/jobs", params={"status": "completed"}).json() == []

    def test_delete_job(self, client):
        job_id = _start_job(client)
        assert client.delete(f"/jobs/{job_id}").status_code == 200
        assert current_domain.repository_for(Job)._dao.query.all().items == []


class TestActivityEndpoint:
    def test_activity_attributed_to_operator(self, client):
        _add_stock(client)
        response = client.get("/activity")
        entries = response.json()
        assert entries[0]["user"] == "alice"
        assert entries[0]["role"] == "admin"
