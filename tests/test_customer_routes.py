from types import SimpleNamespace

from fastapi.testclient import TestClient

from cms_api.core.metrics import request_metrics
from cms_api.deps import require_user
from cms_api.main import create_app
from cms_api.services.customers import CustomerService
from tests.fixtures_data import SECOND_ADDRESS, build_database, customer_payload

BASE = "/api/v1"


def _build_client(**client_kwargs) -> TestClient:
    app = create_app(database=build_database(), run_startup_tasks=False)
    app.dependency_overrides[require_user] = lambda: SimpleNamespace(id=7, name="Admin", email="admin@cms.com")
    return TestClient(app, **client_kwargs)


def _create(client: TestClient, **overrides) -> dict:
    response = client.post(f"{BASE}/customers", json=customer_payload(**overrides))
    assert response.status_code == 201
    return response.json()["data"]


def test_create_customer_returns_201_with_envelope():
    client = _build_client()

    response = client.post(f"{BASE}/customers", json=customer_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Customer created successfully"
    assert body["data"]["email"] == "asha.rao@raotextiles.in"
    assert len(body["data"]["addresses"]) == 1
    assert body["data"]["addresses"][0]["pin_code"] == "560038"


def test_create_customer_with_malformed_payload_returns_field_errors():
    client = _build_client()
    payload = customer_payload(full_name="Asha R4o", address={"pin_code": "5600"})

    response = client.post(f"{BASE}/customers", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    fields = {error["field"] for error in body["errors"]}
    assert fields == {"full_name", "address.pin_code"}


def test_create_customer_with_padded_pin_code_returns_400():
    client = _build_client()

    response = client.post(f"{BASE}/customers", json=customer_payload(address={"pin_code": " 560001 "}))

    assert response.status_code == 400
    assert [error["field"] for error in response.json()["errors"]] == ["address.pin_code"]


def test_create_customer_with_mismatched_city_returns_400():
    client = _build_client()

    response = client.post(f"{BASE}/customers", json=customer_payload(address={"city": "Mumbai", "state": "Gujarat"}))

    assert response.status_code == 400
    assert response.json()["message"].startswith("City 'Mumbai' does not belong to state 'Gujarat'")


def test_create_customer_with_taken_email_returns_409():
    client = _build_client()
    _create(client)

    response = client.post(f"{BASE}/customers", json=customer_payload(full_name="Other Person"))

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "message": "Email 'asha.rao@raotextiles.in' is already registered",
    }


def test_list_customers_paginates_and_searches():
    client = _build_client()
    _create(client)
    _create(client, full_name="Vikram Mehta", company_name="Mehta Motors", email="vikram@mehta.in")

    page = client.get(f"{BASE}/customers", params={"page": 1, "limit": 1}).json()["data"]
    search = client.get(f"{BASE}/customers", params={"search": "motors"}).json()["data"]

    assert page["total"] == 2
    assert page["total_pages"] == 2
    assert [item["full_name"] for item in page["items"]] == ["Asha Rao"]
    assert [item["full_name"] for item in search["items"]] == ["Vikram Mehta"]


def test_list_customers_rejects_out_of_range_limit():
    client = _build_client()

    response = client.get(f"{BASE}/customers", params={"limit": 500})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "limit"


def test_get_update_and_delete_customer():
    client = _build_client()
    created = _create(client)
    customer_id = created["id"]

    fetched = client.get(f"{BASE}/customers/{customer_id}")
    updated = client.put(f"{BASE}/customers/{customer_id}", json={"phone_number": "9123456780"})
    deleted = client.delete(f"{BASE}/customers/{customer_id}")
    missing = client.get(f"{BASE}/customers/{customer_id}")

    assert fetched.status_code == 200
    assert fetched.json()["data"]["addresses"][0]["city"] == "Bengaluru"
    assert updated.status_code == 200
    assert updated.json()["data"]["phone_number"] == "9123456780"
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True, "data": None, "message": "Customer deleted successfully"}
    assert missing.status_code == 404
    assert missing.json()["message"] == f"Customer with id {customer_id} not found"


def test_update_customer_with_city_outside_stored_state_returns_400():
    client = _build_client()
    created = _create(client)

    response = client.put(f"{BASE}/customers/{created['id']}", json={"address": {"city": "Mumbai"}})

    assert response.status_code == 400
    assert "does not belong to state 'Karnataka'" in response.json()["message"]


def test_update_customer_with_empty_payload_returns_400():
    client = _build_client()
    created = _create(client)

    response = client.put(f"{BASE}/customers/{created['id']}", json={"email": None})

    assert response.status_code == 400
    assert response.json()["message"] == "At least one field must be provided for update"


def test_customer_address_routes():
    client = _build_client()
    created = _create(client)
    customer_id = created["id"]

    added = client.post(f"{BASE}/customers/{customer_id}/addresses", json=SECOND_ADDRESS)
    listed = client.get(f"{BASE}/customers/{customer_id}/addresses")
    address_id = added.json()["data"]["id"]
    updated = client.put(f"{BASE}/addresses/{address_id}", json={"city": "Pune", "pin_code": "411001"})
    deleted = client.delete(f"{BASE}/addresses/{address_id}")
    deleted_again = client.delete(f"{BASE}/addresses/{address_id}")

    assert added.status_code == 201
    assert [address["city"] for address in listed.json()["data"]] == ["Bengaluru", "Mumbai"]
    assert updated.status_code == 200
    assert updated.json()["data"]["city"] == "Pune"
    assert deleted.status_code == 200
    assert deleted_again.status_code == 404
    assert deleted_again.json()["message"] == f"Address with id {address_id} not found"


def test_add_address_to_unknown_customer_returns_404():
    client = _build_client()

    response = client.post(f"{BASE}/customers/999/addresses", json=SECOND_ADDRESS)

    assert response.status_code == 404


def test_reference_routes():
    client = _build_client()

    states = client.get(f"{BASE}/reference/states").json()["data"]
    cities = client.get(f"{BASE}/reference/cities").json()["data"]
    karnataka = next(state for state in states if state["name"] == "Karnataka")
    karnataka_cities = client.get(f"{BASE}/reference/states/{karnataka['id']}/cities").json()["data"]
    unknown = client.get(f"{BASE}/reference/states/999/cities")

    assert len(cities) == 6
    assert [city["name"] for city in karnataka_cities] == ["Bengaluru", "Mysuru"]
    assert unknown.status_code == 404
    assert unknown.json()["message"] == "State with id 999 not found"


def test_unknown_route_returns_envelope_404():
    client = _build_client()

    response = client.get(f"{BASE}/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route not found"}


def test_unexpected_error_returns_500_envelope(monkeypatch):
    client = _build_client(raise_server_exceptions=False)

    def _explode(self, customer_id):
        raise RuntimeError("database went away")

    monkeypatch.setattr(CustomerService, "get_customer", _explode)

    response = client.get(f"{BASE}/customers/1")

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_request_id_is_echoed_and_metrics_are_recorded():
    client = _build_client()
    request_metrics.reset()

    response = client.get(f"{BASE}/reference/states", headers={"X-Request-ID": "req-123"})
    metrics = client.get(f"{BASE}/internal/metrics").json()["data"]["endpoints"]

    assert response.headers["X-Request-ID"] == "req-123"
    assert metrics[f"GET {BASE}/reference/states"]["total_requests"] == 1


def test_health():
    client = _build_client()

    response = client.get(f"{BASE}/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
