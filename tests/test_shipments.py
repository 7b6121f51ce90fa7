import re
import warnings
from conftest import shipment_payload
from shipment_service.application.schemas import CamelModel
from shipment_service.application.shipment_service import ShipmentService
from shipment_service.core_settings import Settings
from shipment_service.domain import lifecycle
from shipment_service.domain.models import Shipment

def test_create_shipment(client, user, user_headers):
    resp = client.post("/api/shipments", json=shipment_payload(), headers=user_headers)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["status"] == "pending"
    assert re.fullmatch(r"SHP-[0-9A-Z]+-[0-9A-Z]{6}", data["trackingNumber"])
    assert data["createdBy"] == user.id
    assert data["daysInTransit"] == 0
    assert data["isOverdue"] is False
    assert len(data["statusHistory"]) == 1
    assert data["statusHistory"][0]["status"] == "pending"
    assert data["statusHistory"][0]["changedBy"] == user.id

def test_tracking_numbers_are_unique(client, user_headers, create_shipment):
    numbers = {create_shipment(user_headers)["trackingNumber"] for _ in range(5)}
    assert len(numbers) == 5

def test_create_requires_auth(client):
    assert client.post("/api/shipments", json=shipment_payload()).status_code == 401

def test_create_validation(client, user_headers):
    resp = client.post(
        "/api/shipments",
        json=shipment_payload(senderName="A", weight=0, estimatedDelivery="2001-01-01T00:00:00Z"),
        headers=user_headers,
    )
    assert resp.status_code == 422
    fields = {e["field"] for e in resp.json()["errors"]}
    assert {"senderName", "weight", "estimatedDelivery"} <= fields

def test_create_ignores_supplied_tracking_number(client, user_headers):
    resp = client.post(
        "/api/shipments",
        json=shipment_payload(trackingNumber="MINE-123"),
        headers=user_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["trackingNumber"] != "MINE-123"

def test_get_shipment_access(client, user_headers, other_headers, admin_headers, create_shipment):
    shipment = create_shipment(user_headers)
    url = f"/api/shipments/{shipment['id']}"

    assert client.get(url, headers=user_headers).status_code == 200
    assert client.get(url, headers=admin_headers).status_code == 200
    resp = client.get(url, headers=other_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You do not have access to this shipment"
    assert client.get("/api/shipments/9999", headers=user_headers).status_code == 404

def test_list_is_scoped_for_non_admins(client, user, other_user, user_headers, other_headers, admin_headers, create_shipment):
    create_shipment(user_headers)
    create_shipment(user_headers)
    create_shipment(other_headers)

    mine = client.get("/api/shipments", headers=user_headers).json()
    assert mine["pagination"]["totalItems"] == 2
    assert all(s["createdBy"] == user.id for s in mine["data"])

    # userId is ignored for non-admins
    resp = client.get(f"/api/shipments?userId={other_user.id}", headers=user_headers).json()
    assert resp["pagination"]["totalItems"] == 2

    everything = client.get("/api/shipments", headers=admin_headers).json()
    assert everything["pagination"]["totalItems"] == 3
    narrowed = client.get(f"/api/shipments?userId={other_user.id}", headers=admin_headers).json()
    assert narrowed["pagination"]["totalItems"] == 1

def test_list_search_filter_sort_paginate(client, user_headers, create_shipment):
    create_shipment(user_headers, receiverName="Zed Receiver", destination="Dubai, UAE")
    second = create_shipment(user_headers, receiverName="Amy Receiver", destination="Accra, Ghana")
    create_shipment(user_headers, receiverName="Mia Receiver", destination="Dubai, UAE")
    client.patch(f"/api/shipments/{second['id']}/status", json={"status": "in_transit"}, headers=user_headers)

    resp = client.get("/api/shipments?search=dubai", headers=user_headers).json()
    assert resp["pagination"]["totalItems"] == 2

    resp = client.get("/api/shipments?status=in_transit", headers=user_headers).json()
    assert [s["id"] for s in resp["data"]] == [second["id"]]

    resp = client.get("/api/shipments?sortBy=createdAt&sortOrder=asc&limit=2", headers=user_headers).json()
    assert len(resp["data"]) == 2
    assert resp["data"][0]["receiverName"] == "Zed Receiver"
    assert resp["pagination"]["hasNextPage"] is True
    assert resp["pagination"]["totalPages"] == 2

    resp = client.get("/api/shipments?page=2&limit=2", headers=user_headers).json()
    assert len(resp["data"]) == 1
    assert resp["pagination"]["hasPrevPage"] is True

def test_list_rejects_bad_query(client, user_headers):
    assert client.get("/api/shipments?limit=500", headers=user_headers).status_code == 422
    assert client.get("/api/shipments?page=0", headers=user_headers).status_code == 422
    assert client.get("/api/shipments?sortBy=weight", headers=user_headers).status_code == 422
    assert client.get("/api/shipments?status=lost", headers=user_headers).status_code == 422

def test_update_shipment(client, user_headers, other_headers, create_shipment):
    shipment = create_shipment(user_headers)
    url = f"/api/shipments/{shipment['id']}"

    resp = client.put(url, json={"destination": "Paris, France", "trackingNumber": "HACKED"}, headers=user_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["destination"] == "Paris, France"
    assert data["trackingNumber"] == shipment["trackingNumber"]

    assert client.put(url, json={"destination": "Rome, Italy"}, headers=other_headers).status_code == 403

def test_update_status_goes_through_transition_table(client, user_headers, create_shipment):
    shipment = create_shipment(user_headers)
    url = f"/api/shipments/{shipment['id']}"

    resp = client.put(url, json={"status": "delivered"}, headers=user_headers)
    assert resp.status_code == 400

    resp = client.put(url, json={"status": "in_transit"}, headers=user_headers)
    assert resp.status_code == 200
    assert [h["status"] for h in resp.json()["data"]["statusHistory"]] == ["pending", "in_transit"]

def test_status_transitions(client, user_headers, create_shipment):
    shipment = create_shipment(user_headers)
    url = f"/api/shipments/{shipment['id']}/status"

    resp = client.patch(url, json={"status": "delivered"}, headers=user_headers)
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Cannot transition from pending to delivered"
    assert body["data"] == {"currentStatus": "pending", "requestedStatus": "delivered"}
    assert body["errors"][0]["field"] == "status"

    resp = client.patch(url, json={"status": "in_transit", "notes": "Picked up"}, headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["actualDelivery"] is None

    resp = client.patch(url, json={"status": "delivered"}, headers=user_headers)
    data = resp.json()["data"]
    assert data["status"] == "delivered"
    assert data["actualDelivery"] is not None
    assert [h["status"] for h in data["statusHistory"]] == ["pending", "in_transit", "delivered"]
    assert data["statusHistory"][1]["notes"] == "Picked up"

    # terminal
    assert client.patch(url, json={"status": "cancelled"}, headers=user_headers).status_code == 400

def test_self_transition_is_noop(client, user_headers, create_shipment):
    shipment = create_shipment(user_headers)
    resp = client.patch(f"/api/shipments/{shipment['id']}/status", json={"status": "pending"}, headers=user_headers)
    assert resp.status_code == 200
    assert len(resp.json()["data"]["statusHistory"]) == 1

def test_status_change_forbidden_for_non_owner(client, user_headers, other_headers, admin_headers, create_shipment):
    shipment = create_shipment(user_headers)
    url = f"/api/shipments/{shipment['id']}/status"
    assert client.patch(url, json={"status": "in_transit"}, headers=other_headers).status_code == 403
    resp = client.patch(url, json={"status": "in_transit"}, headers=admin_headers)
    assert resp.status_code == 200

def test_status_notes_too_long(client, user_headers, create_shipment):
    shipment = create_shipment(user_headers)
    resp = client.patch(
        f"/api/shipments/{shipment['id']}/status",
        json={"status": "in_transit", "notes": "x" * 501},
        headers=user_headers,
    )
    assert resp.status_code == 422

def test_delete_rules(client, user_headers, admin_headers, create_shipment):
    shipment = create_shipment(user_headers)
    url = f"/api/shipments/{shipment['id']}"
    client.patch(f"{url}/status", json={"status": "in_transit"}, headers=user_headers)

    resp = client.delete(url, headers=user_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Can only delete pending or cancelled shipments"

    assert client.delete(url, headers=admin_headers).status_code == 200
    assert client.get(url, headers=admin_headers).status_code == 404

def test_owner_can_delete_pending(client, user_headers, other_headers, create_shipment):
    shipment = create_shipment(user_headers)
    url = f"/api/shipments/{shipment['id']}"
    assert client.delete(url, headers=other_headers).status_code == 403
    assert client.delete(url, headers=user_headers).status_code == 200

def test_get_by_tracking_number_requires_ownership(client, user_headers, other_headers, admin_headers, create_shipment):
    shipment = create_shipment(user_headers)
    url = f"/api/shipments/track/{shipment['trackingNumber'].lower()}"

    resp = client.get(url, headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == shipment["id"]
    assert client.get(url, headers=admin_headers).status_code == 200
    assert client.get(url, headers=other_headers).status_code == 403
    assert client.get("/api/shipments/track/SHP-NOPE-000000", headers=user_headers).status_code == 404

def test_statistics(client, user, other_user, user_headers, other_headers, admin_headers, create_shipment):
    first = create_shipment(user_headers)
    create_shipment(user_headers)
    create_shipment(other_headers)
    client.patch(f"/api/shipments/{first['id']}/status", json={"status": "cancelled"}, headers=user_headers)

    mine = client.get("/api/shipments/my-stats", headers=user_headers).json()["data"]
    assert mine == {"total": 2, "pending": 1, "in_transit": 0, "delivered": 0, "cancelled": 1}

    scoped = client.get("/api/shipments/stats", headers=user_headers).json()["data"]
    assert scoped == mine

    overall = client.get("/api/shipments/stats", headers=admin_headers).json()["data"]
    assert overall["total"] == 3
    other = client.get(f"/api/shipments/stats?userId={other_user.id}", headers=admin_headers).json()["data"]
    assert other["total"] == 1

def test_update_without_fields(client, user_headers, create_shipment):
    shipment = create_shipment(user_headers)
    resp = client.put(f"/api/shipments/{shipment['id']}", json={"trackingNumber": "SHP-X"}, headers=user_headers)
    assert resp.status_code == 422
    assert resp.json()["message"] == "No updatable fields provided"

def test_collection_paths_without_trailing_slash(client, user_headers):
    resp = client.post("/api/shipments", json=shipment_payload(), headers=user_headers, follow_redirects=False)
    assert resp.status_code == 201
    resp = client.get("/api/shipments", headers=user_headers, follow_redirects=False)
    assert resp.status_code == 200
    assert resp.json()["pagination"]["totalItems"] == 1

def test_tracking_number_clash_at_commit_is_conflict(client, user_headers, create_shipment, db_session, monkeypatch):
    existing = create_shipment(user_headers)["trackingNumber"]
    monkeypatch.setattr(ShipmentService, "_tracking_number_exists", lambda self, tn: False)
    monkeypatch.setattr(lifecycle, "generate_tracking_number", lambda: existing)

    resp = client.post("/api/shipments", json=shipment_payload(), headers=user_headers)
    assert resp.status_code == 409
    assert resp.json()["message"] == f"Tracking number {existing} already exists"
    assert db_session.query(Shipment).count() == 1

def test_camel_models_build_without_deprecation_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error")

        class Note(CamelModel):
            short_text: str

    assert Note.model_validate({"shortText": "  fragile  "}).short_text == "fragile"
    assert Settings.model_config["env_file"] == ".env"
