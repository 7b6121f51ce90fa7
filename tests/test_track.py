def test_public_tracking_hides_owner(client, user, user_headers, create_shipment):
    shipment = create_shipment(user_headers)
    client.patch(
        f"/api/shipments/{shipment['id']}/status",
        json={"status": "in_transit", "notes": "Left the warehouse"},
        headers=user_headers,
    )

    resp = client.get(f"/api/track/{shipment['trackingNumber']}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert data["trackingNumber"] == shipment["trackingNumber"]
    assert data["status"] == "in_transit"
    assert data["senderName"] == "Alice Sender"
    assert data["destination"] == "London, UK"
    for hidden in ("id", "createdBy", "updatedBy", "attachments", "weight", "description"):
        assert hidden not in data
    assert [h["status"] for h in data["statusHistory"]] == ["pending", "in_transit"]
    assert all("changedBy" not in h for h in data["statusHistory"])
    assert data["statusHistory"][1]["notes"] == "Left the warehouse"

def test_tracking_is_case_insensitive(client, user_headers, create_shipment):
    shipment = create_shipment(user_headers)
    resp = client.get(f"/api/track/{shipment['trackingNumber'].lower()}")
    assert resp.status_code == 200

def test_unknown_tracking_number(client):
    resp = client.get("/api/track/SHP-UNKNOWN-XXXXXX")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Shipment not found"}
