"""API tests — owners, parcels, transfers, reports and error responses"""
import pytest
from datetime import date


async def _owner(client, name, **fields):
    response = await client.post("/owners", json={"full_name": name, **fields})
    assert response.status_code == 201
    return response.json()


async def _parcel(client, number, owner_id=None, **fields):
    body = {"parcel_number": number, "location": "North sector", "area_size": "500", **fields}
    if owner_id:
        body["original_owner_id"] = owner_id
    response = await client.post("/parcels", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestStatus:
    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"


class TestOwnerEndpoints:
    async def test_create_and_list(self, client):
        created = await _owner(client, "Bob", national_id="ID-2")
        await _owner(client, "Alice")

        response = await client.get("/owners")
        assert [o["full_name"] for o in response.json()] == ["Alice", "Bob"]

        response = await client.get(f"/owners/{created['id']}")
        assert response.json()["national_id"] == "ID-2"

    async def test_missing_name(self, client):
        response = await client.post("/owners", json={"full_name": " "})
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_unknown_owner(self, client):
        response = await client.get("/owners/nobody")
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


class TestParcelEndpoints:
    """The PLOT-001 walk-through over HTTP"""

    async def test_register_transfer_history(self, client):
        alice = await _owner(client, "Alice")
        bob = await _owner(client, "Bob")

        plot = await _parcel(client, "PLOT-001", alice["id"])
        assert plot["current_owner_id"] == alice["id"]
        assert plot["current_owner"]["full_name"] == "Alice"
        assert plot["area_size"] == 500.0

        response = await client.post(
            f"/parcels/{plot['id']}/transfers",
            json={"to_owner_id": bob["id"], "transfer_date": "2024-03-01", "sale_amount": 1000},
        )
        assert response.status_code == 200
        assert response.json()["current_owner_id"] == bob["id"]

        history = (await client.get(f"/parcels/{plot['id']}/history")).json()
        assert len(history) == 2
        assert history[0]["from_owner_id"] is None
        assert history[0]["to_owner_name"] == "Alice"
        assert history[0]["transfer_date"] == date.today().isoformat()
        assert history[1]["from_owner_name"] == "Alice"
        assert history[1]["to_owner_name"] == "Bob"
        assert history[1]["transfer_date"] == "2024-03-01"
        assert history[1]["sale_amount"] == 1000.0

        response = await client.post(f"/parcels/{plot['id']}/transfers", json={"to_owner_id": bob["id"]})
        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_TRANSFER"
        assert response.json()["retryable"] is False
        assert len((await client.get(f"/parcels/{plot['id']}/history")).json()) == 2

    async def test_list_and_search(self, client):
        alice = await _owner(client, "Alice")
        await _parcel(client, "PLOT-002")
        await _parcel(client, "PLOT-001", alice["id"], location="Riverside")

        parcels = (await client.get("/parcels")).json()
        assert [p["parcel_number"] for p in parcels] == ["PLOT-001", "PLOT-002"]

        found = (await client.get("/parcels", params={"search": "alice"})).json()
        assert [p["parcel_number"] for p in found] == ["PLOT-001"]

    async def test_get_parcel(self, client):
        plot = await _parcel(client, "PLOT-005", boundaries="Stone wall")
        response = await client.get(f"/parcels/{plot['id']}")
        assert response.json()["boundaries"] == "Stone wall"

    @pytest.mark.parametrize("body,field", [
        ({"location": "X", "area_size": 10}, "parcel_number"),
        ({"parcel_number": "P", "area_size": 10}, "location"),
        ({"parcel_number": "P", "location": "X"}, "area_size"),
        ({"parcel_number": "P", "location": "X", "area_size": "-4"}, "area_size"),
    ])
    async def test_register_validation(self, client, body, field):
        response = await client.post("/parcels", json=body)
        assert response.status_code == 422
        payload = response.json()
        assert payload["error"] == "VALIDATION_ERROR"
        assert payload["details"]["field"] == field

    async def test_duplicate_parcel_number(self, client):
        await _parcel(client, "PLOT-001")
        response = await client.post("/parcels", json={"parcel_number": "PLOT-001", "location": "Y", "area_size": 1})
        assert response.status_code == 409
        assert response.json()["error"] == "DUPLICATE_PARCEL_NUMBER"

    async def test_transfer_unknown_parcel(self, client):
        bob = await _owner(client, "Bob")
        response = await client.post("/parcels/missing/transfers", json={"to_owner_id": bob["id"]})
        assert response.status_code == 404
        assert response.json()["path"] == "/parcels/missing/transfers"

    async def test_inline_owners(self, client):
        plot = await _parcel(client, "PLOT-021", new_owner={"full_name": "Ama Owusu", "national_id": "VIL-0007"})
        assert plot["original_owner"]["full_name"] == "Ama Owusu"
        assert plot["original_owner"]["national_id"] == "VIL-0007"

        response = await client.post(
            f"/parcels/{plot['id']}/transfers",
            json={"new_owner": {"full_name": "Kojo Badu"}, "transfer_date": "2024-03-01"},
        )
        assert response.status_code == 200
        assert response.json()["current_owner"]["full_name"] == "Kojo Badu"

        names = [o["full_name"] for o in (await client.get("/owners")).json()]
        assert names == ["Ama Owusu", "Kojo Badu"]

    async def test_backdated_transfer_after_first_acquisition(self, client):
        alice = await _owner(client, "Alice")
        bob = await _owner(client, "Bob")
        plot = await _parcel(client, "PLOT-022")
        await client.post(f"/parcels/{plot['id']}/transfers", json={"to_owner_id": alice["id"], "transfer_date": "2024-05-01"})

        response = await client.post(
            f"/parcels/{plot['id']}/transfers", json={"to_owner_id": bob["id"], "transfer_date": "2020-01-01"},
        )
        assert response.status_code == 422
        assert response.json()["details"]["field"] == "transfer_date"

    async def test_transfer_negative_amount(self, client):
        bob = await _owner(client, "Bob")
        plot = await _parcel(client, "PLOT-001")
        response = await client.post(
            f"/parcels/{plot['id']}/transfers", json={"to_owner_id": bob["id"], "sale_amount": -10},
        )
        assert response.status_code == 422
        assert response.json()["details"]["field"] == "sale_amount"


class TestReportEndpoints:
    async def test_stats_recent_certificate(self, client):
        alice = await _owner(client, "Alice")
        bob = await _owner(client, "Bob")
        plot = await _parcel(client, "PLOT-001", alice["id"])
        await client.post(f"/parcels/{plot['id']}/transfers", json={"to_owner_id": bob["id"]})

        stats = (await client.get("/reports/stats")).json()
        assert stats == {"total_parcels": 1, "total_owners": 2, "completed_transfers": 1, "total_area_sq_m": 500.0}

        recent = (await client.get("/reports/recent", params={"limit": 1})).json()
        assert [p["parcel_number"] for p in recent] == ["PLOT-001"]

        cert = (await client.get(f"/reports/certificate/{plot['id']}")).json()
        assert cert["current_owner"]["full_name"] == "Bob"
        assert cert["provenance"]["valid"] is True

    async def test_recent_limit_bounds(self, client):
        response = await client.get("/reports/recent", params={"limit": 0})
        assert response.status_code == 422
