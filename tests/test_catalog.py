from types import SimpleNamespace

from visit_dzaleka.domain.catalog.service import pricing_table, zone_usage_counts
from visit_dzaleka.models import Zone


def test_pricing_table_falls_back_to_defaults():
    configured = SimpleNamespace(
        group_size="small_group",
        name="Families",
        min_people=2,
        max_people=6,
        base_price=45000,
        additional_hour_price=8000,
        currency="MWK",
        is_active=True,
    )
    table = pricing_table([configured])

    assert [row["groupSize"] for row in table] == ["individual", "small_group", "large_group", "custom"]
    small = table[1]
    assert small["basePrice"] == 45000
    assert small["isDefault"] is False
    individual = table[0]
    assert individual["basePrice"] == 15000
    assert individual["additionalHourPrice"] == 10000
    assert individual["isDefault"] is True
    assert table[3]["maxPeople"] is None


def test_zone_usage_counts_compare_ids_as_strings():
    zones = [SimpleNamespace(id=1, name="Market", is_active=True), SimpleNamespace(id=2, name="Arts", is_active=True)]
    rows = zone_usage_counts(zones, [[1], ["1", 2], [2], ["2"]], [[1], []])
    assert [(r["zoneId"], r["bookingCount"], r["guideCount"]) for r in rows] == [(2, 3, 0), (1, 2, 1)]


class TestZones:
    def test_public_list_hides_inactive(self, client, db):
        db.add_all([Zone(name="Market"), Zone(name="Old Camp", is_active=False)])
        db.commit()

        names = [z["name"] for z in client.get("/api/zones").json()]
        assert names == ["Market"]
        # includeInactive is ignored for anonymous callers
        assert len(client.get("/api/zones", params={"includeInactive": "true"}).json()) == 1

    def test_staff_crud_and_soft_delete(self, client, admin, coordinator):
        _, staff = coordinator
        _, admin_headers = admin

        created = client.post("/api/zones", json={"name": "Arts Quarter", "color": "#aa3300"}, headers=staff)
        assert created.status_code == 201
        zone_id = created.json()["id"]

        renamed = client.patch(f"/api/zones/{zone_id}", json={"name": "Arts & Crafts"}, headers=staff)
        assert renamed.json()["name"] == "Arts & Crafts"
        assert renamed.json()["color"] == "#aa3300"

        assert client.delete(f"/api/zones/{zone_id}", headers=staff).status_code == 403
        removed = client.delete(f"/api/zones/{zone_id}", headers=admin_headers)
        assert removed.json()["isActive"] is False

        assert client.get("/api/zones").json() == []
        everything = client.get("/api/zones", params={"includeInactive": "true"}, headers=staff).json()
        assert [z["id"] for z in everything] == [zone_id]

    def test_visitors_cannot_create(self, client, visitor):
        _, headers = visitor
        assert client.post("/api/zones", json={"name": "X"}, headers=headers).status_code == 403

    def test_analytics_counts_bookings_and_guides(self, client, db, coordinator, make_booking, make_guide):
        _, headers = coordinator
        zone = Zone(name="Market")
        db.add(zone)
        db.commit()
        make_booking(selected_zones=[zone.id])
        make_booking(selected_zones=[zone.id], status="cancelled")
        make_guide(assigned_zones=[zone.id])

        rows = client.get("/api/zones/analytics", headers=headers).json()
        assert rows == [
            {"zoneId": zone.id, "name": "Market", "isActive": True, "bookingCount": 1, "guideCount": 1}
        ]


class TestPointsOfInterest:
    def test_filter_by_zone_and_reject_unknown_zone(self, client, db, coordinator):
        _, headers = coordinator
        market = Zone(name="Market")
        db.add(market)
        db.commit()

        client.post("/api/points-of-interest", json={"name": "Tailors Row", "zoneId": market.id}, headers=headers)
        client.post("/api/points-of-interest", json={"name": "Radio Station"}, headers=headers)

        in_market = client.get("/api/points-of-interest", params={"zoneId": market.id}).json()
        assert [p["name"] for p in in_market] == ["Tailors Row"]
        assert len(client.get("/api/points-of-interest").json()) == 2

        bad = client.post("/api/points-of-interest", json={"name": "Nowhere", "zoneId": 999}, headers=headers)
        assert bad.status_code == 400


def test_meeting_points_crud(client, admin):
    _, headers = admin
    created = client.post(
        "/api/meeting-points", json={"name": "Main Gate", "address": "Dzaleka, Dowa"}, headers=headers
    ).json()
    assert client.get("/api/meeting-points").json()[0]["name"] == "Main Gate"

    client.delete(f"/api/meeting-points/{created['id']}", headers=headers)
    assert client.get("/api/meeting-points").json() == []


class TestPricing:
    def test_defaults_then_admin_update(self, client, admin, booking_payload):
        _, headers = admin
        table = client.get("/api/pricing").json()
        assert [row["basePrice"] for row in table] == [15000, 50000, 80000, 100000]

        updated = client.patch(
            "/api/pricing",
            json={"items": [{"groupSize": "individual", "basePrice": 20000, "additionalHourPrice": 12000}]},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()[0]["basePrice"] == 20000
        assert updated.json()[0]["isDefault"] is False
        assert updated.json()[0]["name"] == "Individual"

        booking = client.post(
            "/api/bookings", json=booking_payload(groupSize="individual", tourType="extended")
        ).json()
        assert booking["totalAmount"] == 20000 + 2 * 12000

    def test_pricing_update_validates(self, client, admin, coordinator):
        _, admin_headers = admin
        _, coordinator_headers = coordinator
        assert client.patch("/api/pricing", json={"items": []}, headers=admin_headers).status_code == 422
        bad_size = {"items": [{"groupSize": "busload", "basePrice": 1}]}
        assert client.patch("/api/pricing", json=bad_size, headers=admin_headers).status_code == 422
        ok = {"items": [{"groupSize": "custom", "basePrice": 1}]}
        assert client.patch("/api/pricing", json=ok, headers=coordinator_headers).status_code == 403

    def test_calculate_price(self, client):
        response = client.post(
            "/api/calculate-price", json={"groupSize": "large_group", "tourType": "custom", "customDuration": 4}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["totalAmount"] == 80000 + 2 * 10000
        assert body["basePrice"] == 80000
        assert body["currency"] == "MWK"

        assert client.post("/api/calculate-price", json={"groupSize": "huge"}).status_code == 422
