from datetime import date
from types import SimpleNamespace

from visit_dzaleka.domain.customers.service import belongs_to, customer_stats


def _booking(status, amount, visit_date):
    return SimpleNamespace(status=status, total_amount=amount, visit_date=visit_date)


def test_customer_stats_ignore_cancelled_spend():
    bookings = [
        _booking("completed", 15000, date(2026, 1, 10)),
        _booking("completed", 50000, date(2026, 2, 3)),
        _booking("confirmed", 15000, date(2026, 4, 1)),
        _booking("cancelled", 80000, date(2026, 5, 1)),
    ]

    stats = customer_stats(bookings)

    assert stats == {
        "totalVisits": 2,
        "totalSpend": 80000,
        "lastVisit": date(2026, 4, 1),
        "bookingCount": 4,
    }
    assert customer_stats([])["lastVisit"] is None


def test_belongs_to_by_account_or_email():
    user = SimpleNamespace(id=4, email="Grace@Example.com")
    assert belongs_to(SimpleNamespace(visitor_user_id=4, visitor_email="other@example.com"), user)
    assert belongs_to(SimpleNamespace(visitor_user_id=None, visitor_email="grace@example.com"), user)
    assert not belongs_to(SimpleNamespace(visitor_user_id=9, visitor_email="x@example.com"), user)


class TestCustomerApi:
    def test_list_with_stats_and_search(self, client, coordinator, make_user, make_booking):
        _, headers = coordinator
        grace, _ = make_user("visitor", email="grace@example.com", first_name="Grace")
        make_user("visitor", email="john@example.com", first_name="John")
        make_booking(status="completed", total_amount=15000)
        make_booking(status="cancelled", total_amount=50000)

        found = client.get("/api/customers", params={"search": "grace"}, headers=headers).json()

        assert [c["id"] for c in found] == [grace.id]
        assert found[0]["stats"]["totalVisits"] == 1
        assert found[0]["stats"]["totalSpend"] == 15000
        assert found[0]["stats"]["bookingCount"] == 2
        # Only visitor accounts are customers
        everyone = client.get("/api/customers", headers=headers).json()
        assert sorted(c["email"] for c in everyone) == ["grace@example.com", "john@example.com"]

    def test_guides_can_list_but_visitors_cannot(self, client, visitor, make_user):
        _, guide_headers = make_user("guide")
        _, visitor_headers = visitor
        assert client.get("/api/customers", headers=guide_headers).status_code == 200
        assert client.get("/api/customers", headers=visitor_headers).status_code == 403

    def test_detail_includes_bookings(self, client, admin, make_user, make_booking):
        _, headers = admin
        grace, _ = make_user("visitor", email="grace@example.com")
        booking = make_booking()

        detail = client.get(f"/api/customers/{grace.id}", headers=headers).json()

        assert detail["user"]["email"] == "grace@example.com"
        assert [b["id"] for b in detail["bookings"]] == [booking.id]
        assert detail["stats"]["totalSpend"] == 15000

    def test_detail_only_for_visitor_accounts(self, client, admin, coordinator):
        _, headers = admin
        staff, _ = coordinator
        assert client.get(f"/api/customers/{staff.id}", headers=headers).status_code == 404

    def test_update_crm_fields(self, client, coordinator, visitor):
        _, headers = coordinator
        customer, _ = visitor

        response = client.patch(
            f"/api/customers/{customer.id}",
            json={
                "tags": ["vip", " vip ", "", "school group"],
                "adminNotes": "Prefers <morning> tours",
                "preferredContactMethod": "whatsapp",
                "marketingConsent": True,
                "preferences": {"diet": "<b>vegetarian</b>", "groupSize": 4},
            },
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["tags"] == ["vip", "school group"]
        assert body["adminNotes"] == "Prefers &lt;morning&gt; tours"
        assert body["preferredContactMethod"] == "whatsapp"
        assert body["marketingConsent"] is True
        assert body["preferences"] == {"diet": "&lt;b&gt;vegetarian&lt;/b&gt;", "groupSize": 4}

    def test_update_rejects_unknown_contact_method(self, client, coordinator, visitor):
        _, headers = coordinator
        customer, _ = visitor
        response = client.patch(
            f"/api/customers/{customer.id}", json={"preferredContactMethod": "pigeon"}, headers=headers
        )
        assert response.status_code == 422
