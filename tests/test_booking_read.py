import json
from datetime import date, timedelta
from decimal import Decimal

import pytest

from spa_admin.models import BookingItem, BranchServicePricing, Service
from spa_admin.services.booking_read import aggregate_items


def _get(client, url, headers):
    return client.get(url, headers=headers)


@pytest.mark.booking
@pytest.mark.admin
class TestBookingDetail:
    def test_detail_totals(self, client, auth_headers, booking_payload):
        created = json.loads(
            client.post(
                "/api/customer/bookings",
                data=json.dumps(booking_payload),
                content_type="application/json",
            ).data
        )

        response = _get(client, f"/api/admin/bookings/{created['booking_id']}", auth_headers)

        assert response.status_code == 200
        data = json.loads(response.data)["data"]
        assert data["status"] == "confirmed"
        assert data["branch"]["name"] == "Downtown"
        assert data["customer"]["name"] == "Mona Adel"
        assert data["totals"] == {
            "items_count": 3,
            "total_duration_min": 105,
            "total_amount": 250.0,
        }
        massage = data["services"][0]
        assert massage["service_id"] == 10
        assert massage["quantity"] == 2
        assert massage["total_price"] == 200.0
        assert massage["total_duration_min"] == 60

    def test_snapshots_survive_catalog_changes(self, client, db_session, auth_headers, booking_payload):
        created = json.loads(
            client.post(
                "/api/customer/bookings",
                data=json.dumps(booking_payload),
                content_type="application/json",
            ).data
        )

        service = db_session.get(Service, 10)
        service.name = "Renamed Massage"
        db_session.query(BranchServicePricing).filter_by(service_id=10).update(
            {"price_amount": Decimal("999.00")}
        )
        db_session.commit()

        data = json.loads(
            _get(client, f"/api/admin/bookings/{created['booking_id']}", auth_headers).data
        )["data"]
        assert data["services"][0]["service_name"] == "Swedish Massage"
        assert data["services"][0]["unit_price"] == 100.0
        assert data["totals"]["total_amount"] == 250.0

    def test_missing_booking(self, client, auth_headers, sample_branch):
        response = _get(client, "/api/admin/bookings/4242", auth_headers)
        assert response.status_code == 404
        assert json.loads(response.data)["message"] == "Booking not found"

    def test_invalid_booking_id(self, client, auth_headers):
        response = _get(client, "/api/admin/bookings/abc", auth_headers)
        assert response.status_code == 400

    def test_id_past_integer_range_is_404(self, client, auth_headers, sample_branch):
        huge = "99999999999999999999"
        response = _get(client, f"/api/admin/bookings/{huge}", auth_headers)

        assert response.status_code == 404
        assert json.loads(response.data)["message"] == "Booking not found"

        response = client.patch(
            f"/api/admin/bookings/{huge}/status",
            data=json.dumps({"status": "completed"}),
            content_type="application/json",
            headers=auth_headers,
        )
        assert response.status_code == 404

    def test_branch_filter_past_integer_range(self, client, auth_headers, sample_branch):
        response = _get(client, "/api/admin/bookings?branch_id=99999999999999999999", auth_headers)
        assert response.status_code == 400

    def test_page_past_integer_range_is_empty(self, client, auth_headers, make_booking):
        make_booking()
        data = json.loads(
            _get(client, "/api/admin/bookings?page=99999999999999999999", auth_headers).data
        )
        assert data["data"] == []
        assert data["total"] == 1


@pytest.mark.booking
@pytest.mark.admin
class TestBookingList:
    def test_pagination(self, client, auth_headers, make_booking):
        for _ in range(25):
            make_booking()

        response = _get(client, "/api/admin/bookings?page=2&limit=10", auth_headers)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["success"] is True
        assert data["page"] == 2
        assert data["limit"] == 10
        assert data["total"] == 25
        assert len(data["data"]) == 10

    def test_pages_do_not_overlap(self, client, auth_headers, make_booking):
        for _ in range(15):
            make_booking()

        seen = []
        for page in (1, 2):
            body = json.loads(
                _get(client, f"/api/admin/bookings?page={page}&limit=10", auth_headers).data
            )
            seen.extend(row["id"] for row in body["data"])
        assert len(seen) == 15
        assert len(set(seen)) == 15

    def test_rows_carry_item_summary(self, client, auth_headers, make_booking):
        booking = make_booking(items=((10, 2), (20, 1)))

        data = json.loads(_get(client, "/api/admin/bookings", auth_headers).data)["data"]

        row = next(r for r in data if r["id"] == booking.id)
        assert row["items_count"] == 3
        assert row["total_duration"] == 105
        assert row["total_amount"] == 250.0
        assert row["branch"]["name"] == "Downtown"

    def test_filters(self, client, auth_headers, make_booking):
        start = date(2025, 6, 1)
        make_booking(status="pending", booking_date=start)
        make_booking(status="cancelled", booking_date=start + timedelta(days=5))
        make_booking(status="pending", booking_date=start + timedelta(days=10))

        data = json.loads(
            _get(client, "/api/admin/bookings?status=pending&from=2025-06-02", auth_headers).data
        )
        assert data["total"] == 1
        assert data["data"][0]["date"] == "2025-06-11"

    def test_sort_by_total(self, client, auth_headers, make_booking):
        make_booking(items=((20, 1),))
        make_booking(items=((10, 3),))
        make_booking(items=((10, 1),))

        data = json.loads(
            _get(client, "/api/admin/bookings?sortBy=total_amount&sortOrder=asc", auth_headers).data
        )["data"]
        assert [row["total_amount"] for row in data] == [50.0, 100.0, 300.0]

    def test_unknown_sort_field_falls_back(self, client, auth_headers, make_booking):
        make_booking()
        response = _get(client, "/api/admin/bookings?sortBy=password", auth_headers)
        assert response.status_code == 200

    def test_invalid_status_filter(self, client, auth_headers, sample_branch):
        response = _get(client, "/api/admin/bookings?status=archived", auth_headers)
        assert response.status_code == 400
        assert json.loads(response.data)["message"] == "Invalid status filter"

    def test_limit_is_capped(self, client, auth_headers, sample_branch):
        data = json.loads(_get(client, "/api/admin/bookings?limit=500", auth_headers).data)
        assert data["limit"] == 100


@pytest.mark.booking
class TestAggregateItems:
    def test_repeated_service_rows_are_folded(self):
        items = [
            BookingItem(
                service_id=10,
                service_name_snapshot="Massage",
                price_amount_snapshot=Decimal("100.00"),
                currency_snapshot="USD",
                duration_min_snapshot=30,
                quantity=1,
                sort_order=1,
            ),
            BookingItem(
                service_id=20,
                service_name_snapshot="Reflexology",
                price_amount_snapshot=Decimal("50.00"),
                currency_snapshot="USD",
                duration_min_snapshot=45,
                quantity=1,
                sort_order=2,
            ),
            BookingItem(
                service_id=10,
                service_name_snapshot="Massage",
                price_amount_snapshot=Decimal("120.00"),
                currency_snapshot="USD",
                duration_min_snapshot=30,
                quantity=2,
                sort_order=3,
            ),
        ]

        services = aggregate_items(items)

        assert [s["service_id"] for s in services] == [10, 20]
        assert services[0]["quantity"] == 3
        assert services[0]["total_price"] == 340.0
        assert services[0]["unit_price"] == 120.0
        assert services[0]["total_duration_min"] == 90
