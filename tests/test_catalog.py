import io
import json

import pytest
from sqlalchemy import select

from spa_admin.models import Branch, BranchServicePricing, Hotel, Service, ServiceCategory


def _send(client, method, url, payload, headers):
    return client.open(
        url,
        method=method,
        data=json.dumps(payload),
        content_type="application/json",
        headers=headers,
    )


@pytest.mark.catalog
@pytest.mark.admin
class TestCategories:
    def test_create_appends_sort_order(self, client, auth_headers):
        first = json.loads(
            _send(client, "POST", "/api/admin/categories", {"name": "Massage"}, auth_headers).data
        )
        response = _send(client, "POST", "/api/admin/categories", {"name": "Facials"}, auth_headers)

        assert response.status_code == 201
        second = json.loads(response.data)["data"]["category"]
        assert second["sort_order"] == first["data"]["category"]["sort_order"] + 1

    def test_create_requires_name(self, client, auth_headers):
        response = _send(client, "POST", "/api/admin/categories", {"name": "  "}, auth_headers)
        assert response.status_code == 400
        assert json.loads(response.data)["message"] == "Name is required"

    def test_list_sorted_by_sort_order(self, client, auth_headers):
        for name in ("A", "B", "C"):
            _send(client, "POST", "/api/admin/categories", {"name": name}, auth_headers)

        data = json.loads(client.get("/api/admin/categories?limit=2", headers=auth_headers).data)

        assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
        assert [c["name"] for c in data["data"]["categories"]] == ["A", "B"]

    def test_partial_update(self, client, db_session, auth_headers):
        category = ServiceCategory(name="Old", description="keep me", sort_order=1)
        db_session.add(category)
        db_session.commit()

        response = _send(
            client, "PUT", f"/api/admin/categories/{category.id}", {"name": "New"}, auth_headers
        )

        assert response.status_code == 200
        data = json.loads(response.data)["data"]["category"]
        assert data["name"] == "New"
        assert data["description"] == "keep me"

    def test_update_with_nothing(self, client, db_session, auth_headers):
        category = ServiceCategory(name="Old", sort_order=1)
        db_session.add(category)
        db_session.commit()

        response = _send(client, "PUT", f"/api/admin/categories/{category.id}", {}, auth_headers)
        assert response.status_code == 400
        assert json.loads(response.data)["message"] == "No fields to update"

    def test_delete_in_use_conflicts(self, client, db_session, auth_headers, sample_branch):
        category_id = db_session.scalar(select(Service.category_id).where(Service.id == 10))
        response = client.delete(f"/api/admin/categories/{category_id}", headers=auth_headers)

        assert response.status_code == 409
        assert json.loads(response.data)["message"] == (
            "Category is used in services and cannot be deleted"
        )

    def test_toggle(self, client, db_session, auth_headers):
        category = ServiceCategory(name="Toggle me", sort_order=1)
        db_session.add(category)
        db_session.commit()

        response = client.patch(f"/api/admin/categories/{category.id}/toggle", headers=auth_headers)
        assert json.loads(response.data)["data"]["category"]["is_active"] is False

    def test_missing_category(self, client, auth_headers):
        response = client.get("/api/admin/categories/404", headers=auth_headers)
        assert response.status_code == 404

    def test_category_id_past_integer_range(self, client, auth_headers):
        response = client.get(
            "/api/admin/categories/99999999999999999999", headers=auth_headers
        )
        assert response.status_code == 404


@pytest.mark.catalog
@pytest.mark.admin
class TestServices:
    def test_create_service(self, client, db_session, auth_headers, sample_branch):
        category_id = db_session.scalar(select(ServiceCategory.id))
        response = _send(
            client,
            "POST",
            "/api/admin/services",
            {"category_id": category_id, "name": "Facial", "default_duration_min": 50},
            auth_headers,
        )

        assert response.status_code == 201
        service = json.loads(response.data)["data"]["service"]
        assert service["default_duration_min"] == 50
        assert service["is_active"] is True

    def test_create_service_unknown_category(self, client, auth_headers):
        response = _send(
            client, "POST", "/api/admin/services", {"category_id": 77, "name": "X"}, auth_headers
        )
        assert response.status_code == 404

    def test_create_service_bad_duration(self, client, auth_headers, sample_branch):
        response = _send(
            client,
            "POST",
            "/api/admin/services",
            {"category_id": 1, "name": "X", "default_duration_min": -5},
            auth_headers,
        )
        assert response.status_code == 400

    def test_update_can_clear_duration(self, client, db_session, auth_headers, sample_branch):
        response = _send(
            client, "PUT", "/api/admin/services/10", {"default_duration_min": None}, auth_headers
        )

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(Service, 10).default_duration_min is None

    def test_search_and_filters(self, client, auth_headers, sample_branch):
        data = json.loads(
            client.get("/api/admin/services?search=massage", headers=auth_headers).data
        )
        assert [s["name"] for s in data["data"]["services"]] == ["Swedish Massage"]
        assert data["data"]["services"][0]["category"]["name"] == "Massage"

    def test_delete_priced_service_conflicts(self, client, auth_headers, sample_branch):
        response = client.delete("/api/admin/services/10", headers=auth_headers)
        assert response.status_code == 409

    def test_delete_unpriced_service(self, client, db_session, auth_headers, sample_branch):
        response = client.delete("/api/admin/services/30", headers=auth_headers)

        assert response.status_code == 200
        assert db_session.get(Service, 30) is None

    def test_services_list(self, client, auth_headers, sample_branch):
        data = json.loads(client.get("/api/admin/services/servicesList", headers=auth_headers).data)
        assert len(data["data"]["servicesList"]) == 4


@pytest.mark.catalog
@pytest.mark.admin
class TestPricing:
    def _payload(self, branch_id, **overrides):
        payload = {
            "branch_id": branch_id,
            "service_id": 30,
            "price_amount": 80,
            "currency": "egp",
            "duration_min": 90,
        }
        payload.update(overrides)
        return payload

    def test_create_pricing(self, client, auth_headers, sample_branch):
        response = _send(
            client,
            "POST",
            "/api/admin/branch-service-pricing",
            self._payload(sample_branch.id),
            auth_headers,
        )

        assert response.status_code == 201
        pricing = json.loads(response.data)["data"]["pricing"]
        assert pricing["currency"] == "EGP"
        assert pricing["price_amount"] == 80.0

    def test_duplicate_pricing_conflicts(self, client, auth_headers, sample_branch):
        response = _send(
            client,
            "POST",
            "/api/admin/branch-service-pricing",
            self._payload(sample_branch.id, service_id=10),
            auth_headers,
        )
        assert response.status_code == 409

    @pytest.mark.parametrize(
        "overrides",
        [
            {"price_amount": -1},
            {"price_amount": None},
            {"duration_min": 0},
            {"currency": "GBP"},
        ],
    )
    def test_validation(self, client, auth_headers, sample_branch, overrides):
        response = _send(
            client,
            "POST",
            "/api/admin/branch-service-pricing",
            self._payload(sample_branch.id, **overrides),
            auth_headers,
        )
        assert response.status_code == 400

    def test_unknown_service(self, client, auth_headers, sample_branch):
        response = _send(
            client,
            "POST",
            "/api/admin/branch-service-pricing",
            self._payload(sample_branch.id, service_id=555),
            auth_headers,
        )
        assert response.status_code == 404

    def test_list_filters_by_branch(self, client, auth_headers, sample_branch):
        data = json.loads(
            client.get(
                f"/api/admin/branch-service-pricing?branch_id={sample_branch.id}&is_active=true",
                headers=auth_headers,
            ).data
        )
        assert data["pagination"]["total"] == 2
        assert {p["service"]["id"] for p in data["data"]["pricings"]} == {10, 20}

    def test_update_and_toggle(self, client, db_session, auth_headers, sample_branch):
        pricing_id = db_session.scalar(
            select(BranchServicePricing.id).where(BranchServicePricing.service_id == 20)
        )

        response = _send(
            client,
            "PUT",
            f"/api/admin/branch-service-pricing/{pricing_id}",
            {"price_amount": "55.5"},
            auth_headers,
        )
        assert json.loads(response.data)["data"]["pricing"]["price_amount"] == 55.5

        response = client.patch(
            f"/api/admin/branch-service-pricing/{pricing_id}/toggle", headers=auth_headers
        )
        assert json.loads(response.data)["data"]["pricing"]["is_active"] is False

    def test_delete(self, client, db_session, auth_headers, sample_branch):
        pricing_id = db_session.scalar(
            select(BranchServicePricing.id).where(BranchServicePricing.service_id == 20)
        )
        response = client.delete(
            f"/api/admin/branch-service-pricing/{pricing_id}", headers=auth_headers
        )
        assert response.status_code == 200
        assert db_session.get(BranchServicePricing, pricing_id) is None


@pytest.mark.catalog
@pytest.mark.admin
class TestBranches:
    def test_create_branch_with_hotel(self, client, db_session, auth_headers):
        response = _send(
            client,
            "POST",
            "/api/admin/branches",
            {"name": "Maadi  Spa & Wellness", "city": "Cairo", "hotel_name": "Maadi Inn"},
            auth_headers,
        )

        assert response.status_code == 201
        data = json.loads(response.data)["data"]
        assert data["branch"]["slug"] == "maadi-spa-wellness"
        assert data["hotel"]["name"] == "Maadi Inn"
        assert data["branch"]["hotel_id"] == data["hotel"]["id"]

    def test_duplicate_slug_conflicts(self, client, auth_headers, sample_branch):
        response = _send(
            client, "POST", "/api/admin/branches", {"name": "Downtown"}, auth_headers
        )
        assert response.status_code == 409

    def test_get_by_slug(self, client, auth_headers, sample_branch):
        response = client.get("/api/admin/branches/downtown", headers=auth_headers)

        assert response.status_code == 200
        data = json.loads(response.data)["data"]["branch"]
        assert data["id"] == sample_branch.id
        assert data["hotel"]["name"] == "Nile Hotel"

    def test_update_renames_slug_and_hotel(self, client, db_session, auth_headers, sample_branch):
        response = _send(
            client,
            "PUT",
            f"/api/admin/branches/{sample_branch.id}",
            {"name": "Zamalek", "hotel_title": "Island view"},
            auth_headers,
        )

        assert response.status_code == 200
        data = json.loads(response.data)["data"]["branch"]
        assert data["slug"] == "zamalek"
        assert data["hotel"]["title"] == "Island view"
        assert data["hotel"]["name"] == "Nile Hotel"

    def test_delete_priced_branch_conflicts(self, client, auth_headers, sample_branch):
        response = client.delete("/api/admin/branches/downtown", headers=auth_headers)
        assert response.status_code == 409

    def test_delete_branch_removes_hotel(self, client, db_session, auth_headers):
        hotel = Hotel(name="Gone", title="")
        db_session.add(hotel)
        db_session.flush()
        branch = Branch(name="Temp", slug="temp", hotel_id=hotel.id)
        db_session.add(branch)
        db_session.commit()
        hotel_id = hotel.id

        response = client.delete("/api/admin/branches/temp", headers=auth_headers)

        assert response.status_code == 200
        assert db_session.get(Hotel, hotel_id) is None

    def test_branches_list_only_active(self, client, db_session, auth_headers, sample_branch):
        db_session.add(Branch(name="Closed", slug="closed", is_active=False))
        db_session.commit()

        data = json.loads(client.get("/api/admin/branches/branchesList", headers=auth_headers).data)
        assert [b["slug"] for b in data["data"]["branchesList"]] == ["downtown"]

    def test_branch_services(self, client, auth_headers, sample_branch):
        response = _send(
            client,
            "POST",
            "/api/admin/branches/downtown/services",
            {"service_id": 30, "price_amount": 120, "duration_min": 90},
            auth_headers,
        )
        assert response.status_code == 201
        assert json.loads(response.data)["data"]["branchService"]["currency"] == "EGP"

        data = json.loads(
            client.get("/api/admin/branches/downtown/services", headers=auth_headers).data
        )
        assert {s["service_name"] for s in data["data"]["services"]} == {
            "Swedish Massage",
            "Foot Reflexology",
            "Body Scrub",
            "Hot Stones",
        }

        response = client.delete("/api/admin/branches/downtown/services/30", headers=auth_headers)
        assert response.status_code == 200

    def test_image_upload(self, client, db_session, auth_headers, sample_branch, monkeypatch):
        uploaded = {}

        def fake_upload(file, key):
            uploaded["key"] = key
            return f"https://cdn.example.com/{key}"

        monkeypatch.setattr("spa_admin.api.admin.branches.upload_file_to_s3", fake_upload)
        response = client.post(
            "/api/admin/branches/downtown/images/2",
            data={"image_file": (io.BytesIO(b"fake"), "front.png")},
            content_type="multipart/form-data",
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert uploaded["key"].startswith(f"branches/{sample_branch.id}/")
        assert uploaded["key"].endswith(".png")
        branch = json.loads(response.data)["data"]["branch"]
        assert branch["image_url_2"] == f"https://cdn.example.com/{uploaded['key']}"

    @pytest.mark.parametrize("slot,filename", [("6", "a.png"), ("1", "notes.txt")])
    def test_image_upload_rejects(self, client, auth_headers, sample_branch, slot, filename):
        response = client.post(
            f"/api/admin/branches/downtown/images/{slot}",
            data={"image_file": (io.BytesIO(b"fake"), filename)},
            content_type="multipart/form-data",
            headers=auth_headers,
        )
        assert response.status_code == 400
