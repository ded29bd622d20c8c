"""
Integration tests for the HTTP API.
Tests authentication, the public catalog and the back office end to end
against the in-memory backend.
"""

import pytest
from unittest.mock import AsyncMock, patch
from urllib.parse import urlparse, parse_qs

from app.config import settings
from tests.conftest import ListingFactory, assert_error_envelope, backend_error

API = settings.api_v1_prefix
MISSING_ID = "2c0b6f7e-9999-4c4c-8c8c-000000000000"


def titles(response):
    return [listing["title"] for listing in response.json()["listings"]]


class TestAuthEndpoints:
    """Test sign-in, sign-up, sessions and admin status."""

    def test_sign_in(self, client, user_account):
        response = client.post(f"{API}/auth/sign-in", json={
            "email": "Buyer@Example.com",
            "password": "buyerpass1"
        })

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["user"]["email"] == "buyer@example.com"
        assert body["user"]["display_name"] == "Jane Buyer"
        assert body["token_type"] == "bearer"
        assert body["refresh_token"]
        assert response.cookies.get(settings.session_cookie_name) == body["access_token"]

    def test_sign_in_bad_password(self, client, user_account):
        response = client.post(f"{API}/auth/sign-in", json={
            "email": "buyer@example.com",
            "password": "wrong-password"
        })

        error = assert_error_envelope(response, 401, "UNAUTHORIZED")
        assert error["message"] == "Invalid email or password"

    def test_sign_in_invalid_email(self, client):
        response = client.post(f"{API}/auth/sign-in", json={"email": "nobody", "password": "x"})
        assert_error_envelope(response, 422, "VALIDATION_ERROR")

    def test_sign_up(self, client, fake_backend):
        response = client.post(f"{API}/auth/sign-up", json={
            "email": "new@example.com",
            "password": "newpass1",
            "full_name": "Otieno Mwangi"
        })

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["requires_confirmation"] is False
        assert body["session"]["user"]["full_name"] == "Otieno Mwangi"
        assert "new@example.com" in fake_backend.accounts

    def test_sign_up_awaiting_confirmation(self, client, fake_backend):
        fake_backend.confirm_email = True

        response = client.post(f"{API}/auth/sign-up", json={"email": "new@example.com", "password": "newpass1"})

        assert response.status_code == 201
        assert response.json()["session"] is None
        assert response.json()["requires_confirmation"] is True
        assert settings.session_cookie_name not in response.cookies

    def test_sign_up_existing_email(self, client, user_account):
        response = client.post(f"{API}/auth/sign-up", json={"email": "buyer@example.com", "password": "another1"})

        error = assert_error_envelope(response, 409, "CONFLICT")
        assert error["message"] == "An account with this email already exists"

    def test_me_with_bearer_token(self, client, user_headers):
        response = client.get(f"{API}/auth/me", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["email"] == "buyer@example.com"

    def test_me_with_session_cookie(self, client, user_account):
        client.post(f"{API}/auth/sign-in", json={"email": "buyer@example.com", "password": "buyerpass1"})

        response = client.get(f"{API}/auth/me")

        assert response.status_code == 200
        assert response.json()["full_name"] == "Jane Buyer"

    def test_me_reports_profile_role(self, client, user_headers):
        response = client.get(f"{API}/auth/me", headers=user_headers)

        assert response.json()["role"] == "user"
        assert response.json()["display_name"] == "Jane Buyer"

    def test_me_falls_back_to_profile_name(self, client, fake_backend):
        account = fake_backend.add_account("plain@example.com", "plainpass1")
        fake_backend.tables[settings.profiles_table][-1]["full_name"] = "Plain Person"
        headers = {"Authorization": f"Bearer {fake_backend.token_for(account['email'])}"}

        body = client.get(f"{API}/auth/me", headers=headers).json()

        assert body["full_name"] == "Plain Person"
        assert body["display_name"] == "Plain Person"

    def test_me_without_readable_profile(self, client, fake_backend, user_headers):
        fake_backend.table_errors[settings.profiles_table] = backend_error("42501", "permission denied")

        response = client.get(f"{API}/auth/me", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["role"] is None
        assert response.json()["email"] == "buyer@example.com"

    def test_me_without_token(self, client):
        assert_error_envelope(client.get(f"{API}/auth/me"), 401, "UNAUTHORIZED")

    def test_me_with_expired_token(self, client, fake_backend, user_account):
        token = fake_backend.token_for(user_account["email"])
        fake_backend.expired_tokens.add(token)

        response = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})

        error = assert_error_envelope(response, 401, "UNAUTHORIZED")
        assert error["message"] == "Token has expired"

    def test_admin_status_anonymous(self, client):
        response = client.get(f"{API}/auth/admin-status")

        error = assert_error_envelope(response, 401, "UNAUTHORIZED")
        assert error["sign_in_url"] == "/auth?redirect=admin"
        assert response.headers["location"] == "/auth?redirect=admin"

    def test_admin_status_regular_user(self, client, user_headers, user_account):
        response = client.get(f"{API}/auth/admin-status", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["is_admin"] is False
        assert response.json()["user_id"] == user_account["id"]

    def test_admin_status_admin(self, client, admin_headers):
        response = client.get(f"{API}/auth/admin-status", headers=admin_headers)
        assert response.json()["is_admin"] is True

    def test_admin_status_fails_closed(self, client, fake_backend, admin_headers):
        fake_backend.rpc_error = RuntimeError("procedure unavailable")

        response = client.get(f"{API}/auth/admin-status", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["is_admin"] is False

    def test_refresh(self, client, fake_backend, user_account):
        session = fake_backend.open_session(user_account)

        response = client.post(f"{API}/auth/refresh", json={"refresh_token": session.refresh_token})
        reused = client.post(f"{API}/auth/refresh", json={"refresh_token": session.refresh_token})

        assert response.status_code == 200
        assert response.json()["access_token"] != session.access_token
        assert_error_envelope(reused, 401, "UNAUTHORIZED")

    def test_sign_out(self, client, fake_backend, user_headers):
        response = client.post(f"{API}/auth/sign-out", headers=user_headers)

        assert response.status_code == 204
        assert_error_envelope(client.get(f"{API}/auth/me", headers=user_headers), 401, "UNAUTHORIZED")

    def test_sign_out_without_token(self, client):
        assert_error_envelope(client.post(f"{API}/auth/sign-out"), 401, "UNAUTHORIZED")


class TestCatalogEndpoints:
    """Test the public catalog."""

    def test_catalog_shows_active_listings_featured_first(self, client, sample_catalog):
        response = client.get(f"{API}/listings")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 4
        assert body["total_pages"] == 1
        assert body["has_next"] is False
        assert titles(response) == [
            "3BR Modern Apartment - Kilimani",
            "Toyota Camry 2020",
            "4BR Family House - Karen",
            "Honda CR-V 2019",
        ]

    def test_listing_payload(self, client, sample_catalog):
        listing = client.get(f"{API}/listings", params={"q": "camry"}).json()["listings"][0]

        assert listing["formatted_price"] == "KSH 3,200,000"
        assert listing["whatsapp_url"].startswith("https://wa.me/254712345678?text=")
        assert listing["type"] == "car"

    @pytest.mark.parametrize("params,expected", [
        ({"type": "car"}, {"Toyota Camry 2020", "Honda CR-V 2019"}),
        ({"type": "PROPERTY"}, {"3BR Modern Apartment - Kilimani", "4BR Family House - Karen"}),
        ({"type": "all", "location": "mombasa"}, {"Honda CR-V 2019"}),
        ({"q": "garden"}, {"4BR Family House - Karen"}),
        ({"min_price": 3500000, "max_price": 20000000}, {"Honda CR-V 2019", "3BR Modern Apartment - Kilimani"}),
        ({"featured": "true"}, {"Toyota Camry 2020", "3BR Modern Apartment - Kilimani"}),
        ({"price_range": "20000000+"}, {"4BR Family House - Karen"}),
        ({"type": "car", "price_range": "2000000-5000000"}, {"Toyota Camry 2020", "Honda CR-V 2019"}),
    ])
    def test_filters(self, client, sample_catalog, params, expected):
        response = client.get(f"{API}/listings", params=params)

        assert response.status_code == 200, response.text
        assert set(titles(response)) == expected

    def test_sold_listings_never_appear(self, client, sample_catalog):
        response = client.get(f"{API}/listings", params={"q": "x-trail"})
        assert response.json()["total"] == 0

    def test_pagination(self, client, sample_catalog):
        response = client.get(f"{API}/listings", params={"page": 2, "page_size": 3})

        body = response.json()
        assert titles(response) == ["Honda CR-V 2019"]
        assert body["total_pages"] == 2
        assert body["has_previous"] is True

    def test_invalid_type(self, client):
        error = assert_error_envelope(client.get(f"{API}/listings", params={"type": "boat"}), 422, "VALIDATION_ERROR")
        assert error["message"] == "Invalid listing type: boat"

    def test_min_price_above_max_price(self, client):
        response = client.get(f"{API}/listings", params={"min_price": 500, "max_price": 100})

        error = assert_error_envelope(response, 422, "VALIDATION_ERROR")
        assert error["message"] == "Invalid search filters"

    def test_invalid_price_range_preset(self, client):
        response = client.get(f"{API}/listings", params={"price_range": "cheap"})
        assert_error_envelope(response, 422, "VALIDATION_ERROR")

    def test_sections(self, client, sample_catalog):
        response = client.get(f"{API}/listings/sections", params={"type": "property"})

        body = response.json()
        assert [listing["title"] for listing in body["featured"]] == ["3BR Modern Apartment - Kilimani"]
        assert [listing["title"] for listing in body["regular"]] == ["4BR Family House - Karen"]
        assert body["total"] == 2

    def test_sections_are_paginated_separately(self, client, sample_catalog):
        body = client.get(f"{API}/listings/sections", params={"page_size": 1}).json()

        assert len(body["featured"]) == 1
        assert len(body["regular"]) == 1
        assert (body["featured_total"], body["regular_total"], body["total"]) == (2, 2, 4)

    def test_search_options(self, client):
        body = client.get(f"{API}/listings/search-options").json()

        assert {"value": "nairobi", "label": "Nairobi"} in body["locations"]
        assert body["price_ranges"]["car"][0] == {"value": "0-500000", "label": "Under KSH 500K"}
        assert body["price_ranges"]["property"][-1]["value"] == "20000000+"
        assert [option["value"] for option in body["types"]] == ["car", "property"]

    def test_listing_detail(self, client, sample_catalog):
        listing_id = sample_catalog["camry"]["id"]

        response = client.get(f"{API}/listings/{listing_id}")

        assert response.status_code == 200
        whatsapp_url = response.json()["whatsapp_url"]
        message = parse_qs(urlparse(whatsapp_url).query)["text"][0]
        assert "Toyota Camry 2020 listed for KSH 3,200,000" in message

    def test_hidden_listing_is_not_found_for_public(self, client, sample_catalog, user_headers):
        listing_id = sample_catalog["sold_car"]["id"]

        assert_error_envelope(client.get(f"{API}/listings/{listing_id}"), 404, "NOT_FOUND")
        assert_error_envelope(client.get(f"{API}/listings/{listing_id}", headers=user_headers), 404, "NOT_FOUND")

    def test_hidden_listing_is_visible_to_admin(self, client, sample_catalog, admin_headers):
        response = client.get(f"{API}/listings/{sample_catalog['sold_car']['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "sold"

    def test_missing_listing(self, client):
        error = assert_error_envelope(client.get(f"{API}/listings/{MISSING_ID}"), 404, "NOT_FOUND")
        assert error["message"] == f"Listing not found with ID: {MISSING_ID}"


class TestAdminGate:
    """Test that every back office route is gated."""

    @pytest.mark.parametrize("method,path", [
        ("get", "/admin/stats"),
        ("get", "/admin/listings"),
        ("post", "/admin/listings"),
        ("get", f"/admin/listings/{MISSING_ID}"),
        ("delete", f"/admin/listings/{MISSING_ID}"),
        ("post", f"/admin/listings/{MISSING_ID}/toggle-featured"),
    ])
    def test_anonymous_is_sent_to_sign_in(self, client, method, path):
        response = getattr(client, method)(f"{API}{path}")

        error = assert_error_envelope(response, 401, "UNAUTHORIZED")
        assert error["sign_in_url"] == "/auth?redirect=admin"

    def test_invalid_token_is_sent_to_sign_in(self, client):
        response = client.get(f"{API}/admin/stats", headers={"Authorization": "Bearer not-a-session"})
        assert_error_envelope(response, 401, "UNAUTHORIZED")

    def test_non_admin_is_denied(self, client, user_headers):
        response = client.get(f"{API}/admin/stats", headers=user_headers)

        error = assert_error_envelope(response, 403, "FORBIDDEN")
        assert error["message"] == "Access Denied: You don't have admin privileges."

    def test_admin_check_failure_denies(self, client, fake_backend, admin_headers):
        fake_backend.rpc_error = RuntimeError("procedure unavailable")

        assert_error_envelope(client.get(f"{API}/admin/stats", headers=admin_headers), 403, "FORBIDDEN")

    def test_list_shaped_admin_flag(self, client, fake_backend, admin_headers):
        fake_backend.rpc_shape = lambda is_admin: [{"get_current_user_admin_status": is_admin}]

        assert client.get(f"{API}/admin/stats", headers=admin_headers).status_code == 200


class TestAdminEndpoints:
    """Test back office listing management."""

    def test_stats(self, client, sample_catalog, admin_headers):
        response = client.get(f"{API}/admin/stats", headers=admin_headers)

        assert response.json() == {
            "total_listings": 6,
            "cars": 3,
            "properties": 3,
            "featured": 2,
            "by_status": {"active": 4, "sold": 1, "inactive": 1},
        }

    def test_list_includes_every_status_newest_first(self, client, sample_catalog, admin_headers):
        response = client.get(f"{API}/admin/listings", headers=admin_headers)

        assert response.json()["total"] == 6
        assert titles(response)[0] == "Commercial Building - CBD"

    def test_list_filtered_by_status(self, client, sample_catalog, admin_headers):
        response = client.get(f"{API}/admin/listings", headers=admin_headers, params={"status": "sold"})
        assert titles(response) == ["Nissan X-Trail 2021"]

    def test_create_listing(self, client, fake_backend, admin_headers, admin_account):
        response = client.post(f"{API}/admin/listings", headers=admin_headers, json={
            "title": "Subaru Forester 2018",
            "type": "car",
            "price": 2450000,
            "location": "Eldoret, Kenya",
            "features": ["AWD"],
            "specifications": {"Year": "2018"},
            "featured": True
        })

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["formatted_price"] == "KSH 2,450,000"
        assert body["status"] == "active"
        assert body["user_id"] == admin_account["id"]
        assert fake_backend.find_listing(body["id"])["featured"] is True

    def test_create_listing_invalid_body(self, client, admin_headers):
        response = client.post(f"{API}/admin/listings", headers=admin_headers, json={
            "title": "Car", "type": "boat", "price": -1, "location": "Nairobi"
        })

        error = assert_error_envelope(response, 422, "VALIDATION_ERROR")
        assert {detail["field"] for detail in error["details"]} >= {"body -> type", "body -> price"}

    def test_create_listing_rejects_bad_whatsapp_number(self, client, fake_backend, admin_headers):
        response = client.post(f"{API}/admin/listings", headers=admin_headers, json={
            "title": "Subaru Forester 2018",
            "type": "car",
            "price": 2450000,
            "location": "Eldoret, Kenya",
            "whatsapp_number": "call me"
        })

        error = assert_error_envelope(response, 422, "VALIDATION_ERROR")
        assert "body -> whatsapp_number" in {detail["field"] for detail in error["details"]}
        assert fake_backend.listing_rows() == []

    def test_create_listing_normalizes_whatsapp_number(self, client, fake_backend, admin_headers):
        response = client.post(f"{API}/admin/listings", headers=admin_headers, json={
            "title": "Subaru Forester 2018",
            "type": "car",
            "price": 2450000,
            "location": "Eldoret, Kenya",
            "whatsapp_number": "+254 (700) 111-222"
        })

        assert response.status_code == 201, response.text
        assert response.json()["whatsapp_number"] == "+254700111222"
        assert response.json()["whatsapp_url"].startswith("https://wa.me/254700111222?text=")

    def test_partial_update_whatsapp_number(self, client, sample_catalog, admin_headers):
        url = f"{API}/admin/listings/{sample_catalog['crv']['id']}"

        rejected = client.patch(url, headers=admin_headers, json={"whatsapp_number": "n/a"})
        blank = client.patch(url, headers=admin_headers, json={"whatsapp_number": "  "})

        assert_error_envelope(rejected, 422, "VALIDATION_ERROR")
        assert blank.status_code == 200
        assert blank.json()["whatsapp_number"] == settings.default_whatsapp_number

    def test_create_from_form(self, client, fake_backend, admin_headers):
        response = client.post(
            f"{API}/admin/listings/form",
            headers=admin_headers,
            data=ListingFactory.create_form_data()
        )

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["title"] == "Mazda CX-5 2019"
        assert body["price"] == 2800000
        assert body["images"] == ["https://cdn.example.com/a.jpg", "https://cdn.example.com/b.jpg"]
        assert body["features"] == ["AWD", "Sunroof", "Leather Seats"]
        assert body["specifications"] == {"Year": "2019", "Mileage": "45,000 km"}
        assert body["featured"] is True
        assert body["whatsapp_number"] == "+254700000001"

    def test_create_from_multipart_form(self, client, admin_headers):
        response = client.post(
            f"{API}/admin/listings/form",
            headers=admin_headers,
            data=ListingFactory.create_form_data(featured=""),
            files={"attachment": ("notes.txt", b"ignored", "text/plain")}
        )

        assert response.status_code == 201, response.text
        assert response.json()["featured"] is False

    def test_create_from_form_missing_fields(self, client, admin_headers):
        form = ListingFactory.create_form_data(title="", location="  ")

        response = client.post(f"{API}/admin/listings/form", headers=admin_headers, data=form)

        error = assert_error_envelope(response, 422, "VALIDATION_ERROR")
        assert error["message"] == "Missing required fields: title, location"

    def test_create_from_form_invalid_price(self, client, admin_headers):
        form = ListingFactory.create_form_data(price="two million")

        response = client.post(f"{API}/admin/listings/form", headers=admin_headers, data=form)

        error = assert_error_envelope(response, 422, "VALIDATION_ERROR")
        assert error["message"] == "Price must be a valid number"

    def test_create_from_form_bad_specifications(self, client, fake_backend, admin_headers):
        form = ListingFactory.create_form_data(specifications="Year: 2019")

        response = client.post(f"{API}/admin/listings/form", headers=admin_headers, data=form)

        error = assert_error_envelope(response, 422, "VALIDATION_ERROR")
        assert error["message"] == "Specifications must be valid JSON object"
        assert fake_backend.listing_rows() == []

    def test_edit_form_round_trip(self, client, fake_backend, admin_headers):
        created = client.post(
            f"{API}/admin/listings/form",
            headers=admin_headers,
            data=ListingFactory.create_form_data()
        ).json()

        form = client.get(f"{API}/admin/listings/{created['id']}/form", headers=admin_headers).json()
        assert form["price"] == "2800000"
        assert form["features"] == "AWD, Sunroof, Leather Seats"

        form = {key: value for key, value in form.items() if key != "featured"}
        form["title"] = "Mazda CX-5 2019 (Reduced)"
        updated = client.put(f"{API}/admin/listings/{created['id']}/form", headers=admin_headers, data=form)

        assert updated.status_code == 200, updated.text
        body = updated.json()
        assert body["title"] == "Mazda CX-5 2019 (Reduced)"
        assert body["featured"] is False
        assert body["images"] == created["images"]
        assert body["specifications"] == created["specifications"]

    def test_update_form_missing_listing(self, client, admin_headers):
        response = client.put(
            f"{API}/admin/listings/{MISSING_ID}/form",
            headers=admin_headers,
            data=ListingFactory.create_form_data()
        )
        assert_error_envelope(response, 404, "NOT_FOUND")

    def test_partial_update(self, client, sample_catalog, admin_headers):
        listing_id = sample_catalog["crv"]["id"]

        response = client.patch(f"{API}/admin/listings/{listing_id}", headers=admin_headers, json={"price": 3650000})

        assert response.status_code == 200
        assert response.json()["formatted_price"] == "KSH 3,650,000"
        assert response.json()["title"] == "Honda CR-V 2019"

    def test_empty_update(self, client, sample_catalog, admin_headers):
        response = client.patch(f"{API}/admin/listings/{sample_catalog['crv']['id']}", headers=admin_headers, json={})

        error = assert_error_envelope(response, 422, "VALIDATION_ERROR")
        assert error["message"] == "No valid fields provided for update"

    def test_set_status(self, client, sample_catalog, admin_headers):
        listing_id = sample_catalog["camry"]["id"]

        response = client.patch(
            f"{API}/admin/listings/{listing_id}/status",
            headers=admin_headers,
            json={"status": "sold"}
        )

        assert response.json()["status"] == "sold"
        assert_error_envelope(client.get(f"{API}/listings/{listing_id}"), 404, "NOT_FOUND")

    def test_set_invalid_status(self, client, sample_catalog, admin_headers):
        response = client.patch(
            f"{API}/admin/listings/{sample_catalog['camry']['id']}/status",
            headers=admin_headers,
            json={"status": "archived"}
        )
        assert_error_envelope(response, 422, "VALIDATION_ERROR")

    def test_toggle_featured(self, client, sample_catalog, admin_headers):
        path = f"{API}/admin/listings/{sample_catalog['crv']['id']}/toggle-featured"

        assert client.post(path, headers=admin_headers).json()["featured"] is True
        assert client.post(path, headers=admin_headers).json()["featured"] is False

    def test_delete(self, client, fake_backend, sample_catalog, admin_headers):
        listing_id = sample_catalog["house"]["id"]

        response = client.delete(f"{API}/admin/listings/{listing_id}", headers=admin_headers)

        assert response.status_code == 204
        assert fake_backend.find_listing(listing_id) is None
        assert_error_envelope(
            client.delete(f"{API}/admin/listings/{listing_id}", headers=admin_headers), 404, "NOT_FOUND"
        )

    def test_create_duplicate_conflict(self, client, fake_backend, admin_headers):
        from tests.conftest import backend_error
        fake_backend.table_errors[settings.listings_table] = backend_error("23505", "duplicate key value")

        response = client.post(f"{API}/admin/listings", headers=admin_headers, json={
            "title": "Car", "type": "car", "price": 100, "location": "Nairobi"
        })

        assert_error_envelope(response, 409, "CONFLICT")


class TestHealthEndpoints:
    """Test root and health endpoints."""

    def test_root(self, client):
        body = client.get("/").json()

        assert body["status"] == "healthy"
        assert body["api_prefix"] == API

    def test_health(self, client):
        info = {"backend": "supabase", "reachable": True}
        with patch("app.main.get_backend_info", new=AsyncMock(return_value=info)):
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["backend"] == info

    def test_health_backend_unreachable(self, client):
        with patch("app.main.get_backend_info", new=AsyncMock(return_value={"reachable": False})):
            response = client.get("/health")

        assert_error_envelope(response, 503, "HTTP_503")
