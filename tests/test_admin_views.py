"""
Admin society screens and the profile endpoint.

Tests cover:
- Society setup pre-check and submission over the API
- Access rules: anonymous 401, tenant 403, admin area page redirects
- Society details and member list for the admin's society
- Profile card and profile edits
"""
from unittest.mock import patch

import pytest
from django.core.cache import cache

from accounts.models import UserProfile
from core.exceptions import StoreError
from core.models import Society
from factories import ADMIN_ID, TENANT_ID, make_member, make_society

FORM = {
    "name": "Oak Grove",
    "address": "123 Main",
    "amenities": "Pool, Gym",
    "utilityWorkers": "Sam (555-1234), Alex",
    "numFlats": 40,
}


@pytest.mark.django_db
class TestSocietySetupAccess:

    def test_anonymous(self, api_client):
        assert api_client.get("/api/admin/setup/").status_code == 401
        assert api_client.post("/api/admin/setup/", FORM, format="json").status_code == 401

    def test_tenant_is_forbidden(self, api_client, tenant_session):
        response = api_client.post("/api/admin/setup/", FORM, format="json")
        assert response.status_code == 403
        assert Society.objects.count() == 0


@pytest.mark.django_db
class TestSocietySetup:

    def test_precheck_without_society(self, api_client, admin_session):
        body = api_client.get("/api/admin/setup/").json()
        assert body == {"exists": False, "next": None}

    def test_precheck_with_society(self, api_client, admin_session):
        society = make_society(ADMIN_ID)
        make_member(ADMIN_ID, society=society, role="admin")

        body = api_client.get("/api/admin/setup/").json()

        assert body["exists"] is True
        assert body["society"]["id"] == society.pk
        assert body["next"]["path"] == "/admin/dashboard"

    def test_create(self, api_client, admin_session):
        response = api_client.post("/api/admin/setup/", FORM, format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["created"] is True
        assert body["redirect_after_ms"] == 1000
        assert body["next"]["path"] == "/admin/dashboard"
        assert body["message"] == "Society has been successfully set up!"
        society = Society.objects.get()
        assert UserProfile.objects.get(pk=ADMIN_ID).society == society

    def test_second_submit_finds_existing(self, api_client, admin_session):
        api_client.post("/api/admin/setup/", FORM, format="json")
        response = api_client.post("/api/admin/setup/", {**FORM, "name": "Other"}, format="json")

        assert response.status_code == 200
        assert response.json()["created"] is False
        assert Society.objects.count() == 1

    def test_invalid_form(self, api_client, admin_session):
        response = api_client.post("/api/admin/setup/", {**FORM, "numFlats": 0}, format="json")

        assert response.status_code == 400
        body = response.json()
        assert body["step"] == "validation"
        assert body["error"] == "Please fill in all required fields"
        assert "numFlats" in body["errors"]
        assert Society.objects.count() == 0

    def test_creation_failure(self, api_client, admin_session):
        with patch("core.store.SocietyStore.create_society", side_effect=StoreError("insert refused")):
            response = api_client.post("/api/admin/setup/", FORM, format="json")
        assert response.status_code == 502
        assert response.json()["error"] == "Failed to create society"

    def test_link_failure(self, api_client, admin_session):
        with patch("core.store.SocietyStore.link_profile", side_effect=StoreError("denied")):
            response = api_client.post("/api/admin/setup/", FORM, format="json")
        assert response.status_code == 502
        assert response.json()["step"] == "link_profile"

    def test_in_flight(self, api_client, admin_session):
        cache.add(f"ava:provisioning:{ADMIN_ID}", 1)
        response = api_client.post("/api/admin/setup/", FORM, format="json")
        assert response.status_code == 409
        assert response.json()["step"] == "in_flight"


@pytest.mark.django_db
class TestAdminSociety:

    def test_no_society_points_to_setup(self, api_client, admin_session):
        response = api_client.get("/api/admin/society/")
        assert response.status_code == 404
        assert response.json()["next"]["path"] == "/admin/setup"

    def test_details(self, api_client, admin_session):
        society = make_society(ADMIN_ID)
        make_member(ADMIN_ID, society=society, role="admin")

        body = api_client.get("/api/admin/society/").json()

        assert body["name"] == "Oak Grove"
        assert body["amenities"] == ["Pool", "Gym"]
        assert body["num_flats"] == 40

    def test_members(self, api_client, admin_session):
        society = make_society(ADMIN_ID)
        make_member(ADMIN_ID, society=society, role="admin", first_name="Ada", last_name="Admin")
        make_member(TENANT_ID, society=society, first_name="Tom", last_name="Tenant", flat_number="4B")
        make_member("outsider", society=make_society("someone"), last_name="Zed")

        body = api_client.get("/api/admin/users/").json()

        assert body["society"] == "Oak Grove"
        assert [(u["id"], u["role"]) for u in body["users"]] == [
            (ADMIN_ID, "admin"),
            (TENANT_ID, "tenant"),
        ]
        assert body["users"][1]["flat_number"] == "4B"

    def test_lookup_failure(self, api_client, admin_session):
        with patch("core.store.SocietyStore.profile_society_id", side_effect=StoreError("down")):
            response = api_client.get("/api/admin/users/")
        assert response.status_code == 502


@pytest.mark.django_db
class TestAdminPages:

    def test_anonymous_goes_to_auth(self, client):
        response = client.get("/admin/users/")
        assert response.status_code == 302
        assert response["Location"] == "/auth?redirect=%2Fadmin%2Fusers%2F"

    def test_tenant_goes_home(self, client, tenant_session):
        response = client.get("/admin/")
        assert response["Location"] == "/home"

    def test_admin_sees_page(self, client, admin_session):
        response = client.get("/admin/users/")
        assert response.status_code == 200
        assert response.context["section"] == "users"


@pytest.mark.django_db
class TestProfile:

    def test_anonymous(self, api_client):
        assert api_client.get("/api/profile/").status_code == 401

    def test_card_from_rows(self, api_client, tenant_session):
        society = make_society(ADMIN_ID, name="Elm Court")
        make_member(TENANT_ID, society=society, first_name="Thomas", flat_number="4B")

        card = api_client.get("/api/profile/").json()

        assert card["id"] == TENANT_ID
        assert card["short_id"] == TENANT_ID[:8]
        assert card["first_name"] == "Thomas"
        assert card["last_name"] == "Tenant"
        assert card["email"] == "tenant@ava.test"
        assert card["role"] == "Tenant"
        assert card["join_date"] == "March 2024"
        assert card["avatar"] == "/placeholder.svg"
        assert card["bio"] == "Flat owner"
        assert card["society_name"] == "Elm Court"
        assert card["flat_number"] == "4B"

    def test_card_without_rows(self, api_client, admin_session):
        card = api_client.get("/api/profile/").json()
        assert card["first_name"] == "Ada"
        assert card["role"] == "Tenant"
        assert card["society_name"] == ""

    def test_admin_role_is_capitalised(self, api_client, admin_session):
        make_member(ADMIN_ID, role="admin")
        assert api_client.get("/api/profile/").json()["role"] == "Admin"

    def test_role_lookup_failure_defaults(self, api_client, admin_session):
        make_member(ADMIN_ID, role="admin")
        with patch("core.store.SocietyStore.role_for", side_effect=StoreError("down")):
            card = api_client.get("/api/profile/").json()
        assert card["role"] == "Tenant"

    def test_patch(self, api_client, tenant_session):
        response = api_client.patch("/api/profile/", {"bio": "Plant lover", "flat_number": "7"}, format="json")

        assert response.status_code == 200
        profile = UserProfile.objects.get(pk=TENANT_ID)
        assert profile.bio == "Plant lover"
        assert profile.flat_number == "7"

    def test_patch_cannot_move_society(self, api_client, tenant_session):
        society = make_society(ADMIN_ID)
        api_client.patch("/api/profile/", {"society": society.pk}, format="json")
        assert UserProfile.objects.get(pk=TENANT_ID).society is None
