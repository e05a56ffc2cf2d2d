"""sync_identities management command."""
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from accounts.models import Identity, UserProfile, UserRole
from core.exceptions import StoreError
from factories import make_kratos_response

IDENTITIES = [
    {"id": "K1", "traits": {"email": "a@ava.test", "first_name": "Ada", "tenant_status": "admin"}},
    {"id": "K2", "traits": {"emails": ["t@ava.test"], "last_name": "Tenant"}},
]


@pytest.mark.django_db
class TestSyncIdentities:

    def test_creates_identities_and_rows(self):
        out = StringIO()
        with patch("accounts.management.commands.sync_identities.proxy_to_kratos") as kratos:
            kratos.return_value = make_kratos_response(200, IDENTITIES)
            call_command("sync_identities", "--per-page", "50", stdout=out)

        kratos.assert_called_once_with("admin/identities?per_page=50")
        assert Identity.objects.get(kratos_id="K2").email == "t@ava.test"
        assert UserRole.objects.get(user_id="K1").role == "admin"
        assert UserRole.objects.get(user_id="K2").role == "tenant"
        assert UserProfile.objects.get(pk="K1").first_name == "Ada"
        assert "created=2, updated=0" in out.getvalue()

    def test_second_run_updates(self):
        with patch("accounts.management.commands.sync_identities.proxy_to_kratos") as kratos:
            kratos.return_value = make_kratos_response(200, IDENTITIES)
            call_command("sync_identities", stdout=StringIO())
            kratos.return_value = make_kratos_response(200, IDENTITIES)
            out = StringIO()
            call_command("sync_identities", stdout=out)

        assert Identity.objects.count() == 2
        assert "created=0, updated=2" in out.getvalue()

    def test_kratos_unavailable(self):
        with patch("accounts.management.commands.sync_identities.proxy_to_kratos", return_value=None):
            with pytest.raises(CommandError):
                call_command("sync_identities", stdout=StringIO())

    def test_metadata_role_decides_admin(self):
        promoted = [{
            "id": "K3",
            "traits": {"email": "p@ava.test", "tenant_status": "tenant"},
            "metadata_public": {"role": "admin"},
        }]
        with patch("accounts.management.commands.sync_identities.proxy_to_kratos") as kratos:
            kratos.return_value = make_kratos_response(200, promoted)
            call_command("sync_identities", stdout=StringIO())

        assert UserRole.objects.get(user_id="K3").role == "admin"

    def test_store_failure_is_a_command_error(self):
        with patch("accounts.management.commands.sync_identities.proxy_to_kratos") as kratos, \
                patch("core.store.SocietyStore.ensure_user_rows", side_effect=StoreError("denied")):
            kratos.return_value = make_kratos_response(200, IDENTITIES)
            with pytest.raises(CommandError, match="K1"):
                call_command("sync_identities", stdout=StringIO())
