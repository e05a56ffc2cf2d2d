"""
Shared fixtures.

Fixtures provided:
- api_client: DRF APIClient for making requests
- kratos_session: patches the Kratos whoami lookup used by the middleware
- admin_session / tenant_session: a signed in admin / tenant
- session_store: a client session for the pre-signup draft
"""
from unittest.mock import patch

import pytest
from django.contrib.sessions.backends.signed_cookies import SessionStore
from django.core.cache import cache
from rest_framework.test import APIClient

from factories import ADMIN_ID, TENANT_ID, make_whoami


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """DRF APIClient for making API requests."""
    client = APIClient()
    client.raise_request_exception = True
    return client


@pytest.fixture(autouse=True)
def kratos_session():
    """Whoami lookup used by the middleware; anonymous unless a test sets ``return_value``."""
    with patch("core.kratos_auth.get_kratos_session", return_value=None) as mocked:
        yield mocked


@pytest.fixture
def admin_session(kratos_session):
    payload = make_whoami(ADMIN_ID, "admin@ava.test", tenant_status="admin", first_name="Ada", last_name="Admin")
    kratos_session.return_value = payload
    return payload


@pytest.fixture
def tenant_session(kratos_session):
    payload = make_whoami(TENANT_ID, "tenant@ava.test", first_name="Tom", last_name="Tenant", bio="Flat owner")
    kratos_session.return_value = payload
    return payload


@pytest.fixture
def session_store():
    return SessionStore()
