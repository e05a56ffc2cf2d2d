"""Builders for Kratos payloads and store rows used across the test suite."""
import json

import requests

from accounts.models import RoleChoices, UserProfile, UserRole
from core.models import Society

ADMIN_ID = "0b7e8f9a-admin-0001"
TENANT_ID = "5c2d1e0f-tenant-0001"


def make_whoami(identity_id, email, tenant_status="tenant", role=None, **traits):
    identity = {
        "id": identity_id,
        "created_at": "2024-03-05T10:00:00Z",
        "traits": {"email": email, "tenant_status": tenant_status, **traits},
        "metadata_public": {"role": role} if role else None,
    }
    return {"id": f"session-{identity_id}", "active": True, "identity": identity}


def make_kratos_response(status_code=200, body=None, cookies=None):
    response = requests.Response()
    response.status_code = status_code
    response._content = json.dumps(body).encode("utf-8") if body is not None else b""
    response.headers["Content-Type"] = "application/json"
    response.cookies = requests.cookies.cookiejar_from_dict(cookies or {})
    return response


def make_flow(kind):
    return {
        "id": f"{kind}-flow-1",
        "ui": {
            "action": f"http://kratos.test:4433/self-service/{kind}?flow={kind}-flow-1",
            "method": "POST",
            "nodes": [
                {"attributes": {"name": "csrf_token", "value": "csrf-abc"}},
            ],
        },
    }


def make_society(created_by, name="Oak Grove", **kwargs):
    defaults = {
        "address": "123 Main",
        "amenities": ["Pool", "Gym"],
        "utility_workers": ["Sam (555-1234)", "Alex"],
        "num_flats": 40,
    }
    defaults.update(kwargs)
    return Society.objects.create(name=name, created_by=created_by, **defaults)


def make_member(user_id, society=None, role=RoleChoices.TENANT, **kwargs):
    profile = UserProfile.objects.create(id=user_id, society=society, **kwargs)
    UserRole.objects.create(user_id=user_id, role=role)
    return profile
