# core/session.py
"""
Session context handed to the router and the provisioning flow.

Built once per request from the Kratos ``whoami`` payload and passed around
explicitly; an anonymous context is used after sign-out.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from django.utils.dateparse import parse_datetime


@dataclass(frozen=True)
class Identity:
    id: str
    email: str = ""
    created_at: Optional[datetime] = None
    metadata: dict = field(default_factory=dict)

    @classmethod
    def from_kratos(cls, identity: dict) -> Optional["Identity"]:
        if not identity or not identity.get("id"):
            return None
        traits = identity.get("traits") or {}
        email = traits.get("email")
        if not email and isinstance(traits.get("emails"), list) and traits["emails"]:
            email = traits["emails"][0]
        created = identity.get("created_at")
        return cls(
            id=identity["id"],
            email=email or "",
            created_at=parse_datetime(created) if created else None,
            metadata={k: v for k, v in traits.items() if k not in ("email", "emails")},
        )


def kratos_is_admin(identity: dict) -> bool:
    """Admin flag as carried by the session claims."""
    identity = identity or {}
    role = (identity.get("metadata_public") or {}).get("role")
    if role:
        return role == "admin"
    return (identity.get("traits") or {}).get("tenant_status") == "admin"


@dataclass(frozen=True)
class SessionContext:
    identity: Optional[Identity] = None
    is_admin: bool = False
    loading: bool = False

    @property
    def is_authenticated(self):
        return self.identity is not None and not self.loading

    @classmethod
    def anonymous(cls):
        return cls()

    @classmethod
    def from_kratos_session(cls, session: Optional[dict]) -> "SessionContext":
        if not session:
            return cls.anonymous()
        raw_identity = session.get("identity") or {}
        identity = Identity.from_kratos(raw_identity)
        if identity is None:
            return cls.anonymous()
        return cls(identity=identity, is_admin=kratos_is_admin(raw_identity))

    def to_dict(self):
        if self.identity is None:
            return {"authenticated": False, "loading": self.loading}
        return {
            "authenticated": True,
            "loading": self.loading,
            "is_admin": self.is_admin,
            "identity": {
                "id": self.identity.id,
                "email": self.identity.email,
                "created_at": self.identity.created_at.isoformat() if self.identity.created_at else None,
                "metadata": self.identity.metadata,
            },
        }
