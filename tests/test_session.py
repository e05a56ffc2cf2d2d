"""Session context built from Kratos whoami payloads."""
from core.session import Identity, SessionContext, kratos_is_admin
from factories import make_whoami


class TestSessionContext:

    def test_anonymous_without_session(self):
        ctx = SessionContext.from_kratos_session(None)
        assert ctx.identity is None
        assert ctx.is_authenticated is False
        assert ctx.to_dict() == {"authenticated": False, "loading": False}

    def test_identity_fields(self):
        ctx = SessionContext.from_kratos_session(
            make_whoami("abc", "ann@ava.test", first_name="Ann", bio="Hi")
        )
        assert ctx.identity.id == "abc"
        assert ctx.identity.email == "ann@ava.test"
        assert ctx.identity.created_at.year == 2024
        assert ctx.identity.metadata["first_name"] == "Ann"
        assert "email" not in ctx.identity.metadata
        assert ctx.is_admin is False

    def test_missing_identity_id_is_anonymous(self):
        assert SessionContext.from_kratos_session({"identity": {"traits": {}}}).identity is None

    def test_loading_is_not_authenticated(self):
        ctx = SessionContext(identity=Identity(id="abc"), loading=True)
        assert ctx.is_authenticated is False


class TestAdminFlag:

    def test_tenant_status_trait(self):
        assert kratos_is_admin(make_whoami("a", "a@x", tenant_status="admin")["identity"]) is True
        assert kratos_is_admin(make_whoami("a", "a@x", tenant_status="tenant")["identity"]) is False

    def test_metadata_role_wins_over_traits(self):
        identity = make_whoami("a", "a@x", tenant_status="admin", role="tenant")["identity"]
        assert kratos_is_admin(identity) is False
        identity = make_whoami("a", "a@x", tenant_status="tenant", role="admin")["identity"]
        assert kratos_is_admin(identity) is True

    def test_emails_list_fallback(self):
        identity = Identity.from_kratos({"id": "a", "traits": {"emails": ["first@x", "second@x"]}})
        assert identity.email == "first@x"
