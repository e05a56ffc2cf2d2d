# core/kratos_auth.py
import logging
from functools import wraps
from urllib.parse import urlencode

import requests
from django.conf import settings
from django.db import DatabaseError
from django.http import JsonResponse
from django.shortcuts import redirect
from rest_framework.authentication import BaseAuthentication

from .routing import Target, target_path
from .session import SessionContext

log = logging.getLogger(__name__)


def _timeout():
    return getattr(settings, "KRATOS_HTTP_TIMEOUT", 5.0)


def _extract_session_token(request):
    xst = request.META.get("HTTP_X_SESSION_TOKEN")
    if xst:
        return xst.strip()
    auth = request.META.get("HTTP_AUTHORIZATION", "")
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    return None


class KratosUnavailable(Exception):
    """whoami could not be answered; the caller's session state is unknown."""


def get_kratos_session(request):
    """
    Kratos session for the caller's cookie or session token.

    ``None`` when there is no session or Kratos rejects it; raises
    ``KratosUnavailable`` when Kratos cannot be reached.
    """
    cookies, headers = {}, {}
    token = _extract_session_token(request)
    if token:
        headers["X-Session-Token"] = token
    if "ory_kratos_session" in request.COOKIES:
        cookies["ory_kratos_session"] = request.COOKIES["ory_kratos_session"]

    if not headers and not cookies:
        return None

    try:
        r = requests.get(f"{settings.KRATOS_PUBLIC_URL.rstrip('/')}/sessions/whoami",
                         headers=headers, cookies=cookies, timeout=_timeout())
        if r.status_code != 200:
            return None
        data = r.json()
        if not data.get("identity", {}).get("id"):
            return None
        return data
    except requests.RequestException as e:
        log.warning("whoami request failed: %s", e)
        raise KratosUnavailable(str(e)) from e


def proxy_to_kratos(path, method="GET", data=None, headers=None):
    """Request against the Kratos admin API; ``None`` when Kratos is unreachable."""
    kratos_url = f"{settings.KRATOS_ADMIN_URL.rstrip('/')}/{path.lstrip('/')}"

    request_headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    if headers:
        request_headers.update(headers)

    try:
        return requests.request(method, kratos_url, json=data, headers=request_headers, timeout=_timeout())
    except requests.RequestException as e:
        log.error(f"Errore connessione a Kratos: {e}")
        return None


def sync_identity(session):
    """Mirror the session identity into ``accounts.Identity``."""
    from accounts.models import Identity

    ident = session.get("identity") or {}
    traits = ident.get("traits") or {}
    email = traits.get("email")
    if not email and isinstance(traits.get("emails"), list) and traits["emails"]:
        email = traits["emails"][0]

    Identity.objects.update_or_create(
        kratos_id=ident["id"],
        defaults={"email": email or "", "traits": traits},
    )


class KratosSessionMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        try:
            session = get_kratos_session(request)
        except KratosUnavailable:
            # sessione non risolta: nessun redirect finché Kratos non risponde
            request.kratos_session = None
            request.kratos_identity_id = None
            request.ava_session = SessionContext(loading=True)
            return self.get_response(request)

        request.kratos_session = session
        request.kratos_identity_id = session.get("identity", {}).get("id") if session else None
        request.ava_session = SessionContext.from_kratos_session(session)

        if session and request.kratos_identity_id:
            try:
                sync_identity(session)
            except DatabaseError as e:
                # Niente crash, ma lasciamo traccia nei log
                log.error("Identity autosync failed: %s", e)

        return self.get_response(request)


def get_session_context(request) -> SessionContext:
    return getattr(request, "ava_session", None) or SessionContext.anonymous()


def kratos_login_required(view_func):
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not getattr(request, "kratos_identity_id", None):
            return JsonResponse({"ok": False, "error": {"detail": "Unauthorized"}}, status=401)
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def kratos_required_class_based(cls):
    from django.utils.decorators import method_decorator
    cls.dispatch = method_decorator(kratos_login_required)(cls.dispatch)
    return cls


def admin_area_required(view_func):
    """Anonymous callers go to the auth page, tenants go home."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        ctx = get_session_context(request)
        if not ctx.is_authenticated:
            query = urlencode({"redirect": request.get_full_path()})
            return redirect(f"{target_path(Target.AUTH)}?{query}")
        if not ctx.is_admin:
            return redirect(target_path(Target.HOME))
        return view_func(request, *args, **kwargs)
    return _wrapped_view


class KratosUser:
    """What DRF sees as ``request.user`` for a Kratos session."""

    is_authenticated = True
    is_anonymous = False

    def __init__(self, context: SessionContext):
        self.context = context
        self.id = context.identity.id
        self.email = context.identity.email
        self.is_admin = context.is_admin

    def __str__(self):
        return f"{self.email} ({self.id})"


class KratosSessionAuthentication(BaseAuthentication):
    def authenticate(self, request):
        ctx = get_session_context(request._request)
        if not ctx.is_authenticated:
            return None
        return (KratosUser(ctx), request._request.kratos_session)

    def authenticate_header(self, request):
        return "Session"
