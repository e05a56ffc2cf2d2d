# core/kratos_flows.py
"""
Self-service browser flows proxied to Kratos: login, registration, recovery.

Each flow is initialised with the caller's Kratos cookies, the CSRF token is
read from the flow's UI nodes and the form is posted back as form data.
"""
import logging
from urllib.parse import urlparse

import requests
from django.conf import settings

from .session import SessionContext

logger = logging.getLogger(__name__)

LOGIN = "login"
REGISTRATION = "registration"
RECOVERY = "recovery"


class KratosFlowError(Exception):
    def __init__(self, message, status_code=400, errors=None):
        self.message = message
        self.status_code = status_code
        self.errors = errors or [message]
        super().__init__(message)


def _public_url():
    return settings.KRATOS_PUBLIC_URL.rstrip("/")


def _kratos_cookies(request):
    return {k: v for k, v in request.COOKIES.items() if k.startswith("ory_kratos")}


def _cookie_header(cookies):
    return "; ".join([f"{k}={v}" for k, v in cookies.items()])


def init_browser_flow(kind, request):
    """Start a browser flow; returns ``(flow_data, cookies)``."""
    cookies = _kratos_cookies(request)
    headers = {
        "Accept": "application/json",
        "User-Agent": request.headers.get("User-Agent", ""),
    }
    if cookies:
        headers["Cookie"] = _cookie_header(cookies)

    try:
        flow_response = requests.get(
            f"{_public_url()}/self-service/{kind}/browser",
            headers=headers,
            timeout=settings.KRATOS_HTTP_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error(f"Errore connessione a Kratos ({kind}): {e}")
        raise KratosFlowError("Authentication service unavailable. Try again later.", status_code=502)

    if flow_response.status_code != 200:
        logger.error(f"Failed to initialize {kind} flow: {flow_response.status_code}")
        raise KratosFlowError(f"Could not start {kind}. Reload the page and try again.")

    flow_data = flow_response.json()
    logger.info(f"{kind.capitalize()} flow initialized: {flow_data.get('id')}")

    all_cookies = {**cookies, **{c.name: c.value for c in flow_response.cookies}}
    return flow_data, all_cookies


def extract_csrf_token(flow_data):
    for node in flow_data.get("ui", {}).get("nodes", []):
        if node.get("attributes", {}).get("name") == "csrf_token":
            return node.get("attributes", {}).get("value")
    return None


def _action_url(flow_data):
    action = flow_data.get("ui", {}).get("action", "")
    # the flow advertises the browser-facing host, we talk to Kratos directly
    return action.replace(settings.KRATOS_BROWSER_URL, urlparse(_public_url()).netloc)


def submit_browser_flow(kind, flow_data, cookies, fields):
    csrf_token = extract_csrf_token(flow_data)
    if not csrf_token:
        logger.error(f"CSRF token not found in {kind} flow")
        raise KratosFlowError("Missing CSRF token. Reload the page and try again.")

    form_data = {"flow": flow_data["id"], "csrf_token": csrf_token, **fields}
    logger.debug(f"{kind} form data keys: {list(form_data.keys())}")

    try:
        response = requests.post(
            _action_url(flow_data),
            data=form_data,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/x-www-form-urlencoded",
                "Cookie": _cookie_header(cookies),
            },
            cookies=cookies,
            allow_redirects=False,
            timeout=settings.KRATOS_HTTP_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error(f"Errore connessione a Kratos ({kind} submit): {e}")
        raise KratosFlowError("Authentication service unavailable. Try again later.", status_code=502)

    logger.info(f"Kratos {kind} response: {response.status_code}")
    return response


def run_browser_flow(kind, request, fields):
    flow_data, cookies = init_browser_flow(kind, request)
    return submit_browser_flow(kind, flow_data, cookies, fields)


def succeeded(response):
    return response.status_code in (200, 302, 303)


def propagate_cookies(kratos_response, json_response):
    for cookie in kratos_response.cookies:
        json_response.set_cookie(
            cookie.name,
            cookie.value,
            max_age=getattr(cookie, "max_age", None),
            domain=getattr(cookie, "domain", None) or None,
            path=getattr(cookie, "path", "/") or "/",
            secure=getattr(cookie, "secure", False),
            httponly=True,
        )
    return json_response


def _json_or_empty(response):
    try:
        return response.json()
    except ValueError:
        return {}


def session_from_response(kratos_response):
    """Session context out of a login/registration answer, resolving via whoami if needed."""
    data = _json_or_empty(kratos_response)
    session = data.get("session")
    if session and (session.get("identity") or {}).get("id"):
        return SessionContext.from_kratos_session(session)

    if (data.get("identity") or {}).get("id"):
        return SessionContext.from_kratos_session({"identity": data["identity"]})

    cookies = {c.name: c.value for c in kratos_response.cookies if c.name.startswith("ory_kratos")}
    if not cookies:
        return SessionContext.anonymous()
    try:
        r = requests.get(f"{_public_url()}/sessions/whoami", cookies=cookies,
                         timeout=settings.KRATOS_HTTP_TIMEOUT)
    except requests.RequestException as e:
        logger.warning("whoami after flow failed: %s", e)
        return SessionContext.anonymous()
    if r.status_code != 200:
        return SessionContext.anonymous()
    return SessionContext.from_kratos_session(_json_or_empty(r))


def _ui_messages(error_data):
    return error_data.get("ui", {}).get("messages", []) or []


def registration_error_messages(response):
    error_data = _json_or_empty(response)
    if not error_data:
        logger.error(f"Raw registration response: {response.text}")
    else:
        logger.error(f"Kratos registration error: {error_data}")

    user_messages = []
    error_id = error_data.get("error", {}).get("id")
    if error_id == "security_csrf_violation":
        user_messages.append("Security error. Reload the page and try again.")
    elif error_id == "session_already_available":
        user_messages.append("You are already signed in. Reload the page.")
    else:
        for message in _ui_messages(error_data):
            message_id = message.get("id", 0)
            text = message.get("text", "")
            lowered = text.lower()
            if message_id == 4000007 or "exists already" in lowered:
                user_messages.append("An account with this email already exists.")
            elif "password" in lowered and ("policy" in lowered or "weak" in lowered):
                user_messages.append("The password does not meet the security requirements.")
            elif "email" in lowered and "invalid" in lowered:
                user_messages.append("The email address is not valid.")
            elif "required" in lowered:
                user_messages.append("Please fill in all required fields")
            else:
                user_messages.append(text)

    return user_messages or ["Failed to create account"]


def login_error_messages(response):
    error_data = _json_or_empty(response)
    logger.error(f"Kratos login error: {error_data or response.text}")

    user_messages = []
    error_id = error_data.get("error", {}).get("id")
    if error_id == "security_csrf_violation":
        user_messages.append("Security error. Reload the page and try again.")
    else:
        for message in _ui_messages(error_data):
            message_id = message.get("id", 0)
            lowered = message.get("text", "").lower()
            if message_id == 4000006 or "credentials are invalid" in lowered or "invalid" in lowered:
                user_messages.append("Invalid email or password.")
            elif "account does not exist" in lowered or "no such user" in lowered:
                user_messages.append("Account not found. Check the email address.")
            elif "required" in lowered:
                user_messages.append("Email and password are required.")
            else:
                user_messages.append(message.get("text", ""))

    return user_messages or ["Failed to sign in. Check your credentials."]


def already_signed_in(response):
    return _json_or_empty(response).get("error", {}).get("id") == "session_already_available"
