# core/views.py
import json
import logging

from django.conf import settings
from django.db import DatabaseError
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import redirect, render
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import Identity, RoleChoices, UserProfile, UserRole
from .exceptions import ProvisioningError, StoreError
from .kratos_auth import (
    admin_area_required,
    get_session_context,
    kratos_required_class_based,
    proxy_to_kratos,
)
from .kratos_flows import (
    LOGIN,
    RECOVERY,
    REGISTRATION,
    KratosFlowError,
    already_signed_in,
    login_error_messages,
    propagate_cookies,
    registration_error_messages,
    run_browser_flow,
    session_from_response,
    succeeded,
)
from .permissions import IsSocietyAdmin
from .profiles import build_profile_card
from .provisioning import DraftStore, ProvisioningFlow, validate_society_form
from .routing import Navigation, PostLoginRouter, Target, clean_redirect
from .serializers import SocietyMemberSerializer, SocietySerializer, UserProfileSerializer
from .session import kratos_is_admin
from .store import SocietyStore

logger = logging.getLogger(__name__)

WEBHOOK_TOKEN = getattr(settings, "KRATOS_WEBHOOK_TOKEN", "dev-secret-123")
USER_TYPES = (RoleChoices.ADMIN, RoleChoices.TENANT)


def _json_body(request):
    """JSON object from the request body; ``ValueError`` for anything else."""
    data = json.loads(request.body.decode("utf-8") or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _redirect_param(request):
    return clean_redirect(
        request.GET.get("redirect"),
        allowed_hosts={request.get_host()},
        require_https=request.is_secure(),
    )


def _error(message, status=400, **extra):
    return JsonResponse({"success": False, "error": message, **extra}, status=status)


# === Auth UI View ===
@method_decorator(csrf_exempt, name="dispatch")
class AuthUIView(View):
    """Auth page: authenticated callers are routed away, everybody else gets the form."""

    def get(self, request):
        ctx = get_session_context(request)
        if ctx.loading:
            return HttpResponse(status=204)
        if ctx.identity is None:
            return render(request, "core/auth.html", {"redirect": _redirect_param(request) or ""})

        navigation = PostLoginRouter().route(ctx, _redirect_param(request), current_path=request.path)
        if navigation is None:
            return HttpResponse(status=204)
        return redirect(navigation.path)


@method_decorator(csrf_exempt, name="dispatch")
class RouteView(View):
    """Same decision as the auth page, as JSON for single page clients."""

    def get(self, request):
        ctx = get_session_context(request)
        if not ctx.is_authenticated:
            return JsonResponse({"authenticated": False, "next": None}, status=401)
        navigation = PostLoginRouter().route(ctx, _redirect_param(request), request.GET.get("current"))
        return JsonResponse({
            "authenticated": True,
            "is_admin": ctx.is_admin,
            "next": navigation.to_dict() if navigation else None,
        })


@method_decorator(admin_area_required, name="dispatch")
class AdminPageView(View):
    def get(self, request, section="dashboard"):
        return render(request, "core/admin.html", {"section": section})


# === Proxy Views ===
@method_decorator(csrf_exempt, name="dispatch")
class ProxyLoginView(View):
    def post(self, request):
        try:
            data = _json_body(request)
        except ValueError as e:
            logger.error(f"Invalid JSON in login request: {e}")
            return _error("Invalid data")

        email = (data.get("email") or data.get("identifier") or "").strip()
        password = data.get("password") or ""
        if not email or not password:
            return _error("Email and password are required.")
        logger.info(f"Received login for: {email}")

        try:
            login_response = run_browser_flow(LOGIN, request, {
                "method": "password",
                "identifier": email,
                "password": password,
            })
        except KratosFlowError as e:
            return _error(e.message, status=e.status_code)

        if already_signed_in(login_response):
            return JsonResponse({"success": True, "message": "Already signed in"})

        if not succeeded(login_response):
            messages = login_error_messages(login_response)
            return _error(messages[0], errors=messages)

        ctx = session_from_response(login_response)
        navigation = PostLoginRouter().route(ctx, _redirect_param(request))
        body = {
            "success": True,
            "message": "Signed in successfully!",
            "next": navigation.to_dict() if navigation else None,
        }
        return propagate_cookies(login_response, JsonResponse(body))


@method_decorator(csrf_exempt, name="dispatch")
class ProxyRegistrationView(View):
    """
    Account creation.

    With ``pre_signup`` the society draft saved before the account existed is
    provisioned right after Kratos creates the identity. The account is never
    rolled back: a provisioning failure is reported with the failing step and
    the draft stays in the session for a retry.
    """

    def post(self, request):
        try:
            data = _json_body(request)
        except ValueError as e:
            logger.error(f"Invalid JSON in request: {e}")
            return _error("Invalid data")

        first_name = (data.get("first_name") or "").strip()
        last_name = (data.get("last_name") or "").strip()
        email = (data.get("email") or "").strip()
        password = data.get("password") or ""
        phone_number = (data.get("phone_number") or "").strip()
        user_type = data.get("user_type") or RoleChoices.TENANT
        pre_signup = bool(data.get("pre_signup"))

        if not all([first_name, last_name, email, password]):
            return _error("Please fill in all required fields")
        if password != data.get("confirm_password"):
            return _error("Passwords don't match")
        if user_type not in USER_TYPES:
            return _error("Unknown account type")

        drafts = DraftStore(request.session)
        if pre_signup:
            if user_type != RoleChoices.ADMIN:
                return _error("Only admins can set up a society")
            if drafts.load() is None:
                return _error(
                    "Society data not found. Please set up your society first.",
                    next=Navigation.to(Target.PRESIGNUP_SETUP).to_dict(),
                )

        fields = {
            "method": "password",
            "password": password,
            "traits.email": email,
            "traits.first_name": first_name,
            "traits.last_name": last_name,
            "traits.tenant_status": user_type,
        }
        if phone_number:
            fields["traits.phone_number"] = phone_number

        try:
            register_response = run_browser_flow(REGISTRATION, request, fields)
        except KratosFlowError as e:
            return _error(e.message, status=e.status_code)

        if not succeeded(register_response):
            messages = registration_error_messages(register_response)
            return _error(messages[0], errors=messages)

        ctx = session_from_response(register_response)
        user_id = ctx.identity.id if ctx.identity else None
        if user_id:
            try:
                SocietyStore().ensure_user_rows(user_id, first_name=first_name, last_name=last_name, role=user_type)
            except StoreError as e:
                logger.error(f"Could not create profile rows for {user_id}: {e}")

        if pre_signup:
            try:
                outcome = ProvisioningFlow().provision_after_signup(user_id, drafts)
            except ProvisioningError as e:
                logger.error(f"Society creation error after signup ({e.step}): {e.message}")
                body = e.to_dict()
                body["error"] = f"Failed to create society: {e.message}"
                body["account_created"] = True
                return propagate_cookies(register_response, JsonResponse(body, status=e.status_code))

            body = outcome.to_dict()
            body.update({
                "account_created": True,
                "message": "Society created successfully! Redirecting to dashboard...",
            })
            return propagate_cookies(register_response, JsonResponse(body, status=201))

        target = Target.ADMIN_SETUP if user_type == RoleChoices.ADMIN else Target.TENANT_SETUP
        return propagate_cookies(register_response, JsonResponse({
            "success": True,
            "account_created": True,
            "message": "Account created successfully!",
            "next": Navigation.to(target).to_dict(),
        }, status=201))


@method_decorator(csrf_exempt, name="dispatch")
class ProxyRecoveryView(View):
    def post(self, request):
        try:
            data = _json_body(request)
        except ValueError:
            return _error("Invalid data")

        email = (data.get("email") or "").strip()
        if not email:
            return _error("Email is required.")

        try:
            response = run_browser_flow(RECOVERY, request, {"method": "code", "email": email})
        except KratosFlowError as e:
            return _error(e.message, status=e.status_code)

        if not succeeded(response):
            logger.error(f"Kratos recovery error: {response.status_code}")
            return _error("Failed to send reset link. Try again.")

        return propagate_cookies(response, JsonResponse({
            "success": True,
            "message": "Check your email for the password reset link.",
        }))


@method_decorator(csrf_exempt, name="dispatch")
class LogoutView(View):
    def post(self, request):
        identity_id = getattr(request, "kratos_identity_id", None)
        if identity_id:
            result = proxy_to_kratos(f"admin/identities/{identity_id}/sessions", method="DELETE")
            if result is None or result.status_code >= 400:
                logger.warning(f"Could not revoke Kratos sessions for {identity_id}")

        # drops the pre-signup draft too
        request.session.flush()
        response = JsonResponse({"success": True})
        response.delete_cookie("ory_kratos_session")
        return response


@method_decorator(csrf_exempt, name="dispatch")
class SessionView(View):
    def get(self, request):
        ctx = get_session_context(request)
        return JsonResponse(ctx.to_dict(), status=200 if ctx.is_authenticated else 401)


# === Webhook Views ===
@method_decorator(csrf_exempt, name="dispatch")
class KratosRegistrationHookView(View):
    def post(self, request: HttpRequest):
        token = request.headers.get("X-Kratos-Webhook-Token")
        if token != WEBHOOK_TOKEN:
            return JsonResponse({"ok": False, "error": "forbidden"}, status=403)

        try:
            payload = _json_body(request)
        except ValueError:
            return JsonResponse({"ok": False, "error": "bad json"}, status=400)

        identity_id = payload.get("identity_id") or (payload.get("identity") or {}).get("id")
        traits = payload.get("traits") or (payload.get("identity") or {}).get("traits") or {}
        email = payload.get("email") or traits.get("email") or ""

        if not identity_id:
            return JsonResponse({"ok": False, "error": "missing identity_id"}, status=400)

        raw_identity = payload.get("identity") or {
            "traits": traits,
            "metadata_public": payload.get("metadata_public"),
        }
        role = RoleChoices.ADMIN if kratos_is_admin(raw_identity) else RoleChoices.TENANT
        try:
            obj, _ = Identity.objects.update_or_create(
                kratos_id=identity_id,
                defaults={"email": email, "traits": traits},
            )
            SocietyStore().ensure_user_rows(
                identity_id,
                first_name=traits.get("first_name", ""),
                last_name=traits.get("last_name", ""),
                role=role,
            )
        except (DatabaseError, StoreError) as e:
            logger.error(f"Registration webhook failed for {identity_id}: {e}")
            return JsonResponse({"ok": False, "error": "storage"}, status=500)

        logger.info(f"Registration webhook: {identity_id} - {email}")
        return JsonResponse({"ok": True, "kratos_id": obj.kratos_id}, status=200)


@method_decorator(csrf_exempt, name="dispatch")
@kratos_required_class_based
class WhoAmIView(View):
    def get(self, request: HttpRequest):
        session = getattr(request, "kratos_session", None) or {}
        identity = session.get("identity") or {}
        return JsonResponse({
            "ok": True,
            "identity_id": getattr(request, "kratos_identity_id", None),
            "is_admin": get_session_context(request).is_admin,
            "traits": identity.get("traits"),
        }, status=200)


# === Society setup (admin) ===
class SocietySetupView(APIView):
    permission_classes = [IsSocietyAdmin]

    def get(self, request):
        """Pre-check: an admin who already owns a society skips the form."""
        try:
            existing = ProvisioningFlow().precheck(request.user.id)
        except ProvisioningError as e:
            return Response(e.to_dict(), status=e.status_code)

        if existing is None:
            return Response({"exists": False, "next": None})
        return Response({
            "exists": True,
            "message": "You've already created a society. Redirecting to your dashboard.",
            "society": SocietySerializer(existing.society).data,
            "next": existing.navigation.to_dict(),
        })

    def post(self, request):
        try:
            outcome = ProvisioningFlow().provision(request.user.id, request.data)
        except ProvisioningError as e:
            return Response(e.to_dict(), status=e.status_code)

        body = outcome.to_dict()
        body["message"] = (
            "Society has been successfully set up!" if outcome.created
            else "You've already created a society. Redirecting to your dashboard."
        )
        return Response(body, status=status.HTTP_201_CREATED if outcome.created else status.HTTP_200_OK)


class PresignupSetupView(APIView):
    """Society details entered before the admin account exists."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response({"draft": DraftStore(request.session).load()})

    def post(self, request):
        try:
            validate_society_form(request.data)
        except ProvisioningError as e:
            return Response(e.to_dict(), status=e.status_code)

        draft = {
            "name": request.data.get("name"),
            "address": request.data.get("address"),
            "amenities": request.data.get("amenities", ""),
            "utilityWorkers": request.data.get("utilityWorkers", ""),
            "numFlats": request.data.get("numFlats"),
        }
        DraftStore(request.session).save(draft)
        return Response({"success": True, "draft": draft}, status=status.HTTP_201_CREATED)


class AdminSocietyMixin:
    def admin_society(self, request):
        store = SocietyStore()
        society_id = store.profile_society_id(request.user.id)
        return store.society_by_id(society_id) if society_id else None

    def no_society(self):
        return Response({
            "detail": "No society set up yet",
            "next": Navigation.to(Target.ADMIN_SETUP).to_dict(),
        }, status=status.HTTP_404_NOT_FOUND)


class AdminSocietyView(AdminSocietyMixin, APIView):
    permission_classes = [IsSocietyAdmin]

    def get(self, request):
        try:
            society = self.admin_society(request)
        except StoreError as e:
            logger.error(f"Error loading society for {request.user.id}: {e}")
            return Response({"detail": "Failed to load society"}, status=status.HTTP_502_BAD_GATEWAY)
        if society is None:
            return self.no_society()
        return Response(SocietySerializer(society).data)


class AdminUsersView(AdminSocietyMixin, APIView):
    permission_classes = [IsSocietyAdmin]

    def get(self, request):
        try:
            society = self.admin_society(request)
        except StoreError as e:
            logger.error(f"Error loading society for {request.user.id}: {e}")
            return Response({"detail": "Failed to load society"}, status=status.HTTP_502_BAD_GATEWAY)
        if society is None:
            return self.no_society()

        members = list(UserProfile.objects.filter(society=society).order_by("last_name", "first_name"))
        roles = dict(
            UserRole.objects.filter(user_id__in=[m.id for m in members]).values_list("user_id", "role")
        )
        serializer = SocietyMemberSerializer(members, many=True, context={"roles": roles})
        return Response({"society": society.name, "users": serializer.data})


# === Profile ===
class ProfileView(APIView):
    def get(self, request):
        return Response(build_profile_card(request.user.context))

    def patch(self, request):
        profile, _ = UserProfile.objects.get_or_create(id=request.user.id)
        serializer = UserProfileSerializer(profile, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
