# core/routing.py
"""
Post-login routing.

Decides where an authenticated identity lands: admin dashboard, admin setup,
tenant home, tenant setup, or the redirect target carried by the original
navigation. The decision is keyed on the membership lookup result; a failed
lookup falls back to a target chosen from the admin flag alone.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import models
from django.utils.http import url_has_allowed_host_and_scheme

from .session import SessionContext
from .store import MembershipLookup, SocietyStore

logger = logging.getLogger(__name__)


class Target(models.TextChoices):
    ADMIN_DASHBOARD = "admin-dashboard", "admin-dashboard"
    ADMIN_SETUP = "admin-setup", "admin-setup"
    TENANT_SETUP = "tenant-setup", "tenant-setup"
    HOME = "home", "home"
    PRESIGNUP_SETUP = "presignup-setup", "presignup-setup"
    AUTH = "auth", "auth"
    REDIRECT = "redirect", "redirect"


def target_path(target):
    return settings.AVA_NAVIGATION_TARGETS[Target(target).value]


@dataclass(frozen=True)
class Navigation:
    target: str
    path: str
    replace: bool = True
    fallback: bool = False

    @classmethod
    def to(cls, target, **kwargs):
        return cls(target=Target(target).value, path=target_path(target), **kwargs)

    def to_dict(self):
        return {
            "target": self.target,
            "path": self.path,
            "replace": self.replace,
            "fallback": self.fallback,
        }


def clean_redirect(redirect_to, allowed_hosts=None, require_https=False):
    """Return ``redirect_to`` when it is a local path, else ``None``."""
    if not redirect_to:
        return None
    redirect_to = redirect_to.strip()
    if not redirect_to.startswith("/") or redirect_to.startswith("//"):
        return None
    if not url_has_allowed_host_and_scheme(redirect_to, allowed_hosts=allowed_hosts, require_https=require_https):
        return None
    return redirect_to


def decide(is_admin: bool, lookup: MembershipLookup, redirect_to: Optional[str] = None) -> Navigation:
    if not lookup.ok:
        # redirect_to is ignored on purpose when membership is unknown
        return Navigation.to(Target.ADMIN_DASHBOARD if is_admin else Target.HOME, fallback=True)

    if not lookup.has_society:
        return Navigation.to(Target.ADMIN_SETUP if is_admin else Target.TENANT_SETUP)

    if redirect_to:
        return Navigation(target=Target.REDIRECT.value, path=redirect_to)

    return Navigation.to(Target.ADMIN_DASHBOARD if is_admin else Target.HOME)


class PostLoginRouter:

    def __init__(self, store=None):
        self.store = store or SocietyStore()

    def route(self, session: SessionContext, redirect_to=None, current_path=None) -> Optional[Navigation]:
        """
        Pick the next screen for ``session``.

        Returns ``None`` while the session is unresolved and when the caller
        already sits on the chosen path.
        """
        if session.loading or session.identity is None:
            return None

        user_id = session.identity.id
        lookup = self.store.lookup_membership(user_id)
        if not lookup.ok:
            logger.error(f"Error checking profile setup for {user_id}: {lookup.error}")

        navigation = decide(session.is_admin, lookup, redirect_to)
        logger.debug(
            f"Post-login route for {user_id} (admin={session.is_admin}): "
            f"{navigation.target} -> {navigation.path}"
        )

        if current_path and current_path.rstrip("/") == navigation.path.rstrip("/"):
            return None
        return navigation
