# core/profiles.py
import logging

from django.utils import timezone

from accounts.models import UserProfile
from .exceptions import StoreError
from .session import SessionContext
from .store import SocietyStore

logger = logging.getLogger(__name__)

DEFAULT_AVATAR = "/placeholder.svg"
DEFAULT_ROLE = "Tenant"


def build_profile_card(ctx: SessionContext, store=None):
    """Profile header data: profile row first, identity metadata as fallback."""
    store = store or SocietyStore()
    identity = ctx.identity
    metadata = identity.metadata or {}

    profile = UserProfile.objects.select_related("society").filter(pk=identity.id).first()
    if profile is None:
        logger.info(f"No profile row for {identity.id}, using identity metadata")

    try:
        role = store.role_for(identity.id)
    except StoreError as e:
        logger.error(f"Error fetching role for {identity.id}: {e}")
        role = None

    joined = identity.created_at or timezone.now()

    return {
        "id": identity.id,
        "short_id": identity.id[:8],
        "first_name": (profile and profile.first_name) or metadata.get("first_name", ""),
        "last_name": (profile and profile.last_name) or metadata.get("last_name", ""),
        "email": identity.email,
        "role": role.capitalize() if role else DEFAULT_ROLE,
        "join_date": joined.strftime("%B %Y"),
        "avatar": (profile and profile.avatar_url) or DEFAULT_AVATAR,
        "bio": (profile and profile.bio) or metadata.get("bio", ""),
        "society_name": profile.society.name if profile and profile.society else "",
        "flat_number": (profile and profile.flat_number) or "",
    }
