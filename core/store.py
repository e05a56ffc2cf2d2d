# core/store.py
"""
Gateway to the societies / user_profiles / user_roles tables.

Every call runs as its own statement: society creation and profile linking are
two separate commits, and a failure between them is reconciled by the
pre-check reading both the profile back-reference and the creator column.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import DatabaseError

from accounts.models import RoleChoices, UserProfile, UserRole

from .exceptions import StoreError
from .models import Society

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MembershipLookup:
    """Outcome of a membership query: either a (possibly empty) society id or an error."""
    society_id: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def ok(self):
        return self.error is None

    @property
    def has_society(self):
        return self.ok and self.society_id is not None


class SocietyStore:

    def profile_society_id(self, user_id):
        try:
            return (
                UserProfile.objects.filter(pk=user_id)
                .values_list("society_id", flat=True)
                .first()
            )
        except DatabaseError as e:
            raise StoreError(f"profile lookup failed for {user_id}: {e}") from e

    def lookup_membership(self, user_id) -> MembershipLookup:
        try:
            return MembershipLookup(society_id=self.profile_society_id(user_id))
        except StoreError as e:
            return MembershipLookup(error=e)

    def society_by_id(self, society_id) -> Optional[Society]:
        try:
            return Society.objects.filter(pk=society_id).first()
        except DatabaseError as e:
            raise StoreError(f"society lookup failed for {society_id}: {e}") from e

    def society_by_creator(self, user_id) -> Optional[Society]:
        try:
            return Society.objects.filter(created_by=user_id).order_by("created_at").first()
        except DatabaseError as e:
            raise StoreError(f"creator lookup failed for {user_id}: {e}") from e

    def create_society(self, *, name, address, amenities, utility_workers, num_flats, created_by) -> Society:
        try:
            return Society.objects.create(
                name=name,
                address=address,
                amenities=list(amenities),
                utility_workers=list(utility_workers),
                num_flats=num_flats,
                created_by=created_by,
            )
        except DatabaseError as e:
            raise StoreError(f"society insert failed: {e}") from e

    def link_profile(self, user_id, society_id):
        try:
            updated = UserProfile.objects.filter(pk=user_id).update(society_id=society_id)
            if not updated:
                # registration hook may not have run yet
                UserProfile.objects.create(id=user_id, society_id=society_id)
        except DatabaseError as e:
            raise StoreError(f"profile update failed for {user_id}: {e}") from e

    def role_for(self, user_id):
        try:
            return UserRole.objects.filter(user_id=user_id).values_list("role", flat=True).first()
        except DatabaseError as e:
            raise StoreError(f"role lookup failed for {user_id}: {e}") from e

    def ensure_user_rows(self, user_id, *, first_name="", last_name="", role=RoleChoices.TENANT):
        try:
            UserProfile.objects.get_or_create(
                id=user_id,
                defaults={"first_name": first_name or "", "last_name": last_name or ""},
            )
            UserRole.objects.get_or_create(user_id=user_id, defaults={"role": role})
        except DatabaseError as e:
            raise StoreError(f"user rows bootstrap failed for {user_id}: {e}") from e
