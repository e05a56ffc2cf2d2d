# core/provisioning.py
"""
Society provisioning: create the society, then point the creator's profile at it.

The two writes are separate commits. A link failure after a successful insert
leaves an orphaned society; the pre-check (profile back-reference, then a
lookup by creator) finds it on the next attempt, so a retry never inserts a
second society.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.cache import cache
from django.db import models

from .exceptions import (
    IdentityUnresolved,
    ProfileLinkError,
    ProvisioningInProgress,
    SocietyCreationError,
    SocietyLookupError,
    StoreError,
    ValidationFailed,
)
from .models import Society
from .routing import Navigation, Target
from .serializers import SocietySetupSerializer
from .store import SocietyStore

logger = logging.getLogger(__name__)


class ProvisioningState(models.TextChoices):
    IDLE = "idle", "idle"
    VALIDATING = "validating", "validating"
    CREATING_SOCIETY = "creating_society", "creating_society"
    LINKING_PROFILE = "linking_profile", "linking_profile"
    DONE = "done", "done"


@dataclass(frozen=True)
class ProvisioningOutcome:
    society: Society
    navigation: Navigation
    created: bool = True
    delay_ms: int = 0

    def to_dict(self):
        return {
            "success": True,
            "created": self.created,
            "society": self.society.to_dict(),
            "next": self.navigation.to_dict(),
            "redirect_after_ms": self.delay_ms,
        }


class DraftStore:
    """PendingSocietyDraft kept in the client session under a fixed key."""

    def __init__(self, session, key=None):
        self.session = session
        self.key = key or settings.AVA_PRESIGNUP_DRAFT_KEY

    def load(self) -> Optional[dict]:
        data = self.session.get(self.key)
        return dict(data) if data else None

    def save(self, data):
        self.session[self.key] = dict(data)
        self.session.modified = True

    def clear(self):
        if self.key in self.session:
            del self.session[self.key]
            self.session.modified = True


def validate_society_form(data):
    serializer = SocietySetupSerializer(data=data or {})
    if not serializer.is_valid():
        raise ValidationFailed(errors=serializer.errors)
    return serializer.validated_data


class ProvisioningFlow:

    def __init__(self, store=None, lock_seconds=None):
        self.store = store or SocietyStore()
        self.lock_seconds = lock_seconds or settings.AVA_PROVISIONING_LOCK_SECONDS
        self.state = ProvisioningState.IDLE
        self.inconsistent = False
        self.history = [ProvisioningState.IDLE]

    def _enter(self, state):
        self.state = state
        self.history.append(state)

    # === Pre-check ===
    def existing_society(self, user_id) -> Optional[Society]:
        """Society already owned by ``user_id``, via the profile or via the creator column."""
        try:
            society_id = self.store.profile_society_id(user_id)
            if society_id:
                society = self.store.society_by_id(society_id)
                if society is not None:
                    return society

            society = self.store.society_by_creator(user_id)
        except StoreError as e:
            logger.error(f"Error checking existing society for {user_id}: {e}")
            raise SocietyLookupError() from e

        if society is not None and society.pk != society_id:
            self._reconcile(user_id, society)
        return society

    def _reconcile(self, user_id, society):
        # leftover from a create whose profile link failed
        try:
            self.store.link_profile(user_id, society.pk)
            logger.info(f"Relinked profile {user_id} to orphaned society {society.pk}")
        except StoreError as e:
            logger.warning(f"Could not relink profile {user_id} to society {society.pk}: {e}")

    def precheck(self, user_id) -> Optional[ProvisioningOutcome]:
        society = self.existing_society(user_id)
        if society is None:
            return None
        return ProvisioningOutcome(
            society=society,
            navigation=Navigation.to(Target.ADMIN_DASHBOARD),
            created=False,
        )

    # === Execution ===
    def provision(self, user_id, data, delay_ms=None) -> ProvisioningOutcome:
        """Standalone path: validate, re-check, create, link."""
        if delay_ms is None:
            delay_ms = settings.AVA_SETUP_REDIRECT_DELAY_MS

        self._enter(ProvisioningState.VALIDATING)
        try:
            validated = validate_society_form(data)
        except ValidationFailed:
            self._enter(ProvisioningState.IDLE)
            raise

        lock_key = f"ava:provisioning:{user_id}"
        if not cache.add(lock_key, 1, self.lock_seconds):
            self._enter(ProvisioningState.IDLE)
            raise ProvisioningInProgress()
        try:
            return self._create_and_link(user_id, validated, delay_ms)
        finally:
            cache.delete(lock_key)

    def _create_and_link(self, user_id, validated, delay_ms):
        try:
            existing = self.precheck(user_id)
        except SocietyLookupError:
            self._enter(ProvisioningState.IDLE)
            raise
        if existing is not None:
            logger.info(f"Society already exists for {user_id}, skipping creation")
            self._enter(ProvisioningState.DONE)
            return existing

        self._enter(ProvisioningState.CREATING_SOCIETY)
        try:
            society = self.store.create_society(
                name=validated["name"],
                address=validated["address"],
                amenities=validated["amenities"],
                utility_workers=validated["utilityWorkers"],
                num_flats=validated["numFlats"],
                created_by=user_id,
            )
        except StoreError as e:
            logger.error(f"Society creation error for {user_id}: {e}")
            self._enter(ProvisioningState.IDLE)
            raise SocietyCreationError() from e

        self._enter(ProvisioningState.LINKING_PROFILE)
        try:
            self.store.link_profile(user_id, society.pk)
        except StoreError as e:
            logger.error(f"Error updating profile {user_id} with society {society.pk}: {e}")
            self.inconsistent = True
            self._enter(ProvisioningState.IDLE)
            raise ProfileLinkError() from e

        self._enter(ProvisioningState.DONE)
        logger.info(f"Society {society.pk} set up by {user_id}")
        return ProvisioningOutcome(
            society=society,
            navigation=Navigation.to(Target.ADMIN_DASHBOARD),
            delay_ms=delay_ms,
        )

    def provision_after_signup(self, user_id, drafts: DraftStore) -> ProvisioningOutcome:
        """Chained path: runs right after account creation, clears the draft only on success."""
        draft = drafts.load()
        if draft is None:
            raise ValidationFailed("Society data not found. Please set up your society first.")
        if not user_id:
            logger.error("Signup finished without a resolvable identity id, draft kept")
            raise IdentityUnresolved()

        outcome = self.provision(user_id, draft, delay_ms=0)
        drafts.clear()
        return outcome
