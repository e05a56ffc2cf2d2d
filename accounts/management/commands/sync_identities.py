from django.core.management.base import BaseCommand, CommandError

from accounts.models import Identity, RoleChoices
from core.exceptions import StoreError
from core.kratos_auth import proxy_to_kratos
from core.session import kratos_is_admin
from core.store import SocietyStore


class Command(BaseCommand):
    help = "Sync identities from the Ory Kratos admin API and make sure every one has a profile and a role"

    def add_arguments(self, parser):
        parser.add_argument("--per-page", type=int, default=250)

    def handle(self, *args, **opts):
        per_page = opts["per_page"]
        path = f"admin/identities?per_page={per_page}"
        self.stdout.write(f"Fetching: {path}")

        resp = proxy_to_kratos(path)
        if resp is None or resp.status_code != 200:
            raise CommandError(f"Kratos admin API unavailable ({getattr(resp, 'status_code', 'no response')})")
        data = resp.json()

        store = SocietyStore()
        created, updated = 0, 0
        for it in data:
            kid = it["id"]
            traits = it.get("traits", {}) or {}
            email = traits.get("email") or (traits.get("emails") or [None])[0]
            _, was_created = Identity.objects.update_or_create(
                kratos_id=kid,
                defaults={"email": email or "", "traits": traits},
            )
            role = RoleChoices.ADMIN if kratos_is_admin(it) else RoleChoices.TENANT
            try:
                store.ensure_user_rows(
                    kid,
                    first_name=traits.get("first_name", ""),
                    last_name=traits.get("last_name", ""),
                    role=role,
                )
            except StoreError as e:
                raise CommandError(f"Could not create profile rows for {kid}: {e}") from e
            created += 1 if was_created else 0
            updated += 0 if was_created else 1

        self.stdout.write(self.style.SUCCESS(
            f"Done. created={created}, updated={updated}, total={len(data)}"
        ))
