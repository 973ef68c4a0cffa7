from django.core.management.base import BaseCommand
from django.db import transaction
from backoffice.store.services import get_current_store, seed_permissions, seed_default_roles


class Command(BaseCommand):
    help = 'Seed the permission catalog and the Owner, Admin and Staff roles'

    def handle(self, *args, **options):
        with transaction.atomic():
            store = get_current_store()
            permissions_created = seed_permissions()
            roles_created = seed_default_roles(store)

        self.stdout.write(f"Store: {store.name} (ID: {store.id})")
        self.stdout.write(f"Permissions created: {permissions_created}")
        for name in roles_created:
            self.stdout.write(self.style.NOTICE(f"  - Created role {name}"))
        if roles_created:
            self.stdout.write(self.style.SUCCESS(f"\nCreated {len(roles_created)} roles."))
        else:
            self.stdout.write(self.style.SUCCESS("\nDefault roles already exist."))
