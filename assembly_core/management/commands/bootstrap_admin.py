# assembly_core/management/commands/bootstrap_admin.py

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from assembly_core.models import Profile
from assembly_core.services.profiles import ensure_roles, generate_user_code
from assembly_core.workflows.states import ProfileStatus, RoleName


class Command(BaseCommand):
    help = "Create the five roles and a first admin profile (user code ADMxxx)"

    def add_arguments(self, parser):
        parser.add_argument("--full-name", default="System Administrator")
        parser.add_argument("--password", required=True)

    def handle(self, *args, **options):
        roles = ensure_roles()

        if Profile.objects.filter(role__name=RoleName.ADMIN).exists():
            raise CommandError("An admin profile already exists; create further users through the API.")

        User = get_user_model()
        with transaction.atomic():
            user_code = generate_user_code(RoleName.ADMIN)
            user = User.objects.create_user(
                username=user_code,
                password=options["password"],
                is_staff=True,
                is_superuser=True,
            )
            Profile.objects.create(
                user=user,
                full_name=options["full_name"],
                user_code=user_code,
                role=roles[RoleName.ADMIN.value],
                status=ProfileStatus.ACTIVE,
            )

        self.stdout.write(self.style.SUCCESS(f"Admin profile created: {user_code}"))
