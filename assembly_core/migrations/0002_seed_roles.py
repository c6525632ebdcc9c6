# assembly_core/migrations/0002_seed_roles.py

from django.db import migrations


ROLES = {
    "admin": "Manages users, cycles, checklists and QC overrides",
    "supervisor": "Assigns cycles to technicians and monitors progress",
    "technician": "Assembles cycles and completes assembly checklists",
    "qc": "Inspects assembled cycles and records QC results",
    "sales": "Dispatches cycles that passed QC",
}


def seed_roles(apps, schema_editor):
    """
    Create the five fixed roles. Idempotent.
    """
    Role = apps.get_model("assembly_core", "Role")
    for name, description in ROLES.items():
        Role.objects.get_or_create(name=name, defaults={"description": description})


class Migration(migrations.Migration):

    dependencies = [
        ("assembly_core", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(
            seed_roles,
            reverse_code=migrations.RunPython.noop,
        ),
    ]
