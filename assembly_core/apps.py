# assembly_core/apps.py

from django.apps import AppConfig


class AssemblyCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "assembly_core"
    verbose_name = "Cycle assembly"
