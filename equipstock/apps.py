"""Django app configuration for Equipstock."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class EquipstockConfig(AppConfig):
    """Configuration for Equipstock app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "equipstock"
    verbose_name = _("Estoque de Equipamentos")
