"""
ActivityLog model — audit trail written alongside every stock mutation.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from equipstock.models.enums import ActivityAction


class ActivityLog(models.Model):
    """Append-only audit entry (who did what to which record)."""

    tenant_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Tenant'))
    action = models.CharField(max_length=10, choices=ActivityAction.choices, verbose_name=_('Ação'))
    entity = models.CharField(max_length=50, verbose_name=_('Entidade'))
    entity_id = models.CharField(max_length=64, verbose_name=_('ID da Entidade'))
    description = models.TextField(verbose_name=_('Descrição'))
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name=_('Usuário'),
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = _('Registro de Atividade')
        verbose_name_plural = _('Registros de Atividade')
        ordering = ['-created_at', '-pk']
        indexes = [
            models.Index(fields=['entity', 'entity_id'], name='activity_entity_idx'),
        ]

    @classmethod
    def record(cls, *, action, entity, entity_id, description, tenant_id,
               user=None, **metadata) -> 'ActivityLog':
        return cls.objects.create(
            action=action,
            entity=entity,
            entity_id=str(entity_id),
            description=description,
            tenant_id=tenant_id,
            user=user,
            metadata=metadata,
        )

    def __str__(self) -> str:
        return f"{self.action} {self.entity}:{self.entity_id}"
