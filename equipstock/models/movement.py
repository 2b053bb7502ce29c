"""
StockMovement model — Immutable ledger of stock changes.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from equipstock.models.enums import MovementType


class StockMovementQuerySet(models.QuerySet):

    def for_tenant(self, tenant_id):
        return self.filter(tenant_id=tenant_id)

    def of_type(self, movement_type):
        return self.filter(type=movement_type)


class StockMovement(models.Model):
    """
    Immutable record of one stock-affecting event.

    Rules:
    - NEVER update() or delete()
    - Corrections are new movements (ADJUSTMENT or the inverse type)
    - `deltas` holds the signed counter changes actually applied, so the
      equipment counters can always be rebuilt by replaying the ledger
    - previous_stock/new_stock always snapshot the AVAILABLE bucket,
      whatever the movement type, for uniform history charts

    Counters are updated by the stock service in the same transaction
    that inserts the row (see services.movements).
    """

    equipment = models.ForeignKey(
        'equipstock.Equipment',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Equipamento'),
    )
    tenant_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Tenant'))

    type = models.CharField(
        max_length=20,
        choices=MovementType.choices,
        verbose_name=_('Tipo'),
    )
    quantity = models.PositiveIntegerField(verbose_name=_('Quantidade'))
    previous_stock = models.IntegerField(verbose_name=_('Disponível antes'))
    new_stock = models.IntegerField(verbose_name=_('Disponível depois'))
    deltas = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Variações'),
        help_text=_('Variação aplicada a cada contador (total, available, ...)'),
    )

    reason = models.CharField(max_length=500, blank=True, default='', verbose_name=_('Motivo'))
    booking = models.ForeignKey(
        'equipstock.Booking',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_movements',
        verbose_name=_('Reserva'),
    )
    unit = models.ForeignKey(
        'equipstock.EquipmentUnit',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Unidade'),
    )
    idempotency_key = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        verbose_name=_('Chave de idempotência'),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name=_('Usuário'),
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimentação')
        verbose_name_plural = _('Movimentações')
        ordering = ['created_at', 'pk']
        constraints = [
            models.UniqueConstraint(
                fields=['tenant_id', 'idempotency_key'],
                name='unique_movement_idempotency_key',
            ),
        ]
        indexes = [
            models.Index(fields=['equipment', 'created_at'], name='movement_equipment_created_idx'),
            models.Index(fields=['tenant_id', 'type'], name='movement_tenant_type_idx'),
        ]

    def save(self, *args, **kwargs):
        """Insert only — movements are immutable."""
        if self.pk:
            raise ValueError(
                "Movimentações são imutáveis. "
                "Para corrigir, registre uma nova movimentação."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion — movements are immutable."""
        raise ValueError(
            "Movimentações são imutáveis. "
            "Para estornar, registre uma nova movimentação."
        )

    def as_dict(self) -> dict:
        return {
            'id': self.pk,
            'type': self.type,
            'quantity': self.quantity,
            'previousStock': self.previous_stock,
            'newStock': self.new_stock,
            'deltas': self.deltas,
            'reason': self.reason,
            'bookingId': self.booking_id,
            'unitId': self.unit_id,
            'userId': self.user_id,
            'createdAt': self.created_at.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.type} {self.quantity}x | {self.reason}"
