"""
Equipment model — rentable catalog item and its stock aggregate.
"""

import logging

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

from equipstock.models.enums import EquipmentStatus, TrackingType

logger = logging.getLogger('equipstock')


class EquipmentQuerySet(models.QuerySet):
    """Custom QuerySet for Equipment with tenant scoping."""

    def for_tenant(self, tenant_id):
        return self.filter(tenant_id=tenant_id)

    def active(self):
        """Everything except INACTIVE equipment."""
        return self.exclude(status=EquipmentStatus.INACTIVE)

    def low_stock(self):
        """Available at or below the configured minimum."""
        return self.filter(available_stock__lte=F('min_stock_level'))


class Equipment(models.Model):
    """
    Rentable item with a four-bucket stock aggregate.

    INVARIANT (enforced by a check constraint):
        total_stock == available + reserved + maintenance + damaged

    The counters are a cache of the ledger:
    - QUANTITY equipment changes only through StockMovement rows
    - SERIALIZED equipment changes only through EquipmentUnit transitions
    Never assign the *_stock fields directly; use the stock service.
    """

    tenant_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Tenant'))
    name = models.CharField(max_length=200, verbose_name=_('Nome'))
    category = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Categoria'))
    status = models.CharField(
        max_length=20,
        choices=EquipmentStatus.choices,
        default=EquipmentStatus.AVAILABLE,
        db_index=True,
        verbose_name=_('Status'),
    )
    tracking_type = models.CharField(
        max_length=20,
        choices=TrackingType.choices,
        default=TrackingType.QUANTITY,
        verbose_name=_('Controle'),
        help_text=_('Serializado = uma unidade por número de série'),
    )

    # Stock aggregate (updated atomically by the stock service)
    total_stock = models.PositiveIntegerField(default=0, verbose_name=_('Estoque total'))
    available_stock = models.PositiveIntegerField(default=0, verbose_name=_('Disponível'))
    reserved_stock = models.PositiveIntegerField(default=0, verbose_name=_('Reservado'))
    maintenance_stock = models.PositiveIntegerField(default=0, verbose_name=_('Em manutenção'))
    damaged_stock = models.PositiveIntegerField(default=0, verbose_name=_('Avariado'))
    min_stock_level = models.PositiveIntegerField(
        default=1,
        verbose_name=_('Estoque mínimo'),
        help_text=_('Alerta de estoque baixo quando disponível <= este valor'),
    )

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = EquipmentQuerySet.as_manager()

    class Meta:
        verbose_name = _('Equipamento')
        verbose_name_plural = _('Equipamentos')
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=Q(total_stock=(
                    F('available_stock') + F('reserved_stock')
                    + F('maintenance_stock') + F('damaged_stock')
                )),
                name='equipment_stock_buckets_balanced',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant_id', 'status'], name='equipment_tenant_status_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def is_serialized(self) -> bool:
        return self.tracking_type == TrackingType.SERIALIZED

    @property
    def is_inactive(self) -> bool:
        return self.status == EquipmentStatus.INACTIVE

    @property
    def committed_stock(self) -> int:
        """Units that cannot be removed by an adjustment."""
        return self.reserved_stock + self.maintenance_stock + self.damaged_stock

    def snapshot(self) -> dict[str, int]:
        """Current counters keyed by bucket name."""
        return {
            'total': self.total_stock,
            'available': self.available_stock,
            'reserved': self.reserved_stock,
            'maintenance': self.maintenance_stock,
            'damaged': self.damaged_stock,
        }

    def stock_dict(self) -> dict[str, int]:
        """Counters in the JSON shape of the HTTP API."""
        return {
            'totalStock': self.total_stock,
            'availableStock': self.available_stock,
            'reservedStock': self.reserved_stock,
            'maintenanceStock': self.maintenance_stock,
            'damagedStock': self.damaged_stock,
        }

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def ledger_snapshot(self) -> dict[str, int]:
        """Counters reconstructed by replaying every movement's deltas."""
        from equipstock.buckets import COUNTERS, merge_deltas

        replayed = merge_deltas(*self.movements.values_list('deltas', flat=True))
        return {counter: replayed.get(counter, 0) for counter in COUNTERS}

    def recalculate(self) -> dict[str, int]:
        """
        Recalculate counters from the ledger.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency
        - Debug

        Returns:
            New calculated snapshot
        """
        from equipstock.buckets import field_for

        replayed = self.ledger_snapshot()
        current = self.snapshot()

        if replayed != current:
            Equipment.objects.filter(pk=self.pk).update(
                **{field_for(c): v for c, v in replayed.items()}
            )
            self.refresh_from_db()
            logger.warning(
                "stock.equipment.recalculated",
                extra={
                    "equipment_id": self.pk,
                    "old": current,
                    "new": replayed,
                },
            )

        return replayed

    def __str__(self) -> str:
        return self.name
