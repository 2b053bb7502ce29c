"""
EquipmentUnit model — one physical item of serialized equipment.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from equipstock.models.enums import UnitStatus


class EquipmentUnit(models.Model):
    """
    Physical unit tracked by serial number.

    LIFECYCLE:

        AVAILABLE ──deliver──► RENTED ──return──► AVAILABLE | MAINTENANCE | DAMAGED
            │                    │
            │                    └── damaged while rented ──► DAMAGED
            ├──► MAINTENANCE ──► AVAILABLE
            ├──► DAMAGED ──► MAINTENANCE | AVAILABLE
            └──► RETIRED (leaves the total)

    Status changes go through the stock service, which keeps the
    equipment counters equal to the number of units in each status.
    """

    equipment = models.ForeignKey(
        'equipstock.Equipment',
        on_delete=models.PROTECT,
        related_name='units',
        verbose_name=_('Equipamento'),
    )
    tenant_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Tenant'))

    serial_number = models.CharField(max_length=100, verbose_name=_('Número de série'))
    internal_code = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Código interno'))
    status = models.CharField(
        max_length=20,
        choices=UnitStatus.choices,
        default=UnitStatus.AVAILABLE,
        db_index=True,
        verbose_name=_('Status'),
    )

    acquisition_date = models.DateField(null=True, blank=True, verbose_name=_('Data de aquisição'))
    acquisition_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Custo de aquisição'),
    )
    warranty_expiry = models.DateField(null=True, blank=True, verbose_name=_('Fim da garantia'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Unidade')
        verbose_name_plural = _('Unidades')
        ordering = ['-created_at', '-pk']
        constraints = [
            models.UniqueConstraint(
                fields=['tenant_id', 'serial_number'],
                name='unique_unit_serial_per_tenant',
            ),
        ]

    @property
    def has_open_rental(self) -> bool:
        """Is the unit out on a rental that was not returned yet?"""
        return self.rentals.filter(returned_at__isnull=True).exists()

    def as_dict(self) -> dict:
        return {
            'id': self.pk,
            'equipmentId': self.equipment_id,
            'serialNumber': self.serial_number,
            'internalCode': self.internal_code,
            'status': self.status,
            'acquisitionDate': self.acquisition_date.isoformat() if self.acquisition_date else None,
            'acquisitionCost': str(self.acquisition_cost) if self.acquisition_cost is not None else None,
            'warrantyExpiry': self.warranty_expiry.isoformat() if self.warranty_expiry else None,
            'notes': self.notes,
        }

    def __str__(self) -> str:
        return f"{self.equipment} #{self.serial_number}"
