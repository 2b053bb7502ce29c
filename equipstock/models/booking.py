"""
Booking models — reservation records read by the availability engine.

Two booking shapes coexist:

1. LEGACY: Booking.equipment points at one equipment, implicit quantity 1.
2. ITEM-BASED: Booking has BookingItem lines, each with its own quantity.

Both consume capacity while the booking is PENDING or CONFIRMED.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from equipstock.models.enums import ACTIVE_BOOKING_STATUSES, BookingStatus


class BookingQuerySet(models.QuerySet):

    def for_tenant(self, tenant_id):
        return self.filter(tenant_id=tenant_id)

    def active(self):
        """Bookings that consume capacity."""
        return self.filter(status__in=ACTIVE_BOOKING_STATUSES)

    def overlapping(self, start, end):
        """Inclusive overlap with [start, end]."""
        return self.filter(start_date__lte=end, end_date__gte=start)


class Booking(models.Model):
    """Rental booking over an inclusive date interval."""

    tenant_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Tenant'))
    booking_number = models.CharField(max_length=30, blank=True, default='', verbose_name=_('Número'))
    customer_name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Cliente'))

    # Legacy single-equipment reference (quantity 1)
    equipment = models.ForeignKey(
        'equipstock.Equipment',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='legacy_bookings',
        verbose_name=_('Equipamento (legado)'),
    )

    start_date = models.DateField(db_index=True, verbose_name=_('Início'))
    end_date = models.DateField(db_index=True, verbose_name=_('Fim'))
    status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        verbose_name = _('Reserva')
        verbose_name_plural = _('Reservas')
        ordering = ['start_date', 'pk']
        indexes = [
            models.Index(fields=['status', 'start_date', 'end_date'], name='booking_status_dates_idx'),
        ]

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES

    def __str__(self) -> str:
        return f"#{self.booking_number or self.pk} ({self.start_date} → {self.end_date})"


class BookingItem(models.Model):
    """Line of an item-based booking."""

    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Reserva'),
    )
    equipment = models.ForeignKey(
        'equipstock.Equipment',
        on_delete=models.PROTECT,
        related_name='booking_items',
        verbose_name=_('Equipamento'),
    )
    quantity = models.PositiveIntegerField(default=1, verbose_name=_('Quantidade'))
    returned_qty = models.PositiveIntegerField(default=0, verbose_name=_('Devolvido'))
    damaged_qty = models.PositiveIntegerField(default=0, verbose_name=_('Avariado'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    class Meta:
        verbose_name = _('Item da Reserva')
        verbose_name_plural = _('Itens da Reserva')
        indexes = [
            models.Index(fields=['equipment', 'booking'], name='bookingitem_equip_booking_idx'),
        ]

    @property
    def pending_qty(self) -> int:
        """Units still out (neither returned nor written off as damaged)."""
        return self.quantity - self.returned_qty - self.damaged_qty

    @property
    def is_complete(self) -> bool:
        return self.pending_qty <= 0

    def __str__(self) -> str:
        return f"{self.quantity}x {self.equipment} ({self.booking})"


class BookingUnit(models.Model):
    """
    Rental association of a serialized unit with a booking line.

    returned_at IS NULL means the unit is still out (open rental).
    """

    booking_item = models.ForeignKey(
        BookingItem,
        on_delete=models.CASCADE,
        related_name='units',
        verbose_name=_('Item da Reserva'),
    )
    unit = models.ForeignKey(
        'equipstock.EquipmentUnit',
        on_delete=models.CASCADE,
        related_name='rentals',
        verbose_name=_('Unidade'),
    )
    delivered_at = models.DateTimeField(default=timezone.now, verbose_name=_('Entregue em'))
    returned_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Devolvido em'))

    class Meta:
        verbose_name = _('Unidade Locada')
        verbose_name_plural = _('Unidades Locadas')
        ordering = ['-delivered_at']
        indexes = [
            models.Index(fields=['unit', 'returned_at'], name='bookingunit_unit_returned_idx'),
        ]

    @property
    def is_open(self) -> bool:
        return self.returned_at is None

    def __str__(self) -> str:
        state = 'aberta' if self.is_open else 'devolvida'
        return f"{self.unit} → {self.booking_item.booking} ({state})"
