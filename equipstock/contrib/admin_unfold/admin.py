"""
Equipstock Admin with Unfold theme.

This module provides Unfold-styled admin classes for Equipstock models.
To use, add 'equipstock.contrib.admin_unfold' to INSTALLED_APPS after
'unfold' and 'equipstock'.

The admins will automatically register the Unfold versions.
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from unfold.decorators import display

from equipstock.admin import (
    EquipmentAdminMixin,
    ReadOnlyMixin,
    UnitAdminMixin,
)
from equipstock.contrib.admin_unfold.base import (
    BaseModelAdmin,
    BaseTabularInline,
    format_date,
    format_datetime,
)
from equipstock.models import (
    ActivityLog,
    Booking,
    BookingItem,
    BookingStatus,
    Equipment,
    EquipmentStatus,
    EquipmentUnit,
    StockMovement,
    UnitStatus,
)
from equipstock.services.queries import CRITICAL, LOW, OUT_OF_STOCK, low_stock_status

STOCK_LEVEL_COLORS = {
    OUT_OF_STOCK: 'danger',
    CRITICAL: 'danger',
    LOW: 'warning',
    'OK': 'success',
}


def stock_level(equipment) -> str:
    """OK or the low-stock tag of the equipment."""
    if equipment.available_stock > equipment.min_stock_level:
        return 'OK'
    return low_stock_status(equipment)


# =============================================================================
# EQUIPMENT ADMIN
# =============================================================================


@admin.register(Equipment)
class EquipmentAdmin(EquipmentAdminMixin, BaseModelAdmin):
    """Admin for Equipment. Counters are read-only (use the Stock service)."""

    list_display = ['name', 'category', 'status_display', 'tracking_type',
                    'total_stock', 'available_display', 'reserved_stock',
                    'maintenance_stock', 'damaged_stock', 'min_stock_level']
    list_filter = ['status', 'tracking_type', 'category']
    search_fields = ['name', 'category', 'tenant_id']

    @display(description=_('Status'), ordering='status', label={
        EquipmentStatus.AVAILABLE: 'success',
        EquipmentStatus.RENTED: 'info',
        EquipmentStatus.MAINTENANCE: 'warning',
        EquipmentStatus.INACTIVE: 'danger',
    })
    def status_display(self, obj):
        return obj.status, obj.get_status_display()

    @display(description=_('Disponível'), ordering='available_stock', label=STOCK_LEVEL_COLORS)
    def available_display(self, obj):
        """Available counter colored by stock level."""
        return stock_level(obj), str(obj.available_stock)


# =============================================================================
# MOVIMENTAÇÃO (STOCK MOVEMENT) ADMIN
# =============================================================================


@admin.register(StockMovement)
class StockMovementAdmin(ReadOnlyMixin, BaseModelAdmin):
    """Admin for StockMovement (read-only). Immutable ledger."""

    list_display = ['created_at_display', 'equipment', 'type', 'quantity',
                    'available_change_display', 'reason', 'user']
    list_filter = ['type', 'created_at']
    search_fields = ['reason', 'equipment__name', 'idempotency_key']
    readonly_fields = ['equipment', 'tenant_id', 'type', 'quantity', 'previous_stock',
                       'new_stock', 'deltas', 'reason', 'booking', 'unit',
                       'idempotency_key', 'user', 'created_at']
    date_hierarchy = 'created_at'

    @display(description=_('Data e Hora'), ordering='created_at')
    def created_at_display(self, obj):
        return format_datetime(obj.created_at)

    @display(description=_('Disponível'), label={'up': 'success', 'down': 'danger', 'same': 'info'})
    def available_change_display(self, obj):
        """previous → new of the available bucket."""
        if obj.new_stock > obj.previous_stock:
            direction = 'up'
        elif obj.new_stock < obj.previous_stock:
            direction = 'down'
        else:
            direction = 'same'
        return direction, f'{obj.previous_stock} → {obj.new_stock}'


# =============================================================================
# UNIT ADMIN
# =============================================================================


@admin.register(EquipmentUnit)
class EquipmentUnitAdmin(UnitAdminMixin, BaseModelAdmin):
    """Admin for EquipmentUnit. Status read-only (use the Stock service)."""

    list_display = ['serial_number', 'equipment', 'internal_code', 'status_display',
                    'warranty_expiry_display']
    list_filter = ['status']
    search_fields = ['serial_number', 'internal_code', 'equipment__name']
    readonly_fields = ['equipment', 'tenant_id', 'status', 'created_at', 'updated_at']

    @display(description=_('Status'), ordering='status', label={
        UnitStatus.AVAILABLE: 'success',
        UnitStatus.RENTED: 'info',
        UnitStatus.MAINTENANCE: 'warning',
        UnitStatus.DAMAGED: 'danger',
        UnitStatus.RETIRED: 'danger',
    })
    def status_display(self, obj):
        return obj.status, obj.get_status_display()

    @display(description=_('Fim da garantia'), ordering='warranty_expiry')
    def warranty_expiry_display(self, obj):
        return format_date(obj.warranty_expiry)


# =============================================================================
# RESERVA (BOOKING) ADMIN
# =============================================================================


class BookingItemInline(BaseTabularInline):
    model = BookingItem
    extra = 0
    readonly_fields = ['returned_qty', 'damaged_qty']


@admin.register(Booking)
class BookingAdmin(BaseModelAdmin):
    """Admin for Booking, with its item lines inline."""

    list_display = ['__str__', 'customer_name', 'equipment', 'period_display', 'status_display']
    list_filter = ['status', 'start_date']
    search_fields = ['booking_number', 'customer_name']
    date_hierarchy = 'start_date'
    inlines = [BookingItemInline]

    @display(description=_('Período'), ordering='start_date')
    def period_display(self, obj):
        return f'{format_date(obj.start_date)} – {format_date(obj.end_date)}'

    @display(description=_('Status'), ordering='status', label={
        BookingStatus.PENDING: 'warning',
        BookingStatus.CONFIRMED: 'info',
        BookingStatus.COMPLETED: 'success',
        BookingStatus.CANCELLED: 'danger',
    })
    def status_display(self, obj):
        return obj.status, obj.get_status_display()


# =============================================================================
# ACTIVITY LOG ADMIN
# =============================================================================


@admin.register(ActivityLog)
class ActivityLogAdmin(ReadOnlyMixin, BaseModelAdmin):
    """Admin for ActivityLog (read-only audit trail)."""

    list_display = ['created_at_display', 'action', 'entity', 'entity_id', 'description', 'user']
    list_filter = ['action', 'entity']
    search_fields = ['description', 'entity_id']
    readonly_fields = ['tenant_id', 'action', 'entity', 'entity_id', 'description',
                       'metadata', 'user', 'created_at']
    date_hierarchy = 'created_at'

    @display(description=_('Data e Hora'), ordering='created_at')
    def created_at_display(self, obj):
        return format_datetime(obj.created_at)
