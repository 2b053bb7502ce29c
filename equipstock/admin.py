"""
Equipstock Admin — basic fallback (works without Unfold).

For the Unfold-styled version, add 'equipstock.contrib.admin_unfold' to INSTALLED_APPS.
When the Unfold contrib is loaded, the classes below are not registered
(avoids double registration); the mixins are shared with it.

Provides views for production debugging:
- Equipment: editable catalog data, counters read-only, "recalculate" action
- StockMovement: read-only ledger (timestamp, type, deltas, reason)
- EquipmentUnit: editable data, status read-only (changes go through the service)
- Booking: editable, with item lines inline
- ActivityLog: read-only audit trail
"""

import logging

from django.apps import apps
from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from equipstock.exceptions import StockError
from equipstock.models import (
    ActivityLog,
    Booking,
    BookingItem,
    Equipment,
    EquipmentUnit,
    StockMovement,
)

logger = logging.getLogger(__name__)

COUNTER_FIELDS = ['total_stock', 'available_stock', 'reserved_stock',
                  'maintenance_stock', 'damaged_stock']


class ReadOnlyMixin:
    """No add/change/delete from the admin."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class EquipmentAdminMixin:
    """Counters are read-only; tracking mode is fixed once the equipment exists."""

    readonly_fields = [*COUNTER_FIELDS, 'created_at', 'updated_at']
    actions = ['recalculate_stock']

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return [*self.readonly_fields, 'tracking_type', 'tenant_id']
        return self.readonly_fields

    @admin.action(description=_('Recalcular estoque a partir do histórico'))
    def recalculate_stock(self, request, queryset):
        from equipstock import stock

        fixed = 0
        for equipment in queryset:
            before = equipment.snapshot()
            try:
                after = stock.repair(equipment)
            except StockError as exc:
                logger.warning("recalculate_stock: failed for %s: %s", equipment.pk, exc)
                continue
            if after != before:
                fixed += 1

        self.message_user(
            request,
            _('{count} equipamento(s) corrigido(s).').format(count=fixed),
        )


class UnitAdminMixin:
    """Units are created and removed through the Stock service."""

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# EQUIPMENT ADMIN
# =========================================================================

class EquipmentAdmin(EquipmentAdminMixin, admin.ModelAdmin):
    """Equipment admin — counters only change via the Stock service."""

    list_display = ['name', 'tenant_id', 'category', 'status', 'tracking_type',
                    *COUNTER_FIELDS, 'min_stock_level']
    list_filter = ['status', 'tracking_type', 'category']
    search_fields = ['name', 'category', 'tenant_id']


# =========================================================================
# MOVEMENT ADMIN (read-only ledger)
# =========================================================================

class StockMovementAdmin(ReadOnlyMixin, admin.ModelAdmin):
    """StockMovement admin — read-only. Immutable ledger."""

    list_display = ['created_at', 'equipment', 'type', 'quantity',
                    'previous_stock', 'new_stock', 'reason', 'user']
    list_filter = ['type', 'created_at']
    search_fields = ['reason', 'equipment__name', 'idempotency_key']
    readonly_fields = ['equipment', 'tenant_id', 'type', 'quantity', 'previous_stock',
                       'new_stock', 'deltas', 'reason', 'booking', 'unit',
                       'idempotency_key', 'user', 'created_at']
    date_hierarchy = 'created_at'


# =========================================================================
# UNIT ADMIN
# =========================================================================

class EquipmentUnitAdmin(UnitAdminMixin, admin.ModelAdmin):
    """Unit admin — status read-only (use the Stock service to move units)."""

    list_display = ['serial_number', 'equipment', 'internal_code', 'status', 'warranty_expiry']
    list_filter = ['status']
    search_fields = ['serial_number', 'internal_code', 'equipment__name']
    readonly_fields = ['equipment', 'tenant_id', 'status', 'created_at', 'updated_at']


# =========================================================================
# BOOKING ADMIN
# =========================================================================

class BookingItemInline(admin.TabularInline):
    model = BookingItem
    extra = 0
    readonly_fields = ['returned_qty', 'damaged_qty']


class BookingAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'tenant_id', 'customer_name', 'equipment',
                    'start_date', 'end_date', 'status']
    list_filter = ['status', 'start_date']
    search_fields = ['booking_number', 'customer_name']
    date_hierarchy = 'start_date'
    inlines = [BookingItemInline]


# =========================================================================
# ACTIVITY LOG ADMIN (read-only audit trail)
# =========================================================================

class ActivityLogAdmin(ReadOnlyMixin, admin.ModelAdmin):
    list_display = ['created_at', 'action', 'entity', 'entity_id', 'description', 'user']
    list_filter = ['action', 'entity']
    search_fields = ['description', 'entity_id']
    readonly_fields = ['tenant_id', 'action', 'entity', 'entity_id', 'description',
                       'metadata', 'user', 'created_at']
    date_hierarchy = 'created_at'


# Skip registration if the Unfold contrib is installed (it registers its own admins)
if not apps.is_installed('equipstock.contrib.admin_unfold'):
    admin.site.register(Equipment, EquipmentAdmin)
    admin.site.register(StockMovement, StockMovementAdmin)
    admin.site.register(EquipmentUnit, EquipmentUnitAdmin)
    admin.site.register(Booking, BookingAdmin)
    admin.site.register(ActivityLog, ActivityLogAdmin)
