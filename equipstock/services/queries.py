"""
Stock queries — read-only operations.

All methods are classmethod on Stock and use no locking.
"""

from dataclasses import dataclass
from datetime import date

from django.core.paginator import Paginator
from django.db.models import Count, F, Q, Sum
from django.db.models.functions import Coalesce

from equipstock.conf import equipstock_settings
from equipstock.models.booking import BookingItem
from equipstock.models.enums import ACTIVE_BOOKING_STATUSES, EquipmentStatus
from equipstock.models.equipment import Equipment
from equipstock.models.movement import StockMovement

OUT_OF_STOCK = 'OUT_OF_STOCK'
CRITICAL = 'CRITICAL'
LOW = 'LOW'


def low_stock_status(equipment) -> str:
    """OUT_OF_STOCK, CRITICAL (available <= min/2) or LOW."""
    if equipment.available_stock == 0:
        return OUT_OF_STOCK
    if equipment.available_stock <= equipment.min_stock_level / 2:
        return CRITICAL
    return LOW


@dataclass
class MovementPage:
    movements: list[StockMovement]
    page: int
    limit: int
    total: int
    summary: dict[str, dict[str, int]]

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.total else 0

    def as_dict(self) -> dict:
        return {
            'movements': [m.as_dict() for m in self.movements],
            'pagination': {
                'page': self.page,
                'limit': self.limit,
                'total': self.total,
                'totalPages': self.total_pages,
            },
            'summary': self.summary,
        }


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def stock_overview(cls, tenant_id, category=None, status=None,
                       low_stock: bool = False, search=None) -> dict:
        """
        Equipment list with counters, plus tenant-wide totals.

        Stats always cover every equipment matching category/status/search;
        `low_stock` only narrows the returned list.
        """
        qs = Equipment.objects.for_tenant(tenant_id)
        if category:
            qs = qs.filter(category=category)
        if status:
            qs = qs.filter(status=status)
        if search:
            qs = qs.filter(Q(name__icontains=search) | Q(category__icontains=search))

        qs = qs.annotate(
            movements_count=Count('movements', distinct=True),
            booking_items_count=Count('booking_items', distinct=True),
        ).order_by('name', 'pk')

        equipments = list(qs)
        low = [eq for eq in equipments if eq.available_stock <= eq.min_stock_level]

        result = low if low_stock else equipments
        return {
            'equipments': [
                {
                    'id': eq.pk,
                    'name': eq.name,
                    'category': eq.category,
                    'status': eq.status,
                    'trackingType': eq.tracking_type,
                    'minStockLevel': eq.min_stock_level,
                    **eq.stock_dict(),
                    '_count': {
                        'stockMovements': eq.movements_count,
                        'bookingItems': eq.booking_items_count,
                    },
                }
                for eq in result
            ],
            'stats': {
                'totalEquipments': len(equipments),
                'totalStock': sum(eq.total_stock for eq in equipments),
                'totalAvailable': sum(eq.available_stock for eq in equipments),
                'totalReserved': sum(eq.reserved_stock for eq in equipments),
                'totalMaintenance': sum(eq.maintenance_stock for eq in equipments),
                'totalDamaged': sum(eq.damaged_stock for eq in equipments),
                'lowStockCount': len(low),
            },
        }

    @classmethod
    def low_stock(cls, tenant_id) -> dict:
        """
        Non-INACTIVE equipment with available <= min_stock_level.

        Ordered by available stock, then name. Each entry carries its
        last movement and its number of active booking items.
        """
        qs = (
            Equipment.objects.for_tenant(tenant_id)
            .exclude(status=EquipmentStatus.INACTIVE)
            .filter(available_stock__lte=F('min_stock_level'))
            .annotate(active_bookings=Count(
                'booking_items',
                filter=Q(booking_items__booking__status__in=ACTIVE_BOOKING_STATUSES),
            ))
            .order_by('available_stock', 'name')
        )

        equipments = []
        for eq in qs:
            last = eq.movements.order_by('-created_at', '-pk').first()
            equipments.append({
                'id': eq.pk,
                'name': eq.name,
                'category': eq.category,
                'stock': {
                    'total': eq.total_stock,
                    'available': eq.available_stock,
                    'reserved': eq.reserved_stock,
                    'maintenance': eq.maintenance_stock,
                    'damaged': eq.damaged_stock,
                    'minLevel': eq.min_stock_level,
                },
                'status': low_stock_status(eq),
                'lastMovement': {
                    'type': last.type,
                    'quantity': last.quantity,
                    'createdAt': last.created_at.isoformat(),
                } if last else None,
                'activeBookings': eq.active_bookings,
            })

        return {
            'equipments': equipments,
            'stats': {
                'totalLowStock': len(equipments),
                'outOfStock': sum(1 for e in equipments if e['status'] == OUT_OF_STOCK),
                'criticallyLow': sum(1 for e in equipments if e['status'] == CRITICAL),
            },
        }

    @classmethod
    def movement_history(cls, equipment, movement_type=None, start: date | None = None,
                         end: date | None = None, page: int = 1,
                         limit: int | None = None) -> MovementPage:
        """
        Ledger of an equipment, newest first, paginated.

        The per-type summary covers every movement matching the filters,
        not only the current page.
        """
        limit = limit or equipstock_settings.MOVEMENTS_PAGE_SIZE
        limit = max(1, min(limit, equipstock_settings.MAX_PAGE_SIZE))

        qs = StockMovement.objects.filter(equipment=equipment)
        if movement_type:
            qs = qs.of_type(movement_type)
        if start:
            qs = qs.filter(created_at__date__gte=start)
        if end:
            qs = qs.filter(created_at__date__lte=end)

        summary = {
            row['type']: {'count': row['count'], 'quantity': row['quantity']}
            for row in qs.order_by().values('type').annotate(
                count=Count('pk'),
                quantity=Coalesce(Sum('quantity'), 0),
            )
        }

        paginator = Paginator(qs.select_related('user').order_by('-created_at', '-pk'), limit)
        page_obj = paginator.get_page(page)

        return MovementPage(
            movements=list(page_obj.object_list),
            page=page_obj.number,
            limit=limit,
            total=paginator.count,
            summary=summary,
        )

    @classmethod
    def active_reservations(cls, equipment) -> list[BookingItem]:
        """PENDING/CONFIRMED item lines of an equipment, by booking start date."""
        return list(
            BookingItem.objects
            .filter(equipment=equipment, booking__status__in=ACTIVE_BOOKING_STATUSES)
            .select_related('booking')
            .order_by('booking__start_date', 'booking_id')
        )

    @classmethod
    def stock_detail(cls, equipment, recent: int = 10) -> dict:
        """
        Counters of one equipment with its latest movements, its active
        booking lines and usage metrics.

        utilizationRate is the share of the total currently out on rental,
        in percent with one decimal.
        """
        movements = (
            equipment.movements
            .select_related('booking')
            .order_by('-created_at', '-pk')[:recent]
        )
        rate = 0
        if equipment.total_stock:
            rate = round(equipment.reserved_stock * 100 / equipment.total_stock, 1)

        return {
            'equipment': {
                'id': equipment.pk,
                'name': equipment.name,
                'category': equipment.category,
                'status': equipment.status,
                'trackingType': equipment.tracking_type,
                'minStockLevel': equipment.min_stock_level,
                **equipment.stock_dict(),
            },
            'recentMovements': [
                {
                    **m.as_dict(),
                    'bookingNumber': m.booking.booking_number if m.booking else None,
                }
                for m in movements
            ],
            'activeReservations': [
                {
                    'id': item.pk,
                    'quantity': item.quantity,
                    'booking': {
                        'id': item.booking.pk,
                        'bookingNumber': item.booking.booking_number,
                        'customerName': item.booking.customer_name,
                        'startDate': item.booking.start_date.isoformat(),
                        'endDate': item.booking.end_date.isoformat(),
                        'status': item.booking.status,
                    },
                }
                for item in cls.active_reservations(equipment)
            ],
            'metrics': {
                'utilizationRate': rate,
                'isLowStock': equipment.available_stock <= equipment.min_stock_level,
            },
        }

    @classmethod
    def return_status(cls, booking) -> dict:
        """Per-line returned/damaged/pending quantities of a booking."""
        items = list(booking.items.select_related('equipment').order_by('pk'))
        lines = [
            {
                'id': item.pk,
                'equipment': {'id': item.equipment_id, 'name': item.equipment.name},
                'quantity': item.quantity,
                'returnedQty': item.returned_qty,
                'damagedQty': item.damaged_qty,
                'pendingQty': item.pending_qty,
                'isComplete': item.is_complete,
            }
            for item in items
        ]

        return {
            'booking': {
                'id': booking.pk,
                'bookingNumber': booking.booking_number,
                'customerName': booking.customer_name,
                'status': booking.status,
                'startDate': booking.start_date.isoformat(),
                'endDate': booking.end_date.isoformat(),
            },
            'items': lines,
            'summary': {
                'totalItems': len(lines),
                'totalQuantity': sum(line['quantity'] for line in lines),
                'totalReturned': sum(line['returnedQty'] for line in lines),
                'totalDamaged': sum(line['damagedQty'] for line in lines),
                'totalPending': sum(line['pendingQty'] for line in lines),
                # Same rule that completes the booking in return_booking()
                'allComplete': bool(lines) and all(line['isComplete'] for line in lines),
            },
        }
