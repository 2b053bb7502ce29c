"""
JSON views — thin HTTP layer over the Stock facade.

Every view resolves the tenant through the configured TenantResolver and
only sees rows of that tenant. Core errors become

    {"error": message, "code": code, "data": {...}}

with status 400, except NOT_FOUND (404) and CONFLICTING_RESERVATION (409).
Invalid request bodies become 400 {"error": ..., "details": {...}}.
"""

import json
import logging
from functools import wraps

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods

from equipstock.adapters.tenancy import get_tenant_resolver
from equipstock.exceptions import NotFound, StockError
from equipstock.forms import (
    AdjustmentForm,
    AvailabilityQueryForm,
    MovementForm,
    MovementHistoryForm,
    RescheduleForm,
    ReturnBookingForm,
    ReturnItemForm,
    UnitForm,
)
from equipstock.models.booking import Booking
from equipstock.models.equipment import Equipment
from equipstock.models.unit import EquipmentUnit
from equipstock.service import Stock
from equipstock.services.reservations import ReturnLine

logger = logging.getLogger('equipstock')

ERROR_STATUS = {
    'NOT_FOUND': 404,
    'CONFLICTING_RESERVATION': 409,
}


class InvalidPayload(Exception):
    def __init__(self, details, message='Dados inválidos'):
        self.details = details
        self.message = message
        super().__init__(message)


def error_response(exc: StockError) -> JsonResponse:
    payload = exc.as_dict()
    return JsonResponse(
        {'error': payload['message'], 'code': payload['code'], 'data': payload['data']},
        status=ERROR_STATUS.get(exc.code, 400),
    )


def stock_view(view):
    """Resolve tenant/actor and translate errors to JSON responses."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        resolver = get_tenant_resolver()
        tenant_id = resolver.tenant_for(request)
        if not tenant_id:
            return JsonResponse({'error': 'Não autorizado'}, status=401)

        request.tenant_id = tenant_id
        request.actor = resolver.actor_for(request)

        try:
            return view(request, *args, **kwargs)
        except InvalidPayload as exc:
            return JsonResponse({'error': exc.message, 'details': exc.details}, status=400)
        except StockError as exc:
            logger.info(
                "stock.api.rejected",
                extra={"code": exc.code, "path": request.path, "tenant_id": tenant_id},
            )
            return error_response(exc)

    return wrapper


# ══════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════

def _json_body(request) -> dict:
    try:
        body = json.loads(request.body or b'{}')
    except (ValueError, UnicodeDecodeError):
        raise InvalidPayload({}, message='JSON inválido') from None
    if not isinstance(body, dict):
        raise InvalidPayload({}, message='JSON inválido')
    return body


def _validated(form):
    if not form.is_valid():
        raise InvalidPayload(form.errors.get_json_data())
    return form.cleaned_data


def _get_equipment(request, equipment_id) -> Equipment:
    equipment = Equipment.objects.for_tenant(request.tenant_id).filter(pk=equipment_id).first()
    if equipment is None:
        raise NotFound(message='Equipamento não encontrado', entity='Equipment', id=equipment_id)
    return equipment


def _get_booking(request, booking_id) -> Booking:
    booking = Booking.objects.for_tenant(request.tenant_id).filter(pk=booking_id).first()
    if booking is None:
        raise NotFound(message='Reserva não encontrada', entity='Booking', id=booking_id)
    return booking


def _get_unit(request, equipment, unit_id) -> EquipmentUnit:
    unit = EquipmentUnit.objects.filter(
        pk=unit_id,
        equipment=equipment,
        tenant_id=request.tenant_id,
    ).first()
    if unit is None:
        raise NotFound(message='Unidade não encontrada', entity='EquipmentUnit', id=unit_id)
    return unit


# ══════════════════════════════════════════════════════════════
# EQUIPMENT STOCK
# ══════════════════════════════════════════════════════════════

@require_GET
@stock_view
def availability(request, equipment_id):
    equipment = _get_equipment(request, equipment_id)
    data = _validated(AvailabilityQueryForm(request.GET))
    result = Stock.check_availability(
        equipment,
        data['startDate'],
        data['endDate'],
        quantity=data['quantity'],
        exclude_booking=data['excludeBookingId'],
    )
    return JsonResponse(result.as_dict())


@require_http_methods(['POST'])
@stock_view
def movement(request, equipment_id):
    equipment = _get_equipment(request, equipment_id)
    data = _validated(MovementForm(_json_body(request)))

    booking = None
    if data['bookingId']:
        booking = _get_booking(request, data['bookingId'])

    created = Stock.record_movement(
        equipment,
        data['type'],
        data['quantity'],
        reason=data['reason'],
        user=request.actor,
        tenant_id=request.tenant_id,
        booking=booking,
        idempotency_key=data['idempotencyKey'] or None,
    )
    return JsonResponse(
        {
            'movement': created.as_dict(),
            'equipment': {'id': equipment.pk, 'name': equipment.name, **equipment.stock_dict()},
        },
        status=201,
    )


@require_GET
@stock_view
def movement_history(request, equipment_id):
    equipment = _get_equipment(request, equipment_id)
    data = _validated(MovementHistoryForm(request.GET))
    page = Stock.movement_history(
        equipment,
        movement_type=data['type'] or None,
        start=data['startDate'],
        end=data['endDate'],
        page=data['page'] or 1,
        limit=data['limit'],
    )
    return JsonResponse({
        'equipment': {'id': equipment.pk, 'name': equipment.name, **equipment.stock_dict()},
        **page.as_dict(),
    })


@require_GET
@stock_view
def stock_detail(request, equipment_id):
    return JsonResponse(Stock.stock_detail(_get_equipment(request, equipment_id)))


@require_http_methods(['PUT'])
@stock_view
def adjust(request, equipment_id):
    equipment = _get_equipment(request, equipment_id)
    data = _validated(AdjustmentForm(_json_body(request)))
    result = Stock.adjust_total_stock(
        equipment,
        data['newTotalStock'],
        data['reason'],
        user=request.actor,
    )
    body = result.as_dict()
    body['message'] = (
        'Estoque ajustado com sucesso' if result.movement else 'Nenhuma alteração necessária'
    )
    return JsonResponse(body)


# ══════════════════════════════════════════════════════════════
# UNITS
# ══════════════════════════════════════════════════════════════

@require_http_methods(['GET', 'POST'])
@stock_view
def units(request, equipment_id):
    equipment = _get_equipment(request, equipment_id)

    if request.method == 'GET':
        return JsonResponse(Stock.list_units(equipment, status=request.GET.get('status')).as_dict())

    form = UnitForm(_json_body(request))
    _validated(form)
    fields = form.unit_fields()
    unit = Stock.create_unit(
        equipment,
        fields.pop('serial_number'),
        status=fields.pop('status', 'AVAILABLE'),
        user=request.actor,
        **fields,
    )
    return JsonResponse(unit.as_dict(), status=201)


@require_http_methods(['GET', 'PUT', 'DELETE'])
@stock_view
def unit_detail(request, equipment_id, unit_id):
    equipment = _get_equipment(request, equipment_id)
    unit = _get_unit(request, equipment, unit_id)

    if request.method == 'GET':
        rentals = unit.rentals.select_related('booking_item__booking').order_by('-delivered_at')
        return JsonResponse({
            **unit.as_dict(),
            'equipment': {'id': equipment.pk, 'name': equipment.name},
            'rentals': [
                {
                    'id': r.pk,
                    'bookingId': r.booking_item.booking_id,
                    'bookingNumber': r.booking_item.booking.booking_number,
                    'deliveredAt': r.delivered_at.isoformat(),
                    'returnedAt': r.returned_at.isoformat() if r.returned_at else None,
                }
                for r in rentals
            ],
        })

    if request.method == 'DELETE':
        Stock.delete_unit(unit, user=request.actor)
        return JsonResponse({'success': True})

    form = UnitForm(_json_body(request), partial=True)
    _validated(form)
    unit = Stock.update_unit(unit, user=request.actor, **form.unit_fields())
    return JsonResponse(unit.as_dict())


# ══════════════════════════════════════════════════════════════
# TENANT-WIDE
# ══════════════════════════════════════════════════════════════

@require_GET
@stock_view
def alerts(request):
    return JsonResponse(Stock.get_alerts(request.tenant_id).as_dict())


@require_GET
@stock_view
def low_stock(request):
    return JsonResponse(Stock.low_stock(request.tenant_id))


@require_GET
@stock_view
def overview(request):
    return JsonResponse(Stock.stock_overview(
        request.tenant_id,
        category=request.GET.get('category') or None,
        status=request.GET.get('status') or None,
        low_stock=request.GET.get('lowStock') == 'true',
        search=request.GET.get('search') or None,
    ))


# ══════════════════════════════════════════════════════════════
# BOOKINGS
# ══════════════════════════════════════════════════════════════

@require_http_methods(['PATCH'])
@stock_view
def reschedule(request, booking_id):
    booking = _get_booking(request, booking_id)
    data = _validated(RescheduleForm(_json_body(request)))
    booking = Stock.reschedule_booking(booking, data['startDate'], data['endDate'], user=request.actor)
    return JsonResponse({
        'success': True,
        'booking': {
            'id': booking.pk,
            'bookingNumber': booking.booking_number,
            'startDate': booking.start_date.isoformat(),
            'endDate': booking.end_date.isoformat(),
            'status': booking.status,
        },
    })


@require_http_methods(['GET', 'POST'])
@stock_view
def return_booking(request, booking_id):
    booking = _get_booking(request, booking_id)
    if request.method == 'GET':
        return JsonResponse(Stock.return_status(booking))

    body = _json_body(request)
    notes = _validated(ReturnBookingForm(body))['notes']

    raw_items = body.get('items')
    if not isinstance(raw_items, list):
        raise InvalidPayload({'items': [{'message': 'Lista de itens é obrigatória', 'code': 'required'}]})

    lines = []
    for index, raw in enumerate(raw_items):
        form = ReturnItemForm(raw if isinstance(raw, dict) else {})
        if not form.is_valid():
            raise InvalidPayload({f'items.{index}': form.errors.get_json_data()})
        item = form.cleaned_data
        lines.append(ReturnLine(
            booking_item=item['bookingItemId'],
            returned_qty=item['returnedQty'],
            damaged_qty=item['damagedQty'],
            damage_notes=item['damageNotes'],
        ))

    summary = Stock.return_booking(booking, lines, user=request.actor, notes=notes)
    return JsonResponse({'success': True, **summary.as_dict()})
