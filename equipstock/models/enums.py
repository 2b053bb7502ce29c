"""
Enums for Equipstock models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class TrackingType(models.TextChoices):
    """
    How physical units of an equipment are counted.

    QUANTITY:   Bulk counters only. Stock changes through ledger movements.
    SERIALIZED: One EquipmentUnit per physical item. Counters mirror the
                unit statuses and change through the unit registry.
    """
    QUANTITY = 'QUANTITY', _('Quantidade')
    SERIALIZED = 'SERIALIZED', _('Serializado')


class EquipmentStatus(models.TextChoices):
    AVAILABLE = 'AVAILABLE', _('Disponível')
    RENTED = 'RENTED', _('Alugado')
    MAINTENANCE = 'MAINTENANCE', _('Manutenção')
    INACTIVE = 'INACTIVE', _('Inativo')


class MovementType(models.TextChoices):
    """Kinds of stock-affecting events recorded in the ledger."""
    PURCHASE = 'PURCHASE', _('Compra/Entrada')
    RENTAL_OUT = 'RENTAL_OUT', _('Saída para Locação')
    RENTAL_RETURN = 'RENTAL_RETURN', _('Retorno de Locação')
    ADJUSTMENT = 'ADJUSTMENT', _('Ajuste Manual')
    DAMAGE = 'DAMAGE', _('Avaria')
    LOSS = 'LOSS', _('Perda/Extravio')
    MAINTENANCE_OUT = 'MAINTENANCE_OUT', _('Enviado para Manutenção')
    MAINTENANCE_IN = 'MAINTENANCE_IN', _('Retorno de Manutenção')


class UnitStatus(models.TextChoices):
    """Lifecycle status of a serialized unit."""
    AVAILABLE = 'AVAILABLE', _('Disponível')
    RENTED = 'RENTED', _('Alugada')
    MAINTENANCE = 'MAINTENANCE', _('Manutenção')
    DAMAGED = 'DAMAGED', _('Avariada')
    RETIRED = 'RETIRED', _('Baixada')


class BookingStatus(models.TextChoices):
    PENDING = 'PENDING', _('Pendente')
    CONFIRMED = 'CONFIRMED', _('Confirmada')
    CANCELLED = 'CANCELLED', _('Cancelada')
    COMPLETED = 'COMPLETED', _('Concluída')


# Booking statuses that consume equipment capacity
ACTIVE_BOOKING_STATUSES = [BookingStatus.PENDING, BookingStatus.CONFIRMED]


class ActivityAction(models.TextChoices):
    CREATE = 'CREATE', _('Criação')
    UPDATE = 'UPDATE', _('Atualização')
    DELETE = 'DELETE', _('Exclusão')
