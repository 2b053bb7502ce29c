"""
Exceptions for Equipstock.

All errors are StockError with a structured code for programmatic handling.
Each error kind also has its own subclass, so callers can either branch on
``e.code`` or catch the specific class.
"""

from typing import Any


class StockError(Exception):
    """
    Structured exception for stock operations.

    Usage:
        try:
            stock.record_movement(furadeira, 'RENTAL_OUT', 5, reason='Reserva #12')
        except StockError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Só tem {e.available} em {e.data['bucket']}")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    code = 'STOCK_ERROR'

    _default_messages = {
        'INSUFFICIENT_STOCK': 'Estoque insuficiente',
        'BELOW_FLOOR': 'Estoque total abaixo do comprometido',
        'UNIT_IN_USE': 'Unidade está alugada',
        'DUPLICATE_SERIAL_NUMBER': 'Já existe uma unidade com esse número de série',
        'NOT_FOUND': 'Registro não encontrado',
        'INVALID_TRANSITION': 'Operação inválida para o estado atual',
        'CONFLICTING_RESERVATION': 'Conflito de datas com outra reserva',
        'INVALID_QUANTITY': 'Quantidade inválida (deve ser positiva)',
        'INVALID_PERIOD': 'Período inválido (início após o fim)',
        'REASON_REQUIRED': 'Motivo é obrigatório',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data: Any):
        self.code = code or self.code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(self.message)

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: v if isinstance(v, (int, float, bool, list, dict)) or v is None else str(v)
                for k, v in self.data.items()
            },
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"


class InsufficientStock(StockError):
    """A bucket lacks capacity for the requested transition."""

    code = 'INSUFFICIENT_STOCK'

    def __init__(self, bucket: str, available: int, requested: int, message: str | None = None, **data):
        super().__init__(
            self.code,
            message or (
                f"Estoque insuficiente em {bucket}. "
                f"Disponível: {available}, solicitado: {requested}"
            ),
            bucket=bucket,
            available=available,
            requested=requested,
            shortfall=requested - available,
            **data,
        )


class BelowFloor(StockError):
    """Adjustment would take total stock under reserved + maintenance + damaged."""

    code = 'BELOW_FLOOR'

    def __init__(self, minimum: int, requested: int, **data):
        super().__init__(
            self.code,
            f"Não é possível reduzir o estoque para {requested}. Mínimo necessário: {minimum}",
            minimum=minimum,
            requested=requested,
            **data,
        )


class UnitInUse(StockError):
    """Deletion or transition blocked by an open rental."""

    code = 'UNIT_IN_USE'


class DuplicateSerialNumber(StockError):
    code = 'DUPLICATE_SERIAL_NUMBER'


class NotFound(StockError):
    """Equipment, unit, booking or movement absent (or in another tenant)."""

    code = 'NOT_FOUND'


class InvalidTransition(StockError):
    code = 'INVALID_TRANSITION'


class ConflictingReservation(StockError):
    """A date move would over-commit equipment already reserved by other bookings."""

    code = 'CONFLICTING_RESERVATION'
