"""
Stock alerts — derived, read-only view over the stock aggregate.

Usage:
    from equipstock.services.alerts import get_alerts

    report = get_alerts(tenant_id)
    report.alerts        # critical first, then warning, then info
    report.as_dict()     # {'alerts': [...], 'summary': {...}}

Reports are cached per tenant for EQUIPSTOCK['ALERTS_CACHE_TTL'] seconds.
Every ledger write invalidates its tenant's entry after commit.
"""

import logging
from dataclasses import dataclass, field

from django.core.cache import caches

from equipstock.conf import equipstock_settings
from equipstock.models.equipment import Equipment

logger = logging.getLogger('equipstock')

OUT_OF_STOCK = 'OUT_OF_STOCK'
LOW_STOCK = 'LOW_STOCK'
DAMAGED = 'DAMAGED'
MAINTENANCE = 'MAINTENANCE'

CRITICAL = 'critical'
WARNING = 'warning'
INFO = 'info'

SEVERITY_ORDER = {CRITICAL: 0, WARNING: 1, INFO: 2}


@dataclass(frozen=True)
class StockAlert:
    """One alert about one equipment."""

    id: str
    type: str
    severity: str
    equipment_id: int
    equipment_name: str
    category: str
    message: str
    details: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            'id': self.id,
            'type': self.type,
            'severity': self.severity,
            'equipment': {
                'id': self.equipment_id,
                'name': self.equipment_name,
                'category': self.category,
            },
            'message': self.message,
            'details': self.details,
        }


@dataclass(frozen=True)
class AlertReport:
    alerts: list[StockAlert]
    out_of_stock_count: int = 0
    low_stock_count: int = 0
    damaged_count: int = 0
    in_maintenance_count: int = 0

    @property
    def total_alerts(self) -> int:
        return len(self.alerts)

    def as_dict(self) -> dict:
        return {
            'alerts': [a.as_dict() for a in self.alerts],
            'summary': {
                'totalAlerts': self.total_alerts,
                'lowStockCount': self.low_stock_count,
                'outOfStockCount': self.out_of_stock_count,
                'damagedCount': self.damaged_count,
                'inMaintenanceCount': self.in_maintenance_count,
            },
        }


def alerts_cache_key(tenant_id) -> str:
    return f"equipstock:alerts:{tenant_id}"


def _cache():
    return caches[equipstock_settings.ALERTS_CACHE_ALIAS]


def invalidate_alerts(tenant_id) -> None:
    """Drop the cached report of a tenant."""
    _cache().delete(alerts_cache_key(tenant_id))


def alerts_for(equipment: Equipment) -> list[StockAlert]:
    """Alerts raised by a single equipment (INACTIVE raises none)."""
    if equipment.is_inactive:
        return []

    eq = equipment
    base = {
        'equipment_id': eq.pk,
        'equipment_name': eq.name,
        'category': eq.category,
    }
    found = []

    if eq.available_stock == 0:
        found.append(StockAlert(
            id=f"out-{eq.pk}",
            type=OUT_OF_STOCK,
            severity=CRITICAL,
            message=f"{eq.name} está sem estoque disponível",
            details={'available': 0, 'total': eq.total_stock, 'reserved': eq.reserved_stock},
            **base,
        ))
    elif eq.available_stock <= eq.min_stock_level:
        found.append(StockAlert(
            id=f"low-{eq.pk}",
            type=LOW_STOCK,
            severity=WARNING,
            message=f"{eq.name} com estoque baixo ({eq.available_stock}/{eq.min_stock_level} mínimo)",
            details={
                'available': eq.available_stock,
                'minLevel': eq.min_stock_level,
                'total': eq.total_stock,
            },
            **base,
        ))

    if eq.damaged_stock > 0:
        found.append(StockAlert(
            id=f"dmg-{eq.pk}",
            type=DAMAGED,
            severity=WARNING,
            message=f"{eq.name} tem {eq.damaged_stock} unidade(s) avariada(s)",
            details={'damaged': eq.damaged_stock, 'total': eq.total_stock},
            **base,
        ))

    if eq.maintenance_stock > 0:
        found.append(StockAlert(
            id=f"mnt-{eq.pk}",
            type=MAINTENANCE,
            severity=INFO,
            message=f"{eq.name} tem {eq.maintenance_stock} unidade(s) em manutenção",
            details={'maintenance': eq.maintenance_stock, 'total': eq.total_stock},
            **base,
        ))

    return found


def build_alerts(tenant_id) -> AlertReport:
    """Compute the report from the counters (no cache)."""
    alerts = []
    for equipment in Equipment.objects.for_tenant(tenant_id).active().order_by('name', 'pk'):
        alerts.extend(alerts_for(equipment))

    # sort() is stable: name order survives within a severity
    alerts.sort(key=lambda a: SEVERITY_ORDER[a.severity])

    for alert in alerts:
        if alert.severity == CRITICAL:
            logger.warning(
                "stock.alert.triggered",
                extra={
                    "tenant_id": tenant_id,
                    "alert_id": alert.id,
                    "type": alert.type,
                    "equipment_id": alert.equipment_id,
                },
            )

    def count(kind):
        return sum(1 for a in alerts if a.type == kind)

    return AlertReport(
        alerts=alerts,
        out_of_stock_count=count(OUT_OF_STOCK),
        low_stock_count=count(LOW_STOCK),
        damaged_count=count(DAMAGED),
        in_maintenance_count=count(MAINTENANCE),
    )


class StockAlerts:
    """Alert methods exposed on the Stock facade."""

    @classmethod
    def get_alerts(cls, tenant_id) -> AlertReport:
        """
        Alerts for every non-INACTIVE equipment of the tenant.

        OUT_OF_STOCK (critical): available == 0
        LOW_STOCK (warning):     0 < available <= min_stock_level
        DAMAGED (warning):       damaged > 0
        MAINTENANCE (info):      maintenance > 0
        """
        ttl = equipstock_settings.ALERTS_CACHE_TTL
        if not ttl:
            return build_alerts(tenant_id)

        key = alerts_cache_key(tenant_id)
        report = _cache().get(key)
        if report is None:
            report = build_alerts(tenant_id)
            _cache().set(key, report, ttl)
        return report
