"""
Feed unificado de alertas del dashboard: stock bajo, lotes por vencer y
lotes vencidos, más las alertas genéricas que lleguen de fuera.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from backend.models import BatchAlert, Severity, UnifiedAlert

# Días hasta el vencimiento a partir de los cuales un lote pasa a severidad alta
HIGH_SEVERITY_DAYS = 7


class AlertFeed(BaseModel):
    low_stock_alerts: List[UnifiedAlert] = []
    expiring_alerts: List[UnifiedAlert] = []
    expired_alerts: List[UnifiedAlert] = []
    external_alerts: List[UnifiedAlert] = []

    @property
    def all_alerts(self) -> List[UnifiedAlert]:
        return self.low_stock_alerts + self.expiring_alerts + self.expired_alerts + self.external_alerts

    @property
    def unread_count(self) -> int:
        """No leídas sobre todas las fuentes, sin importar la vista activa"""
        return len([a for a in self.all_alerts if not a.is_read])

    @property
    def batch_alerts(self) -> List[UnifiedAlert]:
        # Vencidos primero, luego por vencer
        return self.expired_alerts + self.expiring_alerts

    def presentation(self, show_batches: bool) -> List[UnifiedAlert]:
        """Las dos vistas excluyentes del panel de alertas"""
        return self.batch_alerts if show_batches else self.low_stock_alerts


def low_stock_alert(product: Dict, now: datetime) -> UnifiedAlert:
    stock = product.get("current_stock") or 0
    return UnifiedAlert(
        id=f"lowstock-{product['id']}",
        product_name=product.get("name") or "",
        message=f"Stock bajo ({stock} unidades)",
        severity=Severity.HIGH,
        created_at=product.get("updated_at") or now,
        is_read=False,
        type="lowstock",
    )


def expiring_batch_alert(batch: BatchAlert, now: datetime) -> UnifiedAlert:
    days = batch.days_until_expiry
    if days is not None:
        message = f"{batch.batch_number} por vencer en {days} días ({batch.quantity} unidades)"
    else:
        message = f"{batch.batch_number} próximo a vencer ({batch.quantity} unidades)"
    severity = Severity.HIGH if days is not None and days <= HIGH_SEVERITY_DAYS else Severity.MEDIUM

    return UnifiedAlert(
        id=f"expiring-batch-{batch.product_id}-{batch.batch_number}",
        product_name=batch.product_name,
        message=message,
        severity=severity,
        created_at=now,
        is_read=False,
        type="expiring_batch",
    )


def expired_batch_alert(batch: BatchAlert, now: datetime) -> UnifiedAlert:
    days = batch.days_expired if batch.days_expired is not None else "N/A"
    return UnifiedAlert(
        id=f"expired-batch-{batch.product_id}-{batch.batch_number}",
        product_name=batch.product_name,
        message=f"{batch.batch_number} vencido hace {days} días ({batch.quantity} unidades)",
        severity=Severity.HIGH,
        created_at=now,
        is_read=False,
        type="expired_batch",
    )


def is_low_stock(product: Dict) -> bool:
    return (product.get("current_stock") or 0) <= (product.get("min_stock") or 0)


def build_alert_feed(
    products: List[Dict],
    expiring_batches: List[BatchAlert],
    expired_batches: List[BatchAlert],
    external_alerts: Optional[List[UnifiedAlert]] = None,
    now: datetime = None,
) -> AlertFeed:
    """
    Construir el feed a partir de las filas de productos y las alertas de lotes.

    Los ids se derivan de la clave natural de cada condición, así que
    recalcular el feed con los mismos datos produce los mismos ids.
    """
    now = now or datetime.now()

    return AlertFeed(
        low_stock_alerts=[low_stock_alert(p, now) for p in products if is_low_stock(p)],
        expiring_alerts=[expiring_batch_alert(b, now) for b in expiring_batches],
        expired_alerts=[expired_batch_alert(b, now) for b in expired_batches],
        external_alerts=list(external_alerts or []),
    )
