"""
Alertas de lotes por vencer / vencidos y de stock bajo.

Usa las funciones RPC `get_expiring_batches` y `get_expired_batches` cuando
existen en la base de datos; si no, recalcula las alertas a partir de las
tablas `product_batches` y `products`.
"""

import logging
import os
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from backend.database import FunctionNotFoundError, SupabaseClient, SupabaseError
from backend.models import (
    BatchAlert,
    BatchAlertType,
    BatchAlertsResult,
    LowStockAlert,
    LowStockAlerts,
    LowStockBatchAlert,
)

logger = logging.getLogger(__name__)

EXPIRY_DAYS_AHEAD = int(os.getenv("EXPIRY_DAYS_AHEAD", "30"))
DEFAULT_PRODUCT_NAME = "Producto"

# Fallos remotos y filas con forma inesperada
ROW_ERRORS = (SupabaseError, ValueError, KeyError, TypeError, AttributeError)


def parse_date(value) -> Optional[date]:
    """Convertir el valor de una columna date/timestamptz a `date`"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def classify_batch(expiration: date, today: date, days_ahead: int = EXPIRY_DAYS_AHEAD) -> Tuple[Optional[BatchAlertType], int]:
    """
    Clasificar un lote respecto al inicio del día de hoy.

    Devuelve (tipo, días). Las fechas son días completos, así que la
    diferencia en días ya es el techo de la diferencia en milisegundos.
    """
    delta = (expiration - today).days
    if delta < 0:
        return BatchAlertType.EXPIRED, -delta
    if delta <= days_ahead:
        return BatchAlertType.EXPIRING, delta
    return None, 0


def per_batch_threshold(min_stock: int, num_batches: int) -> int:
    """Umbral por lote: min_stock / num_lotes acotado entre 1 y 10 (política de negocio)"""
    return max(1, min(10, (min_stock or 0) // max(1, num_batches)))


def _to_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class BatchAlerts:
    """Estado de las alertas de lotes de una pantalla"""

    def __init__(self, client: SupabaseClient, days_ahead: int = EXPIRY_DAYS_AHEAD):
        self.client = client
        self.days_ahead = days_ahead
        self.expiring_batches: List[BatchAlert] = []
        self.expired_batches: List[BatchAlert] = []
        self.loading = False
        self.error: Optional[str] = None
        self.functions_available = False

    def result(self) -> BatchAlertsResult:
        return BatchAlertsResult(
            expiring_batches=self.expiring_batches,
            expired_batches=self.expired_batches,
            functions_available=self.functions_available,
            error=self.error,
        )

    def fetch_batch_alerts(self, today: date = None) -> BatchAlertsResult:
        """Cargar alertas de lotes. Nunca lanza: los fallos quedan en `self.error`"""
        today = today or date.today()
        self.loading = True
        self.error = None
        try:
            return self._load(today)
        finally:
            self.loading = False

    def _load(self, today: date) -> BatchAlertsResult:
        try:
            expiring_rows = self.client.rpc("get_expiring_batches", {"days_ahead": self.days_ahead})
            expired_rows = self.client.rpc("get_expired_batches")
            if not isinstance(expiring_rows, list) or not isinstance(expired_rows, list):
                raise SupabaseError("Respuesta inesperada de las funciones de lotes")

            self.expiring_batches = [self._from_rpc_row(row, BatchAlertType.EXPIRING) for row in expiring_rows]
            self.expired_batches = [self._from_rpc_row(row, BatchAlertType.EXPIRED) for row in expired_rows]
            self.functions_available = True
            return self.result()

        except FunctionNotFoundError:
            logger.info("Funciones de lotes no implementadas, usando fallback")
            cause = None
        except ROW_ERRORS as err:
            logger.error("Error obteniendo alertas de lotes: %s", err)
            cause = err

        self.functions_available = False
        try:
            self._fallback_from_tables(today)
        except ROW_ERRORS as fallback_err:
            logger.error("Fallback de alertas de lotes fallido: %s", fallback_err)
            self.error = str(fallback_err) or str(cause or "") or "Error al obtener alertas"
            self.expiring_batches = []
            self.expired_batches = []

        return self.result()

    @staticmethod
    def _from_rpc_row(row: Dict, alert_type: BatchAlertType) -> BatchAlert:
        if not isinstance(row, dict):
            raise SupabaseError(f"Fila de lote inesperada: {row!r}")
        return BatchAlert(
            product_id=row["product_id"],
            product_name=row["product_name"],
            product_code=row.get("product_code") or "",
            batch_number=row["batch_number"],
            quantity=row["quantity"],
            expiration_date=parse_date(row["expiration_date"]),
            days_until_expiry=row.get("days_until_expiry") if alert_type == BatchAlertType.EXPIRING else None,
            days_expired=row.get("days_expired") if alert_type == BatchAlertType.EXPIRED else None,
            type=alert_type,
        )

    def _fallback_from_tables(self, today: date) -> None:
        """Calcular las alertas directamente desde las tablas"""
        batches = self.client.select("product_batches", "product_id,batch_number,quantity,expiration_date")
        products = self.client.select("products", "id,name,code")
        lookup = {str(p["id"]): (p.get("name"), p.get("code")) for p in products}

        expiring: List[BatchAlert] = []
        expired: List[BatchAlert] = []
        for batch in batches:
            if not isinstance(batch, dict):
                raise SupabaseError(f"Fila de lote inesperada: {batch!r}")
            expiration = parse_date(batch.get("expiration_date"))
            if expiration is None:
                continue

            alert_type, days = classify_batch(expiration, today, self.days_ahead)
            if alert_type is None:
                continue

            product_id = str(batch["product_id"])
            name, code = lookup.get(product_id, (None, None))
            alert = BatchAlert(
                product_id=product_id,
                product_name=name or DEFAULT_PRODUCT_NAME,
                product_code=code or "",
                batch_number=batch["batch_number"],
                quantity=_to_int(batch.get("quantity")),
                expiration_date=expiration,
                days_until_expiry=days if alert_type == BatchAlertType.EXPIRING else None,
                days_expired=days if alert_type == BatchAlertType.EXPIRED else None,
                type=alert_type,
            )
            if alert_type == BatchAlertType.EXPIRED:
                expired.append(alert)
            else:
                expiring.append(alert)

        logger.info("Fallback de lotes: %d por vencer, %d vencidos", len(expiring), len(expired))
        self.expiring_batches = expiring
        self.expired_batches = expired

    def get_low_stock_alerts(self) -> LowStockAlerts:
        """
        Alertas de stock bajo por producto y por lote.

        Las dos clases se devuelven por separado; quien llama decide cómo
        combinarlas. Lanza `SupabaseError` si falla la lectura.
        """
        products = self.client.select("products", "id,name,code,current_stock,min_stock")
        batches = self.client.select("product_batches", "product_id,batch_number,quantity") if products else []

        id_to_product = {str(p["id"]): p for p in products}

        product_alerts = [
            LowStockAlert(
                product_id=str(p["id"]),
                product_name=p.get("name") or DEFAULT_PRODUCT_NAME,
                product_code=p.get("code") or "",
                current_stock=max(0, _to_int(p.get("current_stock"))),
                min_stock=_to_int(p.get("min_stock")),
            )
            for p in products
            if _to_int(p.get("min_stock")) > 0 and _to_int(p.get("current_stock")) <= _to_int(p.get("min_stock"))
        ]

        grouped: Dict[str, List[Dict]] = {}
        for b in batches:
            grouped.setdefault(str(b["product_id"]), []).append(b)

        batch_alerts: List[LowStockBatchAlert] = []
        for product_id, batch_list in grouped.items():
            product = id_to_product.get(product_id, {})
            threshold = per_batch_threshold(_to_int(product.get("min_stock")), len(batch_list))
            for b in batch_list:
                if _to_int(b.get("quantity")) <= threshold:
                    batch_alerts.append(LowStockBatchAlert(
                        product_id=product_id,
                        product_name=product.get("name") or DEFAULT_PRODUCT_NAME,
                        product_code=product.get("code") or "",
                        batch_number=b["batch_number"],
                        batch_quantity=_to_int(b.get("quantity")),
                        per_batch_threshold=threshold,
                    ))

        return LowStockAlerts(product_alerts=product_alerts, batch_alerts=batch_alerts)
