"""
Controladores de pantalla: cada uno es dueño de su estado (datos, carga,
error) y lo reemplaza completo en cada recarga.
"""

import logging
from datetime import date, datetime
from typing import List, Optional

from backend.crud import AuditLogRepository
from backend.database import SupabaseClient, SupabaseError
from backend.models import AuditEntry, UnifiedAlert
from backend.utils.alert_feed import AlertFeed, build_alert_feed
from backend.utils.audit_filter import ALL, count_today, distinct_values, entity_stats, filter_audit_entries
from backend.utils.batch_alerts import BatchAlerts

logger = logging.getLogger(__name__)


class DashboardView:
    def __init__(self, client: SupabaseClient):
        self.client = client
        self.batch_alerts = BatchAlerts(client)
        self.products: List[dict] = []
        self.external_alerts: List[UnifiedAlert] = []
        self.feed = AlertFeed()
        self.show_batches = False
        self.loading = False
        self.error: Optional[str] = None

    def refresh(self, today: date = None, now: datetime = None) -> AlertFeed:
        """Recargar productos y lotes y reconstruir el feed"""
        self.loading = True
        self.error = None
        try:
            self.products = self.client.select(
                "products", "id,name,code,current_stock,min_stock,updated_at"
            )
        except SupabaseError as e:
            logger.error("Error cargando productos para el dashboard: %s", e)
            self.error = e.message
            self.products = []

        # Las alertas de lotes tienen su propio slot de error
        self.batch_alerts.fetch_batch_alerts(today=today)
        self.feed = build_alert_feed(
            self.products,
            self.batch_alerts.expiring_batches,
            self.batch_alerts.expired_batches,
            self.external_alerts,
            now=now,
        )
        self.loading = False
        return self.feed

    @property
    def visible_alerts(self) -> List[UnifiedAlert]:
        return self.feed.presentation(self.show_batches)

    @property
    def unread_count(self) -> int:
        return self.feed.unread_count

    @property
    def functions_available(self) -> bool:
        return self.batch_alerts.functions_available

    def summary(self) -> dict:
        return {
            "vista": "lotes" if self.show_batches else "stock",
            "alertas": [a.model_dump(mode="json") for a in self.visible_alerts],
            "total_stock_bajo": len(self.feed.low_stock_alerts),
            "total_lotes": len(self.feed.batch_alerts),
            "no_leidas": self.unread_count,
            "funciones_disponibles": self.functions_available,
            "error": self.error,
            "error_lotes": self.batch_alerts.error,
        }


class AuditLogView:
    def __init__(self, client: SupabaseClient):
        self.repository = AuditLogRepository(client)
        self.entries: List[AuditEntry] = []
        self.loading = False
        self.error: Optional[str] = None

        self.search = ""
        self.entity = ALL
        self.action = ALL
        self.username = ALL
        self.date_range = ALL

    def load(self) -> List[AuditEntry]:
        self.loading = True
        self.error = None
        try:
            self.entries = self.repository.fetch_audit_entries()
        except SupabaseError as e:
            logger.error("Error al cargar datos de auditoría: %s", e)
            self.error = e.message or "Error al cargar datos de auditoría"
        finally:
            self.loading = False
        return self.entries

    @property
    def filtered_entries(self) -> List[AuditEntry]:
        # Se recalcula completo en cada acceso
        return filter_audit_entries(
            self.entries,
            search=self.search,
            entity=self.entity,
            action=self.action,
            username=self.username,
            date_range=self.date_range,
        )

    def stats(self) -> dict:
        return {
            "total": len(self.entries),
            "hoy": count_today(self.entries),
            "por_entidad": entity_stats(self.entries),
            "entidades": distinct_values(self.entries, "entity"),
            "acciones": distinct_values(self.entries, "action"),
            "usuarios": distinct_values(self.entries, "username"),
        }
