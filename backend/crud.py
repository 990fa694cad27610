import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from backend.database import SupabaseClient, SupabaseError
from backend.models import AuditEntry, AuditEntryCreate, Supplier, SupplierInput

logger = logging.getLogger(__name__)

AUDIT_FETCH_LIMIT = int(os.getenv("AUDIT_FETCH_LIMIT", "1000"))


class SupplierValidationError(ValueError):
    """Datos de proveedor no válidos; no se llega a hacer ninguna petición"""


def _optional(value: Optional[str]) -> Optional[str]:
    # Los campos vacíos se guardan como NULL, nunca como cadena vacía
    if value is None:
        return None
    value = value.strip()
    return value or None


def supplier_payload(data: SupplierInput) -> Dict:
    """Validar y construir la fila a enviar a la tabla suppliers"""
    name = (data.name or "").strip()
    if not name:
        raise SupplierValidationError("Nombre es requerido")

    return {
        "name": name,
        "document_type": data.document_type.value,
        "document_number": _optional(data.document_number),
        "email": _optional(data.email),
        "phone": _optional(data.phone),
        "address": _optional(data.address),
        "notes": _optional(data.notes),
        "is_active": data.is_active,
    }


def _single(rows, table: str) -> Dict:
    if not rows:
        raise SupabaseError(f"La operación sobre {table} no devolvió filas", status_code=404)
    return rows[0]


class SupplierRegistry:
    """Proveedores: lista local que se mantiene igual a la remota tras cada cambio confirmado"""

    def __init__(self, client: SupabaseClient):
        self.client = client
        self.suppliers: List[Supplier] = []
        self.loading = False
        self.error: Optional[str] = None

    def fetch_suppliers(self) -> List[Supplier]:
        """Obtener proveedores, del más reciente al más antiguo"""
        self.loading = True
        self.error = None
        try:
            rows = self.client.select("suppliers", "*", order="created_at.desc")
            self.suppliers = [Supplier.from_db(row) for row in rows]
        except SupabaseError as e:
            logger.error("Error al cargar proveedores: %s", e)
            self.error = e.message or "Error al cargar proveedores"
        finally:
            self.loading = False
        return self.suppliers

    def get_supplier(self, supplier_id: str) -> Optional[Supplier]:
        return next((s for s in self.suppliers if s.id == str(supplier_id)), None)

    def add_supplier(self, data: SupplierInput) -> Supplier:
        """Crear proveedor y añadirlo al inicio de la lista"""
        payload = supplier_payload(data)
        created = Supplier.from_db(_single(self.client.insert("suppliers", [payload]), "suppliers"))
        self.suppliers = [created] + self.suppliers
        logger.info("✅ Proveedor creado: %s (%s)", created.name, created.id)
        return created

    def update_supplier(self, supplier_id: str, data: SupplierInput) -> Supplier:
        """Actualizar proveedor por id, refrescando updated_at"""
        payload = supplier_payload(data)
        payload["updated_at"] = datetime.now(timezone.utc).isoformat()
        rows = self.client.update("suppliers", payload, {"id": f"eq.{supplier_id}"})
        updated = Supplier.from_db(_single(rows, "suppliers"))
        self.suppliers = [updated if s.id == updated.id else s for s in self.suppliers]
        logger.info("✅ Proveedor actualizado: %s", updated.id)
        return updated

    def delete_supplier(self, supplier_id: str) -> None:
        """Eliminar proveedor por id"""
        rows = self.client.delete("suppliers", {"id": f"eq.{supplier_id}"})
        if not rows:
            raise SupabaseError("Proveedor no encontrado", status_code=404)
        self.suppliers = [s for s in self.suppliers if s.id != str(supplier_id)]
        logger.info("🗑️ Proveedor eliminado: %s", supplier_id)


class AuditLogRepository:
    """Lectura y escritura de la tabla audit_logs"""

    def __init__(self, client: SupabaseClient):
        self.client = client

    def fetch_audit_entries(self, limit: int = AUDIT_FETCH_LIMIT) -> List[AuditEntry]:
        rows = self.client.select("audit_logs", "*", order="created_at.desc", limit=limit)
        return [AuditEntry.from_db(row) for row in rows]

    def add_audit_entry(self, entry: AuditEntryCreate) -> AuditEntry:
        rows = self.client.insert("audit_logs", [entry.to_db()])
        return AuditEntry.from_db(_single(rows, "audit_logs"))
