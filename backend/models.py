# backend/models.py
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime, date
from typing import Any, Dict, List, Optional
from enum import Enum


class BatchAlertType(str, Enum):
    EXPIRING = "expiring"
    EXPIRED = "expired"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DocumentType(str, Enum):
    RUC = "RUC"
    DNI = "DNI"
    CE = "CE"


# ========== MODELOS DE ALERTAS DE LOTES ==========
class BatchAlert(BaseModel):
    product_id: str
    product_name: str
    product_code: str = ""
    batch_number: str
    quantity: int = Field(ge=0)
    expiration_date: date
    days_until_expiry: Optional[int] = Field(default=None, ge=0)
    days_expired: Optional[int] = Field(default=None, ge=0)
    type: BatchAlertType

    @field_validator("product_id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return str(value)

    @model_validator(mode="after")
    def _one_day_counter(self):
        if self.type == BatchAlertType.EXPIRING:
            if self.days_expired is not None:
                raise ValueError("Un lote por vencer no puede tener days_expired")
        elif self.days_until_expiry is not None:
            raise ValueError("Un lote vencido no puede tener days_until_expiry")
        return self


class BatchAlertsResult(BaseModel):
    expiring_batches: List[BatchAlert] = []
    expired_batches: List[BatchAlert] = []
    functions_available: bool = False
    error: Optional[str] = None


class LowStockAlert(BaseModel):
    """Alerta a nivel de producto (foto del momento en que se generó)"""
    product_id: str
    product_name: str
    product_code: str = ""
    current_stock: int = Field(ge=0)
    min_stock: int = Field(ge=0)
    type: str = "low_stock_product"


class LowStockBatchAlert(BaseModel):
    """Alerta a nivel de lote: cantidad del lote por debajo del umbral por lote"""
    product_id: str
    product_name: str
    product_code: str = ""
    batch_number: str
    batch_quantity: int
    per_batch_threshold: int
    type: str = "low_stock_batch"


class LowStockAlerts(BaseModel):
    product_alerts: List[LowStockAlert] = []
    batch_alerts: List[LowStockBatchAlert] = []


# ========== MODELOS PARA DASHBOARD ==========
class UnifiedAlert(BaseModel):
    id: str
    product_name: str
    message: str
    severity: Severity
    created_at: datetime
    is_read: bool = False
    type: str


# ========== MODELOS DE AUDITORÍA ==========
class AuditEntry(BaseModel):
    id: str
    timestamp: datetime
    user_id: Optional[str] = None
    username: Optional[str] = None
    action: str
    entity: str
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    details: str = ""
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_db(cls, row: Dict) -> "AuditEntry":
        """Transformar una fila de audit_logs"""
        return cls(
            id=str(row["id"]),
            timestamp=row["created_at"],
            user_id=row.get("user_id"),
            username=row.get("username"),
            action=row.get("action") or "",
            entity=row.get("entity") or "",
            entity_id=row.get("record_id"),
            entity_name=row.get("entity_name"),
            details=row.get("details") or "",
            old_value=row.get("old_data"),
            new_value=row.get("new_data"),
            metadata=row.get("metadata"),
        )


class AuditEntryCreate(BaseModel):
    user_id: Optional[str] = None
    username: Optional[str] = None
    action: str
    entity: str
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    details: str = ""
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_db(self) -> Dict:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "action": self.action,
            "entity": self.entity,
            "table_name": self.entity,
            "record_id": self.entity_id,
            "entity_name": self.entity_name,
            "details": self.details,
            "old_data": self.old_value,
            "new_data": self.new_value,
            "metadata": self.metadata,
        }


# ========== MODELOS DE PROVEEDORES ==========
class SupplierInput(BaseModel):
    name: str
    document_type: DocumentType = DocumentType.RUC
    document_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True


class Supplier(BaseModel):
    id: str
    name: str
    document_type: DocumentType = DocumentType.RUC
    document_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db(cls, row: Dict) -> "Supplier":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            document_type=row.get("document_type") or DocumentType.RUC,
            document_number=row.get("document_number") or None,
            email=row.get("email") or None,
            phone=row.get("phone") or None,
            address=row.get("address") or None,
            notes=row.get("notes") or None,
            is_active=bool(row.get("is_active")),
            created_at=row["created_at"],
            updated_at=row.get("updated_at") or row["created_at"],
        )
