"""
Rutas del visor de auditoría
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from backend.crud import AuditLogRepository
from backend.database import SupabaseClient, SupabaseError, get_client
from backend.models import AuditEntryCreate
from backend.utils.audit_filter import ALL, export_audit_xlsx
from backend.views import AuditLogView

router = APIRouter(prefix="/auditoria", tags=["auditoria"])

logger = logging.getLogger(__name__)


def _load_view(search, entity, action, username, date_range, client) -> AuditLogView:
    view = AuditLogView(client)
    view.load()
    if view.error:
        raise HTTPException(status_code=502, detail=view.error)

    view.search = search
    view.entity = entity
    view.action = action
    view.username = username
    view.date_range = date_range
    return view


@router.get("")
def get_auditoria(
    search: str = Query("", description="Texto a buscar en detalles, usuario, entidad y acción"),
    entity: str = Query(ALL),
    action: str = Query(ALL),
    username: str = Query(ALL),
    date_range: str = Query(ALL, pattern="^(all|today|week|month)$"),
    client: SupabaseClient = Depends(get_client),
):
    """Entradas de auditoría filtradas y estadísticas"""
    view = _load_view(search, entity, action, username, date_range, client)
    entries = view.filtered_entries
    return {
        "registros": [e.model_dump(mode="json") for e in entries],
        "total_filtrados": len(entries),
        "estadisticas": view.stats(),
    }


@router.post("")
def create_auditoria(entry: AuditEntryCreate, client: SupabaseClient = Depends(get_client)):
    """Registrar una entrada de auditoría"""
    try:
        created = AuditLogRepository(client).add_audit_entry(entry)
    except SupabaseError as e:
        raise HTTPException(status_code=502, detail=f"Error guardando auditoría: {e}")
    return created.model_dump(mode="json")


@router.get("/exportar")
def exportar_auditoria(
    search: str = Query(""),
    entity: str = Query(ALL),
    action: str = Query(ALL),
    username: str = Query(ALL),
    date_range: str = Query(ALL, pattern="^(all|today|week|month)$"),
    client: SupabaseClient = Depends(get_client),
):
    """Descargar las entradas filtradas como Excel"""
    view = _load_view(search, entity, action, username, date_range, client)
    content = export_audit_xlsx(view.filtered_entries)
    nombre_archivo = f"auditoria_{datetime.now().strftime('%Y%m%d_%H%M')}.xlsx"
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{nombre_archivo}"'},
    )
