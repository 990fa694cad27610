"""
Filtros del visor de auditoría.

Todo se calcula en memoria sobre las entradas ya cargadas; ninguna de estas
funciones hace peticiones.
"""

from datetime import datetime, timedelta
from io import BytesIO
from typing import Dict, List, Optional

import pandas as pd

from backend.models import AuditEntry

ALL = "all"
DATE_RANGES = {"all", "today", "week", "month"}


def _aware(ts: datetime) -> datetime:
    # Los timestamps sin zona se interpretan como hora local
    return ts if ts.tzinfo is not None else ts.astimezone()


def start_of_today(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def date_window_start(date_range: str, now: datetime) -> Optional[datetime]:
    """Inicio de la ventana de fechas, o None si no hay que filtrar"""
    if date_range == "today":
        return start_of_today(now)
    if date_range == "week":
        return now - timedelta(days=7)
    if date_range == "month":
        return now - timedelta(days=30)
    if date_range == ALL:
        return None
    raise ValueError(f"Rango de fechas no válido: {date_range}")


def matches_search(entry: AuditEntry, term: str) -> bool:
    term = term.lower()
    fields = (entry.details, entry.username, entry.entity, entry.action)
    return any(term in value.lower() for value in fields if value)


def filter_audit_entries(
    entries: List[AuditEntry],
    search: str = "",
    entity: str = ALL,
    action: str = ALL,
    username: str = ALL,
    date_range: str = ALL,
    now: datetime = None,
) -> List[AuditEntry]:
    """
    Aplicar búsqueda, filtros de igualdad y ventana de fechas.

    El resultado siempre sale ordenado del más reciente al más antiguo.
    """
    now = _aware(now or datetime.now().astimezone())
    filtered = list(entries)

    if search:
        filtered = [e for e in filtered if matches_search(e, search)]

    if entity != ALL:
        filtered = [e for e in filtered if e.entity == entity]

    if action != ALL:
        filtered = [e for e in filtered if e.action == action]

    if username != ALL:
        filtered = [e for e in filtered if e.username == username]

    window_start = date_window_start(date_range, now)
    if window_start is not None:
        filtered = [e for e in filtered if _aware(e.timestamp) >= window_start]

    filtered.sort(key=lambda e: _aware(e.timestamp), reverse=True)
    return filtered


def entity_stats(entries: List[AuditEntry]) -> List[Dict]:
    """Número de entradas por entidad"""
    stats: Dict[str, int] = {}
    for entry in entries:
        stats[entry.entity] = stats.get(entry.entity, 0) + 1
    return [{"entity": entity, "count": count} for entity, count in stats.items()]


def count_today(entries: List[AuditEntry], now: datetime = None) -> int:
    """Entradas registradas desde el inicio del día"""
    today = start_of_today(_aware(now or datetime.now().astimezone()))
    return len([e for e in entries if _aware(e.timestamp) >= today])


def distinct_values(entries: List[AuditEntry], field: str) -> List[str]:
    """Valores distintos de un campo, para poblar los selectores de filtro"""
    return sorted({getattr(e, field) for e in entries if getattr(e, field)})


# ========== EXPORTACIÓN ==========

EXPORT_COLUMNS = {
    "timestamp": "Fecha",
    "username": "Usuario",
    "action": "Acción",
    "entity": "Entidad",
    "entity_name": "Nombre",
    "details": "Detalles",
}


def audit_entries_df(entries: List[AuditEntry]) -> pd.DataFrame:
    """Entradas de auditoría como DataFrame con columnas legibles"""
    if not entries:
        return pd.DataFrame(columns=list(EXPORT_COLUMNS.values()))
    df = pd.DataFrame([e.model_dump(include=set(EXPORT_COLUMNS)) for e in entries])
    # Excel no admite fechas con zona horaria
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True).dt.tz_localize(None)
    return df[list(EXPORT_COLUMNS)].rename(columns=EXPORT_COLUMNS)


def export_audit_xlsx(entries: List[AuditEntry]) -> bytes:
    """Generar un libro Excel con las entradas"""
    output = BytesIO()
    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        df = audit_entries_df(entries)
        df.to_excel(writer, sheet_name="Auditoria", index=False)
        worksheet = writer.sheets["Auditoria"]
        for idx, column in enumerate(df.columns):
            width = max([len(str(column))] + [len(str(v)) for v in df[column].head(200)])
            worksheet.set_column(idx, idx, min(width + 2, 80))
    return output.getvalue()
