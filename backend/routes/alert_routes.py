"""
Rutas de alertas del dashboard: lotes por vencer/vencidos y stock bajo
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.database import SupabaseClient, SupabaseError, get_client
from backend.utils.batch_alerts import BatchAlerts
from backend.views import DashboardView

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/dashboard/alertas")
def get_dashboard_alertas(
    vista: str = Query("stock", pattern="^(stock|lotes)$", description="stock = stock bajo, lotes = por vencer/vencidos"),
    client: SupabaseClient = Depends(get_client),
):
    """Feed de alertas del dashboard en una de sus dos vistas"""
    view = DashboardView(client)
    view.show_batches = vista == "lotes"
    view.refresh()
    return view.summary()


@router.get("/alertas/lotes")
def get_alertas_lotes(client: SupabaseClient = Depends(get_client)):
    """Lotes por vencer (30 días) y vencidos"""
    alerts = BatchAlerts(client)
    result = alerts.fetch_batch_alerts()
    return result.model_dump(mode="json")


@router.get("/alertas/stock-bajo")
def get_alertas_stock_bajo(client: SupabaseClient = Depends(get_client)):
    """Alertas de stock bajo por producto y por lote"""
    try:
        alerts = BatchAlerts(client).get_low_stock_alerts()
    except SupabaseError as e:
        logger.error(f"Error en alertas de stock bajo: {e}")
        raise HTTPException(status_code=502, detail=f"Error obteniendo alertas de stock bajo: {e}")
    return alerts.model_dump(mode="json")
