"""
Rutas CRUD de proveedores
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from backend.crud import SupplierRegistry, SupplierValidationError
from backend.database import SupabaseClient, SupabaseError, get_client
from backend.models import SupplierInput

router = APIRouter(prefix="/proveedores", tags=["proveedores"])

logger = logging.getLogger(__name__)


def _raise_remote(e: SupabaseError, accion: str):
    if e.status_code == 404:
        raise HTTPException(status_code=404, detail="Proveedor no encontrado")
    logger.error(f"Error {accion} proveedor: {e}")
    raise HTTPException(status_code=502, detail=f"Error {accion} proveedor: {e}")


@router.get("")
def get_proveedores(client: SupabaseClient = Depends(get_client)):
    """Listar proveedores, del más reciente al más antiguo"""
    registry = SupplierRegistry(client)
    suppliers = registry.fetch_suppliers()
    if registry.error:
        raise HTTPException(status_code=502, detail=registry.error)
    return [s.model_dump(mode="json") for s in suppliers]


@router.post("", status_code=201)
def create_proveedor(data: SupplierInput, client: SupabaseClient = Depends(get_client)):
    """Crear proveedor"""
    try:
        created = SupplierRegistry(client).add_supplier(data)
    except SupplierValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SupabaseError as e:
        _raise_remote(e, "guardando")
    return created.model_dump(mode="json")


@router.put("/{proveedor_id}")
def update_proveedor(proveedor_id: str, data: SupplierInput, client: SupabaseClient = Depends(get_client)):
    """Actualizar proveedor"""
    try:
        updated = SupplierRegistry(client).update_supplier(proveedor_id, data)
    except SupplierValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SupabaseError as e:
        _raise_remote(e, "actualizando")
    return updated.model_dump(mode="json")


@router.delete("/{proveedor_id}", status_code=204)
def delete_proveedor(proveedor_id: str, client: SupabaseClient = Depends(get_client)):
    """Eliminar proveedor"""
    try:
        SupplierRegistry(client).delete_supplier(proveedor_id)
    except SupabaseError as e:
        _raise_remote(e, "eliminando")
