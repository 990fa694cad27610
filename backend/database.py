# backend/database.py
import os
import logging
from typing import Dict, List, Optional

import requests
from dotenv import load_dotenv

# Cargar variables de entorno
load_dotenv()

# Credenciales de Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")
SUPABASE_TIMEOUT = int(os.getenv("SUPABASE_TIMEOUT", "10"))

# Códigos con los que Postgres/PostgREST indican que una función RPC no existe
FUNCTION_NOT_FOUND_CODES = {"42883", "PGRST202"}

logger = logging.getLogger(__name__)


class SupabaseError(Exception):
    """Fallo de una petición a Supabase (red, permisos, esquema...)"""

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class FunctionNotFoundError(SupabaseError):
    """La función RPC solicitada no está definida en la base de datos"""


def classify_error(status_code: int, payload) -> SupabaseError:
    """Convertir una respuesta de error de PostgREST en una excepción tipada"""
    code = None
    if isinstance(payload, dict):
        code = payload.get("code")
        if "message" in payload:
            message = payload["message"]
        elif "error" in payload:
            message = payload["error"]
        elif "details" in payload:
            message = payload["details"]
        else:
            message = str(payload)
    else:
        message = str(payload)

    if code is not None and str(code) in FUNCTION_NOT_FOUND_CODES:
        return FunctionNotFoundError(message, code=str(code), status_code=status_code)
    return SupabaseError(message, code=str(code) if code is not None else None, status_code=status_code)


class SupabaseClient:
    """Cliente mínimo para la API REST de Supabase (PostgREST)"""

    def __init__(self, url: str = None, key: str = None, timeout: int = None, session: requests.Session = None):
        self.url = (url or SUPABASE_URL).rstrip("/")
        self.key = key or SUPABASE_KEY
        self.timeout = timeout or SUPABASE_TIMEOUT
        self.session = session or requests.Session()

    def get_headers(self) -> Dict[str, str]:
        """Headers para las peticiones a Supabase"""
        return {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    def get_supabase_url(self, endpoint: str, query: str = "") -> str:
        """Construir URL para Supabase REST API"""
        base_url = f"{self.url}/rest/v1/{endpoint}"
        return f"{base_url}?{query}" if query else base_url

    def _request(self, method: str, endpoint: str, data=None, query: str = ""):
        url = self.get_supabase_url(endpoint, query)
        logger.debug("REQUEST: %s %s | Query: '%s'", method, endpoint, query)

        try:
            response = self.session.request(
                method, url, headers=self.get_headers(), json=data, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            logger.error("⏱️ Timeout para %s: %s", endpoint, e)
            raise SupabaseError(f"Timeout conectando con Supabase: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error("🔄 Error de conectividad para %s: %s", endpoint, e)
            raise SupabaseError(f"Error de conexión: {e}") from e

        if response.status_code >= 400:
            try:
                error_detail = response.json()
            except ValueError:
                error_detail = response.text[:300]
            error = classify_error(response.status_code, error_detail)
            logger.warning(
                "❌ ERROR HTTP %s para %s (code=%s): %s",
                response.status_code, endpoint, error.code, error.message,
            )
            raise error

        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as e:
            raise SupabaseError(f"Respuesta no JSON para {endpoint}", status_code=response.status_code) from e

    # ========== OPERACIONES DE TABLA ==========

    def select(self, table: str, columns: str = "*", filters: Optional[Dict[str, str]] = None,
               order: Optional[str] = None, limit: Optional[int] = None) -> List[Dict]:
        """Leer filas de una tabla. `filters` usa la sintaxis de PostgREST ({'id': 'eq.5'})"""
        parts = [f"select={columns}"]
        for column, condition in (filters or {}).items():
            parts.append(f"{column}={condition}")
        if order:
            parts.append(f"order={order}")
        if limit is not None:
            parts.append(f"limit={limit}")
        result = self._request("GET", table, query="&".join(parts))
        if not isinstance(result, list):
            raise SupabaseError(f"Respuesta inesperada al leer {table}")
        return result

    def insert(self, table: str, rows: List[Dict]) -> List[Dict]:
        """Insertar filas y devolver su representación almacenada"""
        return self._request("POST", table, data=rows)

    def update(self, table: str, values: Dict, filters: Dict[str, str]) -> List[Dict]:
        """Actualizar las filas que cumplan `filters`"""
        query = "&".join(f"{column}={condition}" for column, condition in filters.items())
        return self._request("PATCH", table, data=values, query=query)

    def delete(self, table: str, filters: Dict[str, str]) -> List[Dict]:
        """Eliminar las filas que cumplan `filters`"""
        query = "&".join(f"{column}={condition}" for column, condition in filters.items())
        return self._request("DELETE", table, query=query)

    def rpc(self, function: str, params: Optional[Dict] = None):
        """Llamar a una función de base de datos expuesta por PostgREST"""
        return self._request("POST", f"rpc/{function}", data=params or {})

    def test_connection(self) -> bool:
        """Función para probar la conexión"""
        try:
            self.select("products", "id", limit=1)
            logger.info("✅ Conexión a Supabase exitosa")
            return True
        except SupabaseError as e:
            logger.error("❌ Error conectando a Supabase: %s", e)
            return False


def get_client() -> SupabaseClient:
    """Dependencia para obtener el cliente de datos"""
    return SupabaseClient()
