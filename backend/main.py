"""
Backend FastAPI para el Panel de Administración POS / Inventario
Alertas de lotes y stock, visor de auditoría y CRUD de proveedores sobre Supabase
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime
import os
import time
import logging
from dotenv import load_dotenv

from backend.database import SupabaseError
from backend.routes import alert_routes, audit_routes, supplier_routes

# Cargar variables de entorno
load_dotenv()

# Configurar logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Configuración para producción
PORT = int(os.environ.get("PORT", 8000))

# ========== CONFIGURACIÓN FASTAPI ==========
app = FastAPI(
    title="POS Admin API",
    description="Panel de administración: alertas, auditoría y proveedores",
    version="1.0.0"
)

app.include_router(alert_routes.router, tags=["alertas"])
app.include_router(audit_routes.router)
app.include_router(supplier_routes.router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("ALLOWED_ORIGINS", "http://localhost:5173").split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)


# Middleware de logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    client_ip = request.client.host if request.client else "-"

    response = await call_next(request)

    process_time = time.time() - start_time

    logger.info(
        f"IP: {client_ip} | "
        f"Method: {request.method} | "
        f"URL: {request.url.path} | "
        f"Status: {response.status_code} | "
        f"Time: {process_time:.3f}s"
    )

    if response.status_code >= 500:
        logger.warning(
            f"Server error - URL: {request.url.path} | "
            f"Status: {response.status_code}"
        )

    return response


@app.exception_handler(SupabaseError)
async def supabase_error_handler(request: Request, exc: SupabaseError):
    logger.error(f"Error de Supabase no manejado en {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"error": "Error en la base de datos remota", "detail": exc.message, "code": exc.code},
    )


# ========== ENDPOINTS DE SALUD ==========

@app.get("/")
async def root():
    """Endpoint raíz - Verificación de salud"""
    return {
        "message": "POS Admin API",
        "version": "1.0.0",
        "status": "online",
        "timestamp": datetime.now().isoformat()
    }


@app.get("/health")
async def health_check():
    """Verificación de salud del sistema"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
