from pathlib import Path

from dotenv import load_dotenv

# Cargar .env antes que nada (por si uvicorn arranca desde otra ruta)
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import DEBUG, SKIP_AUTH, configure_logging
from backend.routers import bids


logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Bids API",
    version="1.0.0",
    description="API REST de licitaciones: alta, revisión, plazos y precio del pliego.",
)


# CORS: permitir frontend en localhost
origins = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:3001",
]

# Manejador global: en producción no exponer detail del 500; solo si DEBUG=true
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    detail = str(exc) if DEBUG else "Internal Server Error"
    return JSONResponse(status_code=500, content={"detail": detail})


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Registro de routers bajo /api para que el frontend llame a /api/bids, etc.
app.include_router(bids.router, prefix="/api")


@app.get("/")
def root() -> dict:
    """Health check sencillo para verificar que el backend está levantado."""
    return {"status": "ok"}


@app.on_event("startup")
def startup():
    """Configura los logs y avisa del modo desarrollo al arrancar."""
    configure_logging()
    if SKIP_AUTH:
        logger.warning("skip_auth_enabled", detail="La API acepta peticiones sin token")


__all__ = ["app"]
