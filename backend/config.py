import logging
import os
from pathlib import Path

import structlog
from dotenv import load_dotenv
from supabase import Client, create_client

# Cargar .env desde la raíz del proyecto (donde se ejecuta uvicorn)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)
# Por si se ejecuta desde otra ruta, intentar también el cwd
load_dotenv()


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes")


SUPABASE_URL: str | None = os.environ.get("SUPABASE_URL")
SUPABASE_KEY: str | None = os.environ.get("SUPABASE_KEY")
SUPABASE_JWT_SECRET: str | None = os.environ.get("SUPABASE_JWT_SECRET")

# Desarrollo: si es "true", la API acepta peticiones sin token (usuario dummy).
SKIP_AUTH: bool = _env_flag("SKIP_AUTH")
# Si es "true", el manejador global devuelve el detalle de los errores 500.
DEBUG: bool = _env_flag("DEBUG")

LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()
# Destinatarios por lote en el aviso de nueva licitación a proveedores del sector.
EMAIL_BATCH_SIZE: int = int(os.environ.get("EMAIL_BATCH_SIZE", "100"))


def init_connection() -> Client:
    """
    Crea el cliente de Supabase a partir de SUPABASE_URL y SUPABASE_KEY.

    No se llama al importar el módulo: backend.database lo cachea la primera
    vez que una petición lo necesita.
    """
    if not SUPABASE_URL or not SUPABASE_KEY:
        raise RuntimeError(
            "Faltan las credenciales de Supabase. En el archivo .env (raíz del proyecto) define:\n"
            "  SUPABASE_URL=https://TU_PROJECT_REF.supabase.co\n"
            "  SUPABASE_KEY=eyJhbGciOiJIUzI1NiIsInR5cCI6... (anon o service_role key)\n"
            "Obtén ambos en: Supabase → tu proyecto → Settings → API."
        )
    url = SUPABASE_URL.strip()
    if not url.startswith("http://") and not url.startswith("https://"):
        raise RuntimeError(
            "SUPABASE_URL debe ser la URL completa del proyecto, por ejemplo:\n"
            "  https://abcdefgh.supabase.co\n"
            "En Settings → API copia 'Project URL' en SUPABASE_URL."
        )
    return create_client(url, SUPABASE_KEY)


def configure_logging(level: str = LOG_LEVEL, debug: bool = DEBUG) -> None:
    """
    Logs estructurados con structlog: consola legible con DEBUG=true, JSON en producción.
    Se llama una vez al arrancar la API.
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())

    min_level = logging.getLevelName(level)
    if not isinstance(min_level, int):
        min_level = logging.INFO

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )
