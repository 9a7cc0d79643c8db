from functools import lru_cache

from supabase import Client

from backend.config import init_connection


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
  """
  Devuelve un cliente Supabase singleton para todo el proceso FastAPI.

  Se crea en la primera llamada, así importar la API (o los tests) no exige
  credenciales en el entorno.
  """
  return init_connection()


__all__ = ["get_supabase_client"]
