"""
Repositorio base para tablas de Supabase.

Operaciones genéricas por clave primaria. Los repositorios de dominio heredan
de aquí y devuelven modelos Pydantic en lugar de dicts.
"""

from typing import Any, Dict, List, Optional

from supabase import Client


class BaseRepository:
    """
    Repositorio base sobre una tabla con una clave primaria.

    Inicialización con el cliente de Supabase, nombre de tabla y columna PK.
    """

    def __init__(
        self,
        client: Client,
        table_name: str,
        pk_column: str = "id",
    ) -> None:
        self._client = client
        self._table_name = table_name
        self._pk_column = pk_column

    def _table(self):
        return self._client.table(self._table_name)

    def get_all(
        self,
        select: str = "*",
        order_by: Optional[str] = None,
        order_desc: bool = False,
        **extra_eq: Any,
    ) -> List[Dict[str, Any]]:
        """
        Lista registros de la tabla.

        extra_eq: filtros .eq(key, value) aplicados a la consulta.
        """
        query = self._table().select(select)
        for key, value in extra_eq.items():
            query = query.eq(key, value)
        if order_by:
            query = query.order(order_by, desc=order_desc)
        response = query.execute()
        return list(response.data or [])

    def get_by_id(
        self,
        pk_value: Any,
        select: str = "*",
    ) -> Optional[Dict[str, Any]]:
        """Obtiene un registro por su clave primaria, o None."""
        response = (
            self._table()
            .select(select)
            .eq(self._pk_column, pk_value)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Inserta un registro y devuelve la fila creada."""
        response = self._table().insert(data).execute()
        if not response.data:
            raise RuntimeError("Insert no devolvió datos.")
        return response.data[0] if isinstance(response.data, list) else response.data

    def update(self, pk_value: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        """Actualiza un registro por PK. La PK no se modifica aunque venga en data."""
        payload = {k: v for k, v in data.items() if k != self._pk_column}
        if not payload:
            row = self.get_by_id(pk_value)
            if not row:
                raise ValueError("Registro no encontrado.")
            return row
        response = (
            self._table()
            .update(payload)
            .eq(self._pk_column, pk_value)
            .execute()
        )
        if not response.data:
            raise ValueError("Registro no encontrado o sin cambios.")
        return response.data[0] if isinstance(response.data, list) else response.data
