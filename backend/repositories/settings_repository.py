"""Repositorio de la configuración general de la plataforma (tbl_app_general_settings, una fila)."""

from typing import Optional

from backend.models import AppGeneralSettings
from backend.repositories.base_repository import BaseRepository


class SettingsRepository(BaseRepository):
    TABLE_SETTINGS = "tbl_app_general_settings"

    def __init__(self, client) -> None:
        super().__init__(client=client, table_name=self.TABLE_SETTINGS, pk_column="id")

    def get_general_settings(self) -> Optional[AppGeneralSettings]:
        """Fila más reciente de configuración, o None si la tabla está vacía."""
        response = (
            self._table()
            .select("*")
            .order(self._pk_column, desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return AppGeneralSettings.model_validate(response.data[0])
