"""
Repositorio de licitaciones (tbl_bids) y sus regiones/sectores.

Las regiones y sectores se guardan como arrays en la propia fila
(region_ids, industry_ids).
"""

from typing import Any, Dict, Optional

from backend.models import Bid
from backend.repositories.base_repository import BaseRepository
from backend.utils import to_json_value

# Columnas que no se escriben: PK, auditoría y el nombre de la entidad (viene de la vista)
READ_ONLY_COLUMNS = {"id", "creation_date", "organization_name"}


class BidsRepository(BaseRepository):
    """Repositorio de tbl_bids con PK id."""

    TABLE_BIDS = "tbl_bids"

    def __init__(self, client) -> None:
        super().__init__(client=client, table_name=self.TABLE_BIDS, pk_column="id")

    def get_bid(self, bid_id: int) -> Optional[Bid]:
        row = self.get_by_id(bid_id)
        return Bid.model_validate(row) if row else None

    def create_bid(self, data: Dict[str, Any]) -> Bid:
        row = self.create(self._to_row(data))
        return Bid.model_validate(row)

    def update_bid(self, bid_id: int, data: Dict[str, Any]) -> Bid:
        row = self.update(bid_id, self._to_row(data))
        return Bid.model_validate(row)

    @staticmethod
    def _to_row(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            k: to_json_value(v)
            for k, v in data.items()
            if k not in READ_ONLY_COLUMNS
        }
