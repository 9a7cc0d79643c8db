"""
Bandeja de salida de correos (tbl_email_outbox).

El backend no envía correo: deja una fila por envío con la plantilla y sus
datos, y el servicio de correo de la plataforma la procesa.
"""

from typing import Any, Dict, List

from backend.repositories.base_repository import BaseRepository
from backend.utils import to_json_value


class EmailOutboxRepository(BaseRepository):
    """Implementa EmailSender sobre tbl_email_outbox."""

    TABLE_OUTBOX = "tbl_email_outbox"

    def __init__(self, client) -> None:
        super().__init__(client=client, table_name=self.TABLE_OUTBOX, pk_column="id")

    def send(self, recipients: List[str], subject: str, template_name: str, content: Dict[str, Any]) -> None:
        self.create({
            "recipients": list(recipients),
            "subject": subject,
            "template_name": template_name,
            "payload": {k: to_json_value(v) for k, v in content.items()},
            "status": "pending",
        })
