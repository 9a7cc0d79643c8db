"""Modelos de los correos de licitaciones: contexto de envío y resultado."""

from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple

from pydantic import BaseModel, ConfigDict, Field

from backend.models import Bid, CurrentUser


class BidEmailType(str, Enum):
    """Tipos de correo; cada uno tiene su estrategia registrada."""

    BID_PUBLISHED = "bid_published"
    BID_REJECTED = "bid_rejected"
    BID_EXTENDED = "bid_extended"
    BID_UPDATED = "bid_updated"
    NEW_BID_INDUSTRY = "new_bid_industry"


class Audience(str, Enum):
    """A quién va dirigido un correo; RecipientDirectory lo resuelve a direcciones."""

    BID_OWNER = "bid_owner"
    BID_FOLLOWERS = "bid_followers"
    INDUSTRY_PROVIDERS = "industry_providers"


class BidEmailContext(BaseModel):
    """
    Datos de un envío: licitación, nombre de la entidad que publica y datos
    propios de cada plantilla en additional_data (ej. rejection_notes).
    """

    bid: Optional[Bid] = None
    entity_name: Optional[str] = None
    recipients: List[str] = Field(default_factory=list, description="Destinatarios explícitos; si vacío, se consultan.")
    actor: Optional[CurrentUser] = None
    additional_data: Dict[str, Any] = Field(default_factory=dict)


class EmailSendResult(BaseModel):
    """Resultado de un envío: éxito, nº de correos, destinatarios y datos de seguimiento."""

    model_config = ConfigDict(frozen=True)

    is_success: bool
    emails_sent: int = 0
    error_message: Optional[str] = None
    sent_to: Tuple[str, ...] = ()
    tracking: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def success(cls, emails_sent: int, recipients: List[str]) -> "EmailSendResult":
        return cls(is_success=True, emails_sent=emails_sent, sent_to=tuple(recipients))

    @classmethod
    def failure(
        cls,
        error_message: str,
        emails_sent: int = 0,
        recipients: Optional[List[str]] = None,
    ) -> "EmailSendResult":
        """`emails_sent` y `recipients` recogen lo que ya salió antes del fallo."""
        return cls(
            is_success=False,
            error_message=error_message,
            emails_sent=emails_sent,
            sent_to=tuple(recipients or ()),
        )

    def with_tracking(self, key: str, value: Any) -> "EmailSendResult":
        return self.model_copy(update={"tracking": {**self.tracking, key: str(value)}})


class EmailSender(Protocol):
    """Transporte de correo (en producción, la bandeja de salida en Supabase)."""

    def send(self, recipients: List[str], subject: str, template_name: str, content: Dict[str, Any]) -> None:
        ...


class RecipientDirectory(Protocol):
    """Resuelve una audiencia a direcciones de correo para una licitación."""

    def get_recipients(self, audience: Audience, bid: Bid) -> List[str]:
        ...
