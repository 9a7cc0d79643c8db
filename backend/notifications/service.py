"""
Fachada de correos de licitaciones.

Elige la estrategia por tipo de correo (registro explícito) y le pasa el
contexto. Un tipo sin estrategia es un error de programación (ValueError).
"""

from typing import Any, Dict, List, Optional, Type

from backend.models import Bid, CurrentUser
from backend.notifications.models import (
    BidEmailContext,
    BidEmailType,
    EmailSender,
    EmailSendResult,
    RecipientDirectory,
)
from backend.notifications.strategies import (
    DEFAULT_BATCH_SIZE,
    BaseBidEmailStrategy,
    BidExtensionEmailStrategy,
    BidPublishedEmailStrategy,
    BidRejectedEmailStrategy,
    BidUpdatedEmailStrategy,
    NewBidIndustryNotificationStrategy,
)

EMAIL_STRATEGIES: Dict[BidEmailType, Type[BaseBidEmailStrategy]] = {
    BidEmailType.BID_PUBLISHED: BidPublishedEmailStrategy,
    BidEmailType.BID_REJECTED: BidRejectedEmailStrategy,
    BidEmailType.BID_EXTENDED: BidExtensionEmailStrategy,
    BidEmailType.BID_UPDATED: BidUpdatedEmailStrategy,
    BidEmailType.NEW_BID_INDUSTRY: NewBidIndustryNotificationStrategy,
}


class BidEmailService:
    """Punto único para enviar cualquier correo de licitación."""

    def __init__(
        self,
        sender: EmailSender,
        directory: RecipientDirectory,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._sender = sender
        self._directory = directory
        self._batch_size = batch_size

    def get_strategy(self, email_type: BidEmailType | str) -> BaseBidEmailStrategy:
        try:
            strategy_cls = EMAIL_STRATEGIES[BidEmailType(email_type)]
        except (KeyError, ValueError):
            raise ValueError(f"No hay estrategia de correo para el tipo '{email_type}'.")
        if strategy_cls is NewBidIndustryNotificationStrategy:
            return strategy_cls(self._sender, self._directory, batch_size=self._batch_size)
        return strategy_cls(self._sender, self._directory)

    def strategy_names(self) -> Dict[BidEmailType, str]:
        """Nombre de la estrategia registrada para cada tipo (diagnóstico)."""
        return {email_type: cls.name for email_type, cls in EMAIL_STRATEGIES.items()}

    def send(
        self,
        email_type: BidEmailType | str,
        bid: Bid,
        entity_name: str,
        additional_data: Optional[Dict[str, Any]] = None,
        actor: Optional[CurrentUser] = None,
        recipients: Optional[List[str]] = None,
    ) -> EmailSendResult:
        context = BidEmailContext(
            bid=bid,
            entity_name=entity_name,
            recipients=recipients or [],
            actor=actor,
            additional_data=dict(additional_data or {}),
        )
        return self.send_with_context(email_type, context)

    def send_with_context(self, email_type: BidEmailType | str, context: BidEmailContext) -> EmailSendResult:
        return self.get_strategy(email_type).send(context)
