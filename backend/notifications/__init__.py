"""
Correos de licitaciones: una estrategia por tipo de correo y un flujo de envío común.

No depende de la validación; comparte con ella el estilo (registro explícito,
fallos como datos).
"""

from backend.notifications.models import (
    Audience,
    BidEmailContext,
    BidEmailType,
    EmailSender,
    EmailSendResult,
    RecipientDirectory,
)
from backend.notifications.service import EMAIL_STRATEGIES, BidEmailService

__all__ = [
    "Audience",
    "BidEmailContext",
    "BidEmailService",
    "BidEmailType",
    "EMAIL_STRATEGIES",
    "EmailSendResult",
    "EmailSender",
    "RecipientDirectory",
]
