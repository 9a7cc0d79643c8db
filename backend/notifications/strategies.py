"""
Estrategias de correo de licitaciones.

BaseBidEmailStrategy.send fija el flujo de envío para todos los tipos:

    1. validate_context   (falla antes de buscar destinatarios o enviar)
    2. get_recipients
    3. build_subject
    4. build_content
    5. deliver
    6. log_event          (solo si el envío fue bien)

Cada estrategia define asunto, contenido, audiencia y sus datos obligatorios.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

from backend.notifications.models import (
    Audience,
    BidEmailContext,
    EmailSender,
    EmailSendResult,
    RecipientDirectory,
)
from backend.utils import as_utc, fmt_date, utc_now

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 100


class BaseBidEmailStrategy(ABC):
    """Flujo común de envío. Las subclases solo rellenan los pasos variables."""

    name: str = "bid_email"
    template_name: str = ""
    audience: Audience = Audience.BID_OWNER

    def __init__(self, sender: EmailSender, directory: RecipientDirectory) -> None:
        if sender is None or directory is None:
            raise ValueError("La estrategia de correo necesita un transporte y un directorio de destinatarios.")
        self._sender = sender
        self._directory = directory

    def send(self, context: Optional[BidEmailContext]) -> EmailSendResult:
        error = self.validate_context(context)
        if error:
            logger.info("bid_email_rejected", strategy=self.name, reason=error)
            return EmailSendResult.failure(error)

        try:
            recipients = self.get_recipients(context)
            if not recipients:
                return EmailSendResult.failure("No hay destinatarios para este correo.")
            subject = self.build_subject(context)
            content = self.build_content(context)
            result = self.deliver(recipients, subject, content, context)
        except Exception as exc:
            logger.exception("bid_email_failed", strategy=self.name, bid_id=context.bid.id)
            return EmailSendResult.failure(f"Error enviando el correo: {exc}")

        if result.is_success:
            self.log_event(context, result)
        return result

    # ----- Pasos variables -----

    @abstractmethod
    def build_subject(self, context: BidEmailContext) -> str:
        ...

    @abstractmethod
    def build_content(self, context: BidEmailContext) -> Dict[str, Any]:
        ...

    # ----- Pasos con comportamiento por defecto -----

    def validate_context(self, context: Optional[BidEmailContext]) -> Optional[str]:
        """Devuelve el motivo del rechazo, o None si el contexto es válido."""
        if context is None:
            return "El contexto del correo es obligatorio."
        if context.bid is None:
            return "La licitación es obligatoria."
        if not context.entity_name:
            return "El nombre de la entidad es obligatorio."
        return None

    def get_recipients(self, context: BidEmailContext) -> List[str]:
        if context.recipients:
            return list(context.recipients)
        return self._directory.get_recipients(self.audience, context.bid)

    def deliver(
        self,
        recipients: List[str],
        subject: str,
        content: Dict[str, Any],
        context: BidEmailContext,
    ) -> EmailSendResult:
        self._sender.send(recipients, subject, self.template_name, content)
        return (
            EmailSendResult.success(len(recipients), recipients)
            .with_tracking("sent_at", utc_now().isoformat())
            .with_tracking("strategy", self.name)
        )

    def log_event(self, context: BidEmailContext, result: EmailSendResult) -> None:
        logger.info(
            "bid_email_sent",
            strategy=self.name,
            bid_id=context.bid.id,
            emails_sent=result.emails_sent,
        )

    # ----- Ayudas -----

    @staticmethod
    def bid_url(context: BidEmailContext) -> str:
        return f"/bids/{context.bid.id}"

    @staticmethod
    def base_content(context: BidEmailContext) -> Dict[str, Any]:
        return {
            "bid_name": context.bid.bid_name,
            "bid_ref_number": context.bid.ref_number,
            "publisher_name": context.entity_name,
            "bid_url": BaseBidEmailStrategy.bid_url(context),
        }


class BidPublishedEmailStrategy(BaseBidEmailStrategy):
    """Aviso a la entidad de que su licitación ha sido publicada."""

    name = "bid_published"
    template_name = "BidPublishedEmail"
    audience = Audience.BID_OWNER

    def validate_context(self, context: Optional[BidEmailContext]) -> Optional[str]:
        error = super().validate_context(context)
        if error:
            return error
        if not context.bid.bid_name:
            return "El nombre de la licitación es obligatorio para el correo de publicación."
        return None

    def build_subject(self, context: BidEmailContext) -> str:
        return f"Se ha publicado la licitación: {context.bid.bid_name}"

    def build_content(self, context: BidEmailContext) -> Dict[str, Any]:
        return {
            **self.base_content(context),
            "publish_date": fmt_date(context.bid.creation_date),
        }


class BidRejectedEmailStrategy(BaseBidEmailStrategy):
    """Aviso de rechazo con las notas del revisor. rejection_notes es obligatorio."""

    name = "bid_rejected"
    template_name = "BidRejectionEmail"
    audience = Audience.BID_OWNER

    def validate_context(self, context: Optional[BidEmailContext]) -> Optional[str]:
        error = super().validate_context(context)
        if error:
            return error
        if "rejection_notes" not in context.additional_data:
            return "Las notas de rechazo son obligatorias para el correo de rechazo."
        return None

    def build_subject(self, context: BidEmailContext) -> str:
        return f"Licitación rechazada: {context.bid.bid_name}"

    def build_content(self, context: BidEmailContext) -> Dict[str, Any]:
        data = context.additional_data
        return {
            **self.base_content(context),
            "rejection_notes": str(data.get("rejection_notes") or "Sin notas."),
            "rejected_by": str(data.get("admin_name") or "Administración"),
            "next_steps": "Revisa las notas, corrige la licitación y vuelve a enviarla a revisión.",
        }


class BidExtensionEmailStrategy(BaseBidEmailStrategy):
    """Ampliación de plazo a los seguidores. old_deadline < new_deadline obligatorios."""

    name = "bid_extended"
    template_name = "BidExtensionEmail"
    audience = Audience.BID_FOLLOWERS

    def validate_context(self, context: Optional[BidEmailContext]) -> Optional[str]:
        error = super().validate_context(context)
        if error:
            return error
        data = context.additional_data
        if "old_deadline" not in data:
            return "El plazo anterior es obligatorio para el correo de ampliación."
        if "new_deadline" not in data:
            return "El nuevo plazo es obligatorio para el correo de ampliación."
        old, new = data["old_deadline"], data["new_deadline"]
        if not isinstance(old, datetime) or not isinstance(new, datetime):
            return "Los plazos del correo de ampliación deben ser fechas."
        if as_utc(new) <= as_utc(old):
            return "El nuevo plazo debe ser posterior al anterior."
        return None

    def build_subject(self, context: BidEmailContext) -> str:
        return f"Ampliación de plazo de la licitación: {context.bid.bid_name}"

    def build_content(self, context: BidEmailContext) -> Dict[str, Any]:
        data = context.additional_data
        new_deadline = fmt_date(data["new_deadline"])
        return {
            **self.base_content(context),
            "old_deadline": fmt_date(data["old_deadline"]),
            "new_deadline": new_deadline,
            "extension_reason": data.get("extension_reason") or "Sin motivo indicado.",
            "message": f"Se amplía el plazo de presentación de {context.bid.bid_name} hasta el {new_deadline}.",
        }


class BidUpdatedEmailStrategy(BaseBidEmailStrategy):
    """Cambios en una licitación publicada, a sus seguidores."""

    name = "bid_updated"
    template_name = "BidUpdatedEmail"
    audience = Audience.BID_FOLLOWERS

    def build_subject(self, context: BidEmailContext) -> str:
        return f"Actualización de la licitación: {context.bid.bid_name}"

    def build_content(self, context: BidEmailContext) -> Dict[str, Any]:
        return {
            **self.base_content(context),
            "update_summary": context.additional_data.get("update_summary") or "Se han actualizado los datos de la licitación.",
            "update_date": fmt_date(context.bid.modification_date),
            "message": "La licitación ha cambiado. Revisa los nuevos detalles.",
        }


class NewBidIndustryNotificationStrategy(BaseBidEmailStrategy):
    """Nueva licitación a proveedores del sector. Se envía por lotes."""

    name = "new_bid_industry"
    template_name = "NewBidIndustryEmail"
    audience = Audience.INDUSTRY_PROVIDERS

    def __init__(
        self,
        sender: EmailSender,
        directory: RecipientDirectory,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        super().__init__(sender, directory)
        if batch_size <= 0:
            raise ValueError("batch_size debe ser positivo.")
        self._batch_size = batch_size

    def build_subject(self, context: BidEmailContext) -> str:
        return f"Nueva licitación en tu sector: {context.bid.bid_name}"

    def build_content(self, context: BidEmailContext) -> Dict[str, Any]:
        return {
            **self.base_content(context),
            "bid_description": context.bid.description,
            "submission_deadline": fmt_date(context.bid.last_date_offers_submission),
            "call_to_action": "Compra el pliego ahora",
            "is_automatic": bool(context.additional_data.get("send_automatically", False)),
        }

    def deliver(
        self,
        recipients: List[str],
        subject: str,
        content: Dict[str, Any],
        context: BidEmailContext,
    ) -> EmailSendResult:
        sent: List[str] = []
        batches = 0
        for start in range(0, len(recipients), self._batch_size):
            batch = recipients[start:start + self._batch_size]
            try:
                self._sender.send(batch, subject, self.template_name, content)
            except Exception as exc:
                # Los lotes anteriores ya están en la bandeja de salida
                logger.exception(
                    "bid_email_batch_failed",
                    strategy=self.name,
                    bid_id=context.bid.id,
                    batch=batches + 1,
                    emails_sent=len(sent),
                )
                return (
                    EmailSendResult.failure(f"Error enviando el lote {batches + 1}: {exc}", len(sent), sent)
                    .with_tracking("total_recipients", len(recipients))
                    .with_tracking("batches", batches)
                    .with_tracking("strategy", self.name)
                )
            sent.extend(batch)
            batches += 1
        return (
            EmailSendResult.success(len(sent), sent)
            .with_tracking("total_recipients", len(recipients))
            .with_tracking("batch_size", self._batch_size)
            .with_tracking("batches", batches)
            .with_tracking("strategy", self.name)
        )
