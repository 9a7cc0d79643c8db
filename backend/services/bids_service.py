"""
Servicio de licitaciones: alta, edición, revisión y ampliación de plazos.

Recibe repositorios, validación, cálculo de precio y correos por inyección.
Lanza excepciones de dominio (BidValidationError, NotFoundError, ConflictError),
no HTTPException. Un correo que no se puede enviar no deshace la operación.
"""

from typing import Any, Dict, Optional

import structlog

from backend.models import (
    AppGeneralSettings,
    Bid,
    BidDeadlineExtension,
    BidRejection,
    BidStatus,
    BidSubmission,
    CurrentUser,
    PricePreviewRequest,
)
from backend.notifications import BidEmailService, BidEmailType, EmailSendResult
from backend.repositories.bids_repository import BidsRepository
from backend.repositories.settings_repository import SettingsRepository
from backend.services.exceptions import BidValidationError, ConflictError, NotFoundError
from backend.services.price_calculation import BidPriceCalculationService, PriceCalculationResult
from backend.utils import utc_now
from backend.validation import BidValidationService, ValidationContext, ValidationOutcome
from backend.validation.rules import Clock

logger = structlog.get_logger(__name__)

# Estados desde los que una edición vuelve a enviar la licitación a revisión
RESUBMIT_STATUSES = {BidStatus.DRAFT, BidStatus.REJECTED}


class BidService:
    """Casos de uso de licitaciones sobre tbl_bids."""

    def __init__(
        self,
        bids_repository: BidsRepository,
        settings_repository: SettingsRepository,
        validation: BidValidationService,
        pricing: BidPriceCalculationService,
        emails: BidEmailService,
        clock: Clock = utc_now,
    ) -> None:
        self._bids = bids_repository
        self._settings = settings_repository
        self._validation = validation
        self._pricing = pricing
        self._emails = emails
        self._clock = clock

    def get_bid(self, bid_id: int) -> Bid:
        """Lanza NotFoundError si no existe."""
        bid = self._bids.get_bid(bid_id)
        if bid is None:
            raise NotFoundError("Licitación no encontrada.")
        return bid

    def create_bid(self, payload: BidSubmission, actor: Optional[CurrentUser]) -> Bid:
        """
        Alta de licitación. Los borradores se guardan como DRAFT; el resto pasa
        a PENDING_REVIEW hasta que la administración la apruebe.
        """
        settings = self._settings.get_general_settings()
        context = ValidationContext.for_create(payload, settings, actor)
        self._raise_if_invalid(self._validation.validate_create_bid(context))

        row: Dict[str, Any] = payload.model_dump(exclude={"id"})
        if payload.association_fees is not None:
            price = self._calculate_or_raise(payload.association_fees, settings, payload.bid_type_id)
            row.update(
                association_fees=price.association_fees,
                tanafos_fees=price.tanafos_fees,
                bid_documents_price=price.total_price,
            )
        row.update(
            status=BidStatus.DRAFT if payload.is_draft else BidStatus.PENDING_REVIEW,
            created_by=actor.user_id,
            organization_id=actor.org_id,
        )

        bid = self._bids.create_bid(row)
        logger.info("bid_created", bid_id=bid.id, status=bid.status.value, user_id=actor.user_id)
        return bid

    def update_bid(self, bid_id: int, payload: BidSubmission, actor: Optional[CurrentUser]) -> Bid:
        """
        Edición parcial: solo se aplican los campos enviados.

        Una licitación rechazada o en borrador vuelve a revisión al guardarse
        sin is_draft; is_draft solo se respeta si la licitación sigue en DRAFT.
        Si ya estaba publicada, se avisa a sus seguidores.
        """
        existing = self.get_bid(bid_id)
        # Se valida la licitación resultante, no el payload parcial
        changes = payload.model_dump(exclude_unset=True, exclude={"id"})
        candidate = existing.model_copy(update=changes)
        # Solo un borrador puede seguir siéndolo; el resto se valida completo
        if existing.status != BidStatus.DRAFT:
            candidate.is_draft = False
        settings = self._settings.get_general_settings()
        context = ValidationContext.for_update(candidate, existing, settings, actor)
        self._raise_if_invalid(self._validation.validate_update_bid(context))

        if candidate.association_fees is not None:
            self._pricing.apply_to_bid(candidate.association_fees, settings, candidate)
        if existing.status in RESUBMIT_STATUSES and not candidate.is_draft:
            candidate.status = BidStatus.PENDING_REVIEW
        candidate.modification_date = self._clock()

        updated = self._bids.update_bid(bid_id, candidate.model_dump())
        logger.info(
            "bid_updated",
            bid_id=bid_id,
            previous_status=existing.status.value,
            status=updated.status.value,
        )

        if existing.status == BidStatus.PUBLISHED:
            self._notify(BidEmailType.BID_UPDATED, updated, actor)
        return updated

    def approve_bid(self, bid_id: int, actor: Optional[CurrentUser]) -> Bid:
        """Publica una licitación en revisión y avisa a la entidad y a los proveedores del sector."""
        existing = self.get_bid(bid_id)
        settings = self._settings.get_general_settings()
        context = ValidationContext.for_update(existing.model_copy(), existing, settings, actor)
        self._raise_if_invalid(self._validation.validate_review_permission(context))
        self._ensure_status(existing, BidStatus.PENDING_REVIEW)
        self._raise_if_invalid(self._validation.validate_approve_bid(context))

        updated = self._bids.update_bid(
            bid_id,
            {"status": BidStatus.PUBLISHED, "modification_date": self._clock()},
        )
        logger.info("bid_approved", bid_id=bid_id, reviewer_id=actor.user_id)

        self._notify(BidEmailType.BID_PUBLISHED, updated, actor)
        self._notify(BidEmailType.NEW_BID_INDUSTRY, updated, actor)
        return updated

    def reject_bid(self, bid_id: int, rejection: BidRejection, actor: Optional[CurrentUser]) -> Bid:
        existing = self.get_bid(bid_id)
        context = ValidationContext.for_update(existing.model_copy(), existing, None, actor)
        self._raise_if_invalid(self._validation.validate_review_permission(context))
        self._ensure_status(existing, BidStatus.PENDING_REVIEW)

        updated = self._bids.update_bid(
            bid_id,
            {
                "status": BidStatus.REJECTED,
                "rejection_notes": rejection.rejection_notes,
                "modification_date": self._clock(),
            },
        )
        logger.info("bid_rejected", bid_id=bid_id, reviewer_id=actor.user_id)

        self._notify(
            BidEmailType.BID_REJECTED,
            updated,
            actor,
            rejection_notes=rejection.rejection_notes,
            admin_name=actor.full_name or actor.email,
        )
        return updated

    def extend_deadline(self, bid_id: int, extension: BidDeadlineExtension, actor: Optional[CurrentUser]) -> Bid:
        """
        Amplía los plazos de una licitación publicada. La presentación de ofertas
        debe quedar después de la actual y el resto de fechas seguir en orden.
        """
        existing = self.get_bid(bid_id)
        settings = self._settings.get_general_settings()
        permission = ValidationContext.for_update(existing.model_copy(), existing, settings, actor)
        self._raise_if_invalid(self._validation.validate_edit_permission(permission))
        self._ensure_status(existing, BidStatus.PUBLISHED)

        changes = {
            k: v
            for k, v in extension.model_dump(exclude={"extension_reason"}).items()
            if v is not None
        }
        candidate = existing.model_copy(update=changes)
        context = ValidationContext.for_update(candidate, existing, settings, actor)
        self._raise_if_invalid(self._validation.validate_extend_deadline(context))

        updated = self._bids.update_bid(bid_id, {**changes, "modification_date": self._clock()})
        logger.info(
            "bid_deadline_extended",
            bid_id=bid_id,
            old_deadline=str(existing.last_date_offers_submission),
            new_deadline=str(extension.last_date_offers_submission),
        )

        self._notify(
            BidEmailType.BID_EXTENDED,
            updated,
            actor,
            old_deadline=existing.last_date_offers_submission,
            new_deadline=extension.last_date_offers_submission,
            extension_reason=extension.extension_reason,
        )
        return updated

    def preview_price(self, request: PricePreviewRequest) -> PriceCalculationResult:
        """Desglose del precio del pliego sin guardar nada. NotFoundError sin configuración general."""
        settings = self._settings.get_general_settings()
        if settings is None:
            raise NotFoundError("Configuración general no encontrada.")
        return self._pricing.calculate_price(request.association_fees, settings, request.bid_type_id)

    # ----- Ayudas -----

    @staticmethod
    def _raise_if_invalid(outcome: ValidationOutcome) -> None:
        if not outcome.is_valid:
            raise BidValidationError(outcome)

    @staticmethod
    def _ensure_status(bid: Bid, expected: BidStatus) -> None:
        if bid.status != expected:
            raise ConflictError(
                f"La licitación está en estado '{bid.status.value}' y la operación requiere '{expected.value}'."
            )

    def _calculate_or_raise(
        self,
        association_fees,
        settings: Optional[AppGeneralSettings],
        bid_type_id: Optional[int],
    ) -> PriceCalculationResult:
        if settings is None:
            raise NotFoundError("Configuración general no encontrada.")
        result = self._pricing.calculate_price(association_fees, settings, bid_type_id)
        if not result.is_valid:
            raise ConflictError(result.error_message or "Precio del pliego no válido.")
        return result

    def _notify(
        self,
        email_type: BidEmailType,
        bid: Bid,
        actor: Optional[CurrentUser],
        **additional_data: Any,
    ) -> EmailSendResult:
        result = self._emails.send(
            email_type,
            bid,
            entity_name=self._entity_name(bid, actor),
            additional_data=additional_data,
            actor=actor,
        )
        if not result.is_success:
            logger.warning(
                "bid_email_not_sent",
                bid_id=bid.id,
                email_type=email_type.value,
                reason=result.error_message,
            )
        return result

    @staticmethod
    def _entity_name(bid: Bid, actor: Optional[CurrentUser]) -> str:
        if bid.organization_name:
            return bid.organization_name
        if actor is not None:
            return actor.full_name or actor.email
        return ""
