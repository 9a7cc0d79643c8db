"""
Licitaciones (tbl_bids): alta, edición, revisión y ampliación de plazos.

La lógica vive en BidService; aquí solo se traducen sus excepciones de dominio
a HTTPException. Los fallos de validación devuelven el código de error y la
regla que falló para que el frontend muestre el mensaje en el campo correcto.
"""

from fastapi import APIRouter, HTTPException, status

from backend.deps import BidServiceDep, CurrentUserDep
from backend.models import (
    Bid,
    BidDeadlineExtension,
    BidRejection,
    BidSubmission,
    PricePreviewRequest,
)
from backend.services import (
    BidValidationError,
    ConflictError,
    DomainError,
    NotFoundError,
    PriceCalculationResult,
)
from backend.validation import HttpErrorCode


router = APIRouter(prefix="/bids", tags=["bids"])

HTTP_STATUS_BY_ERROR = {
    HttpErrorCode.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    HttpErrorCode.NOT_AUTHORIZED: status.HTTP_403_FORBIDDEN,
    HttpErrorCode.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    HttpErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    HttpErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def _http_error(exc: Exception) -> HTTPException:
    """Excepción de dominio (o ValueError) -> HTTPException."""
    if isinstance(exc, BidValidationError):
        outcome = exc.outcome
        return HTTPException(
            status_code=HTTP_STATUS_BY_ERROR.get(outcome.http_error, status.HTTP_400_BAD_REQUEST),
            detail={
                "message": outcome.first_error,
                "error_code": outcome.error_code,
                "failed_rule": outcome.failed_rule,
                "errors": list(outcome.errors),
            },
        )
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/{bid_id}", response_model=Bid)
def get_bid(bid_id: int, current_user: CurrentUserDep, service: BidServiceDep) -> Bid:
    """Detalle de una licitación."""
    try:
        return service.get_bid(bid_id)
    except DomainError as e:
        raise _http_error(e) from e


@router.post("", response_model=Bid, status_code=status.HTTP_201_CREATED)
def create_bid(payload: BidSubmission, current_user: CurrentUserDep, service: BidServiceDep) -> Bid:
    """
    Crea una licitación. Con is_draft=true se guarda como borrador sin
    comprobar campos obligatorios ni fechas; si no, queda pendiente de revisión.
    """
    try:
        return service.create_bid(payload, current_user)
    except (DomainError, ValueError) as e:
        raise _http_error(e) from e


@router.put("/{bid_id}", response_model=Bid)
def update_bid(
    bid_id: int,
    payload: BidSubmission,
    current_user: CurrentUserDep,
    service: BidServiceDep,
) -> Bid:
    """Actualización parcial: solo se modifican los campos enviados."""
    try:
        return service.update_bid(bid_id, payload, current_user)
    except (DomainError, ValueError) as e:
        raise _http_error(e) from e


@router.post("/{bid_id}/approve", response_model=Bid)
def approve_bid(bid_id: int, current_user: CurrentUserDep, service: BidServiceDep) -> Bid:
    """Publica una licitación pendiente de revisión (solo administración)."""
    try:
        return service.approve_bid(bid_id, current_user)
    except (DomainError, ValueError) as e:
        raise _http_error(e) from e


@router.post("/{bid_id}/reject", response_model=Bid)
def reject_bid(
    bid_id: int,
    payload: BidRejection,
    current_user: CurrentUserDep,
    service: BidServiceDep,
) -> Bid:
    """Rechaza una licitación pendiente de revisión; las notas se envían a la entidad."""
    try:
        return service.reject_bid(bid_id, payload, current_user)
    except (DomainError, ValueError) as e:
        raise _http_error(e) from e


@router.post("/{bid_id}/extend-deadline", response_model=Bid)
def extend_deadline(
    bid_id: int,
    payload: BidDeadlineExtension,
    current_user: CurrentUserDep,
    service: BidServiceDep,
) -> Bid:
    """Amplía el plazo de presentación de ofertas de una licitación publicada."""
    try:
        return service.extend_deadline(bid_id, payload, current_user)
    except (DomainError, ValueError) as e:
        raise _http_error(e) from e


@router.post("/price-preview", response_model=PriceCalculationResult)
def preview_price(
    payload: PricePreviewRequest,
    current_user: CurrentUserDep,
    service: BidServiceDep,
) -> PriceCalculationResult:
    """Desglose del precio del pliego (comisión, IVA, total) sin guardar nada."""
    try:
        return service.preview_price(payload)
    except (DomainError, ValueError) as e:
        raise _http_error(e) from e
