"""
Capa de servicios: lógica de negocio aislada de HTTP.

Los servicios reciben repositorios por inyección y lanzan excepciones
de dominio (ValueError o backend.services.exceptions), no HTTPException.
"""

from backend.services.bids_service import BidService
from backend.services.exceptions import (
    BidValidationError,
    ConflictError,
    DomainError,
    NotFoundError,
)
from backend.services.price_calculation import (
    BidPriceCalculationService,
    PriceCalculationResult,
    get_price_strategy,
)

__all__ = [
    "BidPriceCalculationService",
    "BidService",
    "BidValidationError",
    "ConflictError",
    "DomainError",
    "NotFoundError",
    "PriceCalculationResult",
    "get_price_strategy",
]
