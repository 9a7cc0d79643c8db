"""
Excepciones de dominio para la capa de servicios.

El router las traduce a HTTPException (404, 409, o el código que indique el
resultado de validación). No dependen de FastAPI.
"""

from backend.validation.outcome import ValidationOutcome


class DomainError(Exception):
    """Base para errores de negocio."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(DomainError):
    """Recurso no encontrado (licitación, configuración general)."""


class ConflictError(DomainError):
    """Conflicto con el estado actual (ej. precio calculado fuera de rango, estado cambiado)."""


class BidValidationError(DomainError):
    """Una regla de negocio rechazó la operación. Lleva el resultado completo de la cadena."""

    def __init__(self, outcome: ValidationOutcome) -> None:
        self.outcome = outcome
        super().__init__(outcome.first_error or "Validación fallida.")
