"""
Contexto de validación: instantánea de solo lectura con todo lo que una regla
puede necesitar (payload propuesto, licitación persistida, configuración, actor).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from backend.models import AppGeneralSettings, Bid, BidSubmission, CurrentUser


class ValidationContext(BaseModel):
    """
    Contexto inmutable durante una ejecución de la cadena.

    El propio contexto está congelado; el payload `bid` es propiedad de la
    petición y solo lo modifica la normalización documentada de la regla de precio.
    """

    model_config = ConfigDict(frozen=True)

    bid: Optional[BidSubmission] = None
    existing_bid: Optional[Bid] = None
    settings: Optional[AppGeneralSettings] = None
    actor: Optional[CurrentUser] = None

    @property
    def is_update(self) -> bool:
        return self.existing_bid is not None

    @property
    def is_draft(self) -> bool:
        return bool(self.bid is not None and self.bid.is_draft)

    @classmethod
    def for_create(
        cls,
        bid: BidSubmission,
        settings: Optional[AppGeneralSettings],
        actor: Optional[CurrentUser],
    ) -> "ValidationContext":
        return cls(bid=bid, settings=settings, actor=actor)

    @classmethod
    def for_update(
        cls,
        bid: BidSubmission,
        existing_bid: Bid,
        settings: Optional[AppGeneralSettings],
        actor: Optional[CurrentUser],
    ) -> "ValidationContext":
        return cls(bid=bid, existing_bid=existing_bid, settings=settings, actor=actor)
