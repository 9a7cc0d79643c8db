"""
Cálculo del precio del pliego por tipo de licitación.

    comisión plataforma = max(precio entidad × % plataforma / 100, mínimo)
    subtotal            = precio entidad + comisión plataforma
    IVA                 = subtotal × % IVA / 100
    total               = subtotal + IVA

Cada paso se redondea a 8 decimales. Una estrategia por tipo de licitación,
elegida por un registro explícito.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Optional, Type

from pydantic import BaseModel, ConfigDict

from backend.models import AppGeneralSettings, Bid, BidType
from backend.services.exceptions import ConflictError, NotFoundError
from backend.utils import round_money


class PriceCalculationResult(BaseModel):
    """Desglose del precio del pliego o motivo por el que no se pudo calcular."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    association_fees: Decimal = Decimal("0")
    tanafos_fees: Decimal = Decimal("0")
    subtotal_without_tax: Decimal = Decimal("0")
    vat_amount: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")
    strategy: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, error_message: str, strategy: Optional[str] = None) -> "PriceCalculationResult":
        return cls(is_valid=False, error_message=error_message, strategy=strategy)


class PriceCalculationStrategy(ABC):
    """Cálculo del precio del pliego para una familia de tipos de licitación."""

    name: str = "price_strategy"

    def calculate(
        self,
        association_fees: Decimal,
        settings: Optional[AppGeneralSettings],
    ) -> PriceCalculationResult:
        if settings is None:
            return PriceCalculationResult.failure("No hay configuración general.", self.name)
        fees = Decimal(str(association_fees))
        if fees < 0:
            return PriceCalculationResult.failure("El precio del pliego no puede ser negativo.", self.name)

        tanafos = self.tanafos_fees(fees, settings)
        subtotal = round_money(fees + tanafos)
        vat = round_money(subtotal * settings.vat_percentage / Decimal("100"))
        total = round_money(subtotal + vat)

        if total > settings.max_bid_document_price:
            return PriceCalculationResult.failure(
                f"El precio total {total} supera el máximo permitido {settings.max_bid_document_price}.",
                self.name,
            )

        return PriceCalculationResult(
            is_valid=True,
            association_fees=fees,
            tanafos_fees=tanafos,
            subtotal_without_tax=subtotal,
            vat_amount=vat,
            total_price=total,
            strategy=self.name,
        )

    @abstractmethod
    def tanafos_fees(self, association_fees: Decimal, settings: AppGeneralSettings) -> Decimal:
        """Comisión de la plataforma para este tipo de licitación."""


class StandardBidPriceStrategy(PriceCalculationStrategy):
    """Públicas, privadas, habilitación e instantáneas."""

    name = "standard"

    def tanafos_fees(self, association_fees: Decimal, settings: AppGeneralSettings) -> Decimal:
        calculated = round_money(association_fees * settings.tanafos_percentage / Decimal("100"))
        return max(calculated, settings.min_tanafos_price)


class FreelancingBidPriceStrategy(StandardBidPriceStrategy):
    """Licitaciones para autónomos. De momento misma fórmula que la estándar."""

    # TODO: comisión propia de autónomos cuando exista su tarifa en tbl_app_general_settings.
    name = "freelancing"


PRICE_STRATEGIES: Dict[BidType, Type[PriceCalculationStrategy]] = {
    BidType.PUBLIC: StandardBidPriceStrategy,
    BidType.PRIVATE: StandardBidPriceStrategy,
    BidType.HABILITATION: StandardBidPriceStrategy,
    BidType.INSTANT: StandardBidPriceStrategy,
    BidType.FREELANCING: FreelancingBidPriceStrategy,
}


def get_price_strategy(bid_type: BidType | int) -> PriceCalculationStrategy:
    """Estrategia para el tipo de licitación. ValueError si el tipo no existe."""
    try:
        strategy_cls = PRICE_STRATEGIES[BidType(bid_type)]
    except (KeyError, ValueError):
        raise ValueError(f"No hay estrategia de precio para el tipo de licitación {bid_type}.")
    return strategy_cls()


class BidPriceCalculationService:
    """Fachada del cálculo de precio: elige estrategia y aplica el resultado a la licitación."""

    def calculate_price(
        self,
        association_fees: Decimal,
        settings: Optional[AppGeneralSettings],
        bid_type: BidType | int | None = None,
    ) -> PriceCalculationResult:
        """Sin tipo de licitación se usa PUBLIC."""
        strategy = get_price_strategy(bid_type if bid_type is not None else BidType.PUBLIC)
        return strategy.calculate(association_fees, settings)

    def calculate_total_price(
        self,
        association_fees: Decimal,
        settings: Optional[AppGeneralSettings],
        bid_type: BidType | int | None = None,
    ) -> Decimal:
        """Total del pliego, o 0 si el cálculo no es válido."""
        result = self.calculate_price(association_fees, settings, bid_type)
        return result.total_price if result.is_valid else Decimal("0")

    def apply_to_bid(
        self,
        association_fees: Decimal,
        settings: Optional[AppGeneralSettings],
        bid: Optional[Bid],
    ) -> PriceCalculationResult:
        """
        Calcula y escribe association_fees, tanafos_fees y bid_documents_price en la licitación.
        Lanza NotFoundError si falta la licitación o la configuración, ConflictError si el precio no es válido.
        """
        if bid is None:
            raise NotFoundError("Licitación no encontrada.")
        if settings is None:
            raise NotFoundError("Configuración general no encontrada.")

        result = self.calculate_price(association_fees, settings, bid.bid_type_id)
        if not result.is_valid:
            raise ConflictError(result.error_message or "Precio del pliego no válido.")

        bid.association_fees = result.association_fees
        bid.tanafos_fees = result.tanafos_fees
        bid.bid_documents_price = result.total_price
        return result
