"""
Reglas de negocio de una licitación.

Cada regla comprueba una sola cosa y no guarda estado entre ejecuciones, así
que la misma instancia se comparte entre peticiones. Las reglas nuevas se
añaden al registro y a la cadena correspondiente; no se edita una regla existente.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict

from backend.models import BID_TYPES_WITH_FINANCIAL_INSURANCE, BidSubmission, BidType
from backend.roles import BID_EDITOR_ROLES, is_admin
from backend.utils import as_utc, same_calendar_day, utc_now
from backend.validation.context import ValidationContext
from backend.validation.outcome import HttpErrorCode, ValidationOutcome

Clock = Callable[[], datetime]


class Rule(ABC):
    """
    Unidad de validación. `evaluate` es el único punto de entrada y anota los
    fallos con el nombre de la regla; las subclases implementan `check`.
    """

    name: str = "rule"

    def evaluate(self, context: ValidationContext) -> ValidationOutcome:
        return self.check(context).for_rule(self.name)

    @abstractmethod
    def check(self, context: ValidationContext) -> ValidationOutcome:
        """Comprueba la regla. No debe lanzar excepciones con un contexto bien formado."""

    @staticmethod
    def fail(
        message: str,
        error_code: str,
        http_error: HttpErrorCode = HttpErrorCode.INVALID_INPUT,
    ) -> ValidationOutcome:
        return ValidationOutcome.failure(message, error_code, http_error)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class ContextGuardRule(Rule):
    """Primera regla de toda cadena: el contexto y el payload deben existir."""

    name = "context_guard"

    def check(self, context: ValidationContext | None) -> ValidationOutcome:
        if context is None or not isinstance(context, ValidationContext):
            return self.fail("No hay contexto de validación.", "INVALID_VALIDATION_CONTEXT")
        if context.bid is None:
            return self.fail("No se recibieron los datos de la licitación.", "INVALID_VALIDATION_CONTEXT")
        return ValidationOutcome.success()


class UserAuthorizationRule(Rule):
    """Actor autenticado, con rol de gestión, y admins solo sobre licitaciones existentes."""

    name = "user_authorization"

    def check(self, context: ValidationContext) -> ValidationOutcome:
        actor = context.actor
        if actor is None:
            return self.fail(
                "El usuario no ha iniciado sesión.",
                "NOT_AUTHENTICATED",
                HttpErrorCode.NOT_AUTHENTICATED,
            )

        if actor.role not in BID_EDITOR_ROLES:
            return self.fail(
                "No tienes permiso para realizar esta acción.",
                "NOT_AUTHORIZED",
                HttpErrorCode.NOT_AUTHORIZED,
            )

        if is_admin(actor.role) and context.bid.is_creation:
            return self.fail(
                "Los administradores solo pueden editar licitaciones existentes, no crearlas.",
                "ADMIN_CANNOT_CREATE",
                HttpErrorCode.NOT_AUTHORIZED,
            )

        return ValidationOutcome.success()


class BidOwnershipRule(Rule):
    """En ediciones, entidades y donantes solo pueden tocar las licitaciones de su organización."""

    name = "bid_ownership"

    def check(self, context: ValidationContext) -> ValidationOutcome:
        actor = context.actor
        if not context.is_update or actor is None or is_admin(actor.role):
            return ValidationOutcome.success()
        owner = context.existing_bid.organization_id
        if actor.org_id is None or actor.org_id != owner:
            return self.fail(
                "Solo puedes modificar licitaciones de tu organización.",
                "NOT_AUTHORIZED",
                HttpErrorCode.NOT_AUTHORIZED,
            )
        return ValidationOutcome.success()


class ReviewerAuthorizationRule(Rule):
    """Aprobar o rechazar una licitación en revisión es cosa de admin o super_admin."""

    name = "reviewer_authorization"

    def check(self, context: ValidationContext) -> ValidationOutcome:
        if context.actor is None:
            return self.fail(
                "El usuario no ha iniciado sesión.",
                "NOT_AUTHENTICATED",
                HttpErrorCode.NOT_AUTHENTICATED,
            )
        if not is_admin(context.actor.role):
            return self.fail(
                "Solo la administración puede revisar licitaciones.",
                "NOT_AUTHORIZED",
                HttpErrorCode.NOT_AUTHORIZED,
            )
        return ValidationOutcome.success()


class RequiredFieldsRule(Rule):
    """Nombre, las tres fechas obligatorias y al menos una región. Los borradores no se comprueban."""

    name = "required_fields"

    def check(self, context: ValidationContext) -> ValidationOutcome:
        if context.is_draft:
            return ValidationOutcome.success()

        bid = context.bid
        if not bid.bid_name or not bid.bid_name.strip():
            return self.fail("El nombre de la licitación es obligatorio.", "BID_NAME_REQUIRED")

        required_dates = (
            bid.last_date_receiving_enquiries,
            bid.last_date_offers_submission,
            bid.offers_opening_date,
        )
        if any(d is None for d in required_dates):
            return self.fail(
                "Todas las fechas son obligatorias (último día de consultas, "
                "último día de presentación de ofertas y apertura de ofertas).",
                "REQUIRED_DATES_MISSING",
            )

        if not bid.region_ids:
            return self.fail("Debe indicarse al menos una región.", "REGIONS_REQUIRED")

        return ValidationOutcome.success()


class BidDatesRule(Rule):
    """
    Orden de los plazos de la licitación. Los borradores no se comprueban.

    1. En ediciones, el último día de consultas no puede moverse al pasado
       (si no cambia de día se acepta aunque ya haya pasado).
    2. consultas <= presentación de ofertas.
    3. presentación de ofertas <= apertura de ofertas.
    4. adjudicación prevista >= apertura + periodo de suspensión.

    Las comparaciones con una fecha ausente se omiten.
    """

    name = "bid_dates"

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock

    def check(self, context: ValidationContext) -> ValidationOutcome:
        if context.is_draft:
            return ValidationOutcome.success()

        bid = context.bid

        if context.is_update and self._enquiry_date_moved_to_past(context):
            return self.fail(
                "El último día para recibir consultas no puede estar en el pasado.",
                "LAST_DATE_RECEIVING_ENQUIRIES_IN_PAST",
            )

        if _is_after(bid.last_date_receiving_enquiries, bid.last_date_offers_submission):
            return self.fail(
                "El último día de presentación de ofertas debe ser posterior al último día de consultas.",
                "OFFERS_SUBMISSION_DATE_INVALID",
            )

        if _is_after(bid.last_date_offers_submission, bid.offers_opening_date):
            return self.fail(
                "La apertura de ofertas debe ser posterior al último día de presentación de ofertas.",
                "OFFERS_OPENING_DATE_INVALID",
            )

        if bid.expected_anchoring_date is not None and bid.offers_opening_date is not None:
            days = context.settings.stopping_period_days if context.settings else 0
            minimum = as_utc(bid.offers_opening_date) + timedelta(days=days)
            if as_utc(bid.expected_anchoring_date) < minimum:
                return self.fail(
                    f"La adjudicación prevista debe ser al menos {days} días posterior a la apertura de ofertas.",
                    "EXPECTED_ANCHORING_DATE_INVALID",
                )

        return ValidationOutcome.success()

    def _enquiry_date_moved_to_past(self, context: ValidationContext) -> bool:
        new_date = context.bid.last_date_receiving_enquiries
        if new_date is None:
            return False
        if same_calendar_day(context.existing_bid.last_date_receiving_enquiries, new_date):
            return False
        return as_utc(new_date) < as_utc(self._clock())


class DeadlineExtensionRule(Rule):
    """Una ampliación de plazo debe mover la presentación de ofertas a una fecha posterior a la actual."""

    name = "deadline_extension"

    def check(self, context: ValidationContext) -> ValidationOutcome:
        if not context.is_update:
            return self.fail("Solo se pueden ampliar plazos de licitaciones existentes.", "BID_NOT_FOUND", HttpErrorCode.NOT_FOUND)
        current = context.existing_bid.last_date_offers_submission
        new = context.bid.last_date_offers_submission
        if new is None:
            return self.fail("El nuevo plazo de presentación de ofertas es obligatorio.", "REQUIRED_DATES_MISSING")
        if current is not None and not _is_after(new, current):
            return self.fail(
                "El nuevo plazo de presentación debe ser posterior al actual.",
                "NEW_DEADLINE_NOT_AFTER_CURRENT",
            )
        return ValidationOutcome.success()


def _is_after(first: datetime | None, second: datetime | None) -> bool:
    if first is None or second is None:
        return False
    return as_utc(first) > as_utc(second)


def normalize_financial_insurance(bid: BidSubmission) -> bool:
    """
    Limpia la garantía financiera si el tipo de licitación no la admite.

    Modifica el payload en sitio y es idempotente. Devuelve True si ha cambiado algo.
    Sin tipo de licitación no se toca nada.
    """
    if bid.bid_type_id is None:
        return False
    try:
        supports_insurance = BidType(bid.bid_type_id) in BID_TYPES_WITH_FINANCIAL_INSURANCE
    except ValueError:
        supports_insurance = False
    if supports_insurance:
        return False
    changed = bool(bid.is_financial_insurance_required) or bid.financial_insurance_value is not None
    bid.is_financial_insurance_required = False
    bid.financial_insurance_value = None
    return changed


class BidPriceRule(Rule):
    """
    Precio del pliego y garantía financiera.

    Efecto lateral: tras comprobar que la cuota no es negativa, normaliza la
    garantía financiera del payload (normalize_financial_insurance).
    """

    name = "bid_price"

    def check(self, context: ValidationContext) -> ValidationOutcome:
        bid = context.bid
        fees = bid.association_fees

        if fees is not None and fees < 0:
            return self.fail("El precio del pliego no puede ser negativo.", "ASSOCIATION_FEES_NEGATIVE")

        normalize_financial_insurance(bid)

        if bid.is_financial_insurance_required and (
            bid.financial_insurance_value is None or bid.financial_insurance_value <= Decimal("0")
        ):
            return self.fail(
                "El importe de la garantía financiera es obligatorio cuando se exige garantía.",
                "FINANCIAL_INSURANCE_VALUE_REQUIRED",
            )

        settings = context.settings
        if fees is not None and settings is not None and fees > settings.max_bid_document_price:
            return self.fail(
                f"El precio del pliego supera el máximo permitido ({settings.max_bid_document_price}).",
                "ASSOCIATION_FEES_EXCEED_MAXIMUM",
            )

        return ValidationOutcome.success()


# ----- Registro explícito de reglas -----


class RuleKey(str, Enum):
    """Clave de registro; coincide con Rule.name."""

    CONTEXT_GUARD = ContextGuardRule.name
    USER_AUTHORIZATION = UserAuthorizationRule.name
    BID_OWNERSHIP = BidOwnershipRule.name
    REVIEWER_AUTHORIZATION = ReviewerAuthorizationRule.name
    REQUIRED_FIELDS = RequiredFieldsRule.name
    BID_DATES = BidDatesRule.name
    DEADLINE_EXTENSION = DeadlineExtensionRule.name
    BID_PRICE = BidPriceRule.name


RULE_REGISTRY: Dict[RuleKey, Callable[[Clock], Rule]] = {
    RuleKey.CONTEXT_GUARD: lambda clock: ContextGuardRule(),
    RuleKey.USER_AUTHORIZATION: lambda clock: UserAuthorizationRule(),
    RuleKey.BID_OWNERSHIP: lambda clock: BidOwnershipRule(),
    RuleKey.REVIEWER_AUTHORIZATION: lambda clock: ReviewerAuthorizationRule(),
    RuleKey.REQUIRED_FIELDS: lambda clock: RequiredFieldsRule(),
    RuleKey.BID_DATES: BidDatesRule,
    RuleKey.DEADLINE_EXTENSION: lambda clock: DeadlineExtensionRule(),
    RuleKey.BID_PRICE: lambda clock: BidPriceRule(),
}


def create_rule(key: RuleKey | str, clock: Clock = utc_now) -> Rule:
    """Instancia la regla registrada bajo `key`. Lanza ValueError si no existe."""
    try:
        factory = RULE_REGISTRY[RuleKey(key)]
    except ValueError:
        raise ValueError(f"No hay regla registrada para '{key}'.")
    return factory(clock)
