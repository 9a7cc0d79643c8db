"""
Fachada de validación de licitaciones.

Un método por caso de uso, cada uno con un orden de reglas fijo:
autorización → campos obligatorios → fechas → precio. Todas las cadenas
empiezan por ContextGuardRule. Los fallos de negocio se devuelven como
ValidationOutcome; solo se lanzan excepciones por errores de programación.
"""

from typing import Dict, Iterable, Optional

from backend.utils import utc_now
from backend.validation.chain import ChainBuilder, ValidationChain
from backend.validation.context import ValidationContext
from backend.validation.outcome import ValidationOutcome
from backend.validation.rules import (
    RULE_REGISTRY,
    Clock,
    ContextGuardRule,
    Rule,
    RuleKey,
)

CREATE_BID_RULES = (
    RuleKey.CONTEXT_GUARD,
    RuleKey.USER_AUTHORIZATION,
    RuleKey.REQUIRED_FIELDS,
    RuleKey.BID_DATES,
    RuleKey.BID_PRICE,
)
UPDATE_BID_RULES = (
    RuleKey.CONTEXT_GUARD,
    RuleKey.USER_AUTHORIZATION,
    RuleKey.BID_OWNERSHIP,
    RuleKey.REQUIRED_FIELDS,
    RuleKey.BID_DATES,
    RuleKey.BID_PRICE,
)
# La aprobación la hace un admin sobre una licitación ya existente: sin autorización de alta.
APPROVE_BID_RULES = (
    RuleKey.CONTEXT_GUARD,
    RuleKey.REQUIRED_FIELDS,
    RuleKey.BID_DATES,
    RuleKey.BID_PRICE,
)
EXTEND_DEADLINE_RULES = (
    RuleKey.CONTEXT_GUARD,
    RuleKey.USER_AUTHORIZATION,
    RuleKey.BID_OWNERSHIP,
    RuleKey.DEADLINE_EXTENSION,
    RuleKey.BID_DATES,
)
REVIEW_BID_RULES = (
    RuleKey.CONTEXT_GUARD,
    RuleKey.REVIEWER_AUTHORIZATION,
)
EDIT_PERMISSION_RULES = (
    RuleKey.CONTEXT_GUARD,
    RuleKey.USER_AUTHORIZATION,
    RuleKey.BID_OWNERSHIP,
)


class BidValidationService:
    """Expone cadenas preconstruidas por caso de uso y cadenas a medida."""

    def __init__(self, clock: Clock = utc_now, registry: Optional[Dict] = None) -> None:
        if clock is None:
            raise ValueError("BidValidationService necesita un reloj.")
        registry = RULE_REGISTRY if registry is None else registry
        if not registry:
            raise ValueError("BidValidationService necesita un registro de reglas.")
        # Reglas sin estado: una instancia por clave, compartida por todas las cadenas.
        self._rules: Dict[RuleKey, Rule] = {
            RuleKey(key): factory(clock) for key, factory in registry.items()
        }
        self._create_chain = self.build_chain(*CREATE_BID_RULES)
        self._update_chain = self.build_chain(*UPDATE_BID_RULES)
        self._approve_chain = self.build_chain(*APPROVE_BID_RULES)
        self._extend_chain = self.build_chain(*EXTEND_DEADLINE_RULES)
        self._review_chain = self.build_chain(*REVIEW_BID_RULES)
        self._edit_permission_chain = self.build_chain(*EDIT_PERMISSION_RULES)

    def rule(self, key: RuleKey | str) -> Rule:
        """Instancia registrada para `key`. ValueError si no existe."""
        try:
            return self._rules[RuleKey(key)]
        except (KeyError, ValueError):
            raise ValueError(f"No hay regla registrada para '{key}'.")

    def build_chain(self, *keys: RuleKey | str) -> ValidationChain:
        builder = ChainBuilder()
        for key in keys:
            builder.add(self.rule(key))
        return builder.build()

    # ----- Casos de uso -----

    def validate_create_bid(self, context: ValidationContext) -> ValidationOutcome:
        return self._create_chain.validate(context)

    def validate_update_bid(self, context: ValidationContext) -> ValidationOutcome:
        """Cadena del alta más la comprobación de propiedad; la regla de fechas distingue la edición por existing_bid."""
        return self._update_chain.validate(context)

    def validate_approve_bid(self, context: ValidationContext) -> ValidationOutcome:
        return self._approve_chain.validate(context)

    def validate_extend_deadline(self, context: ValidationContext) -> ValidationOutcome:
        return self._extend_chain.validate(context)

    def validate_review_permission(self, context: ValidationContext) -> ValidationOutcome:
        """Quién puede aprobar o rechazar; se ejecuta antes de validate_approve_bid."""
        return self._review_chain.validate(context)

    def validate_edit_permission(self, context: ValidationContext) -> ValidationOutcome:
        """Rol de gestión y licitación de la propia organización, sin mirar el contenido."""
        return self._edit_permission_chain.validate(context)

    def validate_dates(self, context: ValidationContext) -> ValidationOutcome:
        return self.validate_with_keys(context, RuleKey.BID_DATES)

    def validate_prices(self, context: ValidationContext) -> ValidationOutcome:
        return self.validate_with_keys(context, RuleKey.BID_PRICE)

    def validate_authorization(self, context: ValidationContext) -> ValidationOutcome:
        return self.validate_with_keys(context, RuleKey.USER_AUTHORIZATION)

    # ----- Cadenas a medida -----

    def validate_with_keys(self, context: ValidationContext, *keys: RuleKey | str) -> ValidationOutcome:
        """Cadena a medida a partir de claves del registro (p. ej. solo fechas al ampliar plazos)."""
        return self.validate_with_rules(context, [self.rule(key) for key in keys])

    def validate_with_rules(self, context: ValidationContext, rules: Iterable[Rule]) -> ValidationOutcome:
        """
        Ejecuta una lista arbitraria de reglas en el orden dado.

        Antepone ContextGuardRule si la lista no empieza ya por ella. Una lista
        vacía solo comprueba que el contexto esté bien formado.
        """
        rules = list(rules)
        if not rules or not isinstance(rules[0], ContextGuardRule):
            rules.insert(0, self.rule(RuleKey.CONTEXT_GUARD))
        return ValidationChain(rules).validate(context)
