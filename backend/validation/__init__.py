"""
Validación de licitaciones: reglas de negocio independientes encadenadas en
orden fijo, con corte en el primer fallo.

El resultado (ValidationOutcome) lo traduce la capa HTTP; los servicios no
lanzan excepciones por fallos de negocio.
"""

from backend.validation.chain import ChainBuilder, ValidationChain
from backend.validation.context import ValidationContext
from backend.validation.outcome import HttpErrorCode, ValidationOutcome
from backend.validation.rules import (
    BidDatesRule,
    BidOwnershipRule,
    BidPriceRule,
    ContextGuardRule,
    DeadlineExtensionRule,
    RequiredFieldsRule,
    ReviewerAuthorizationRule,
    Rule,
    RuleKey,
    UserAuthorizationRule,
    create_rule,
    normalize_financial_insurance,
)
from backend.validation.service import BidValidationService

__all__ = [
    "BidDatesRule",
    "BidOwnershipRule",
    "BidPriceRule",
    "BidValidationService",
    "ChainBuilder",
    "ContextGuardRule",
    "DeadlineExtensionRule",
    "HttpErrorCode",
    "RequiredFieldsRule",
    "ReviewerAuthorizationRule",
    "Rule",
    "RuleKey",
    "UserAuthorizationRule",
    "ValidationChain",
    "ValidationContext",
    "ValidationOutcome",
    "create_rule",
    "normalize_financial_insurance",
]
