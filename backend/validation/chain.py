"""
Cadena de reglas fail-fast.

La cadena es una tupla inmutable de reglas que se recorre en orden: la primera
regla que falla corta la ejecución y su resultado es el de la cadena. Las
excepciones de una regla no se capturan (son errores de programación).
"""

from typing import Iterable, List, Tuple

import structlog

from backend.validation.context import ValidationContext
from backend.validation.outcome import ValidationOutcome
from backend.validation.rules import Rule

logger = structlog.get_logger(__name__)


class ValidationChain:
    """Secuencia ordenada de reglas con un único punto de entrada."""

    def __init__(self, rules: Iterable[Rule]) -> None:
        rules = tuple(rules)
        for rule in rules:
            if not isinstance(rule, Rule):
                raise TypeError(f"{rule!r} no es una regla de validación.")
        self._rules: Tuple[Rule, ...] = rules

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    @property
    def rule_names(self) -> List[str]:
        return [rule.name for rule in self._rules]

    def __len__(self) -> int:
        return len(self._rules)

    def validate(self, context: ValidationContext | None) -> ValidationOutcome:
        """Ejecuta las reglas en orden y devuelve el primer fallo, o éxito si pasan todas."""
        for rule in self._rules:
            outcome = rule.evaluate(context)
            if not outcome.is_valid:
                logger.debug(
                    "bid_validation_failed",
                    rule=rule.name,
                    error_code=outcome.error_code,
                )
                return outcome
        return ValidationOutcome.success()


class ChainBuilder:
    """Ayuda de montaje: acumula reglas en orden y construye la cadena."""

    def __init__(self) -> None:
        self._rules: List[Rule] = []

    def add(self, rule: Rule) -> "ChainBuilder":
        self._rules.append(rule)
        return self

    def extend(self, *rules: Rule) -> "ChainBuilder":
        self._rules.extend(rules)
        return self

    def clear(self) -> "ChainBuilder":
        self._rules.clear()
        return self

    @property
    def count(self) -> int:
        return len(self._rules)

    def build(self) -> ValidationChain:
        return ValidationChain(self._rules)
