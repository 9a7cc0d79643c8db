"""
Resultado inmutable de una validación.

Un resultado se crea una vez (por una regla o por la cadena) y no se modifica
después. La capa HTTP lo traduce con error_code / http_error.
"""

from enum import Enum
from typing import Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, model_validator


class HttpErrorCode(str, Enum):
    """Clasificación de transporte que el router traduce a 401/403/400/409/404."""

    NOT_AUTHENTICATED = "not_authenticated"
    NOT_AUTHORIZED = "not_authorized"
    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


class ValidationOutcome(BaseModel):
    """
    Resultado de ejecutar una regla o una cadena de reglas.

    is_valid ⇔ errors vacío ⇔ failed_rule vacío. Las reglas devuelven el fallo
    ya anotado con su nombre (Rule.evaluate), así que fuera de una regla nunca
    se observa un fallo sin failed_rule.
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: Tuple[str, ...] = ()
    error_code: Optional[str] = None
    http_error: Optional[HttpErrorCode] = None
    failed_rule: Optional[str] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "ValidationOutcome":
        if self.is_valid and (self.errors or self.failed_rule or self.error_code):
            raise ValueError("Un resultado válido no puede llevar errores, código ni regla fallida.")
        if not self.is_valid and not self.errors:
            raise ValueError("Un resultado fallido necesita al menos un mensaje.")
        return self

    @classmethod
    def success(cls) -> "ValidationOutcome":
        return cls(is_valid=True)

    @classmethod
    def failure(
        cls,
        errors: Union[str, Sequence[str]],
        error_code: Optional[str] = None,
        http_error: Optional[HttpErrorCode] = HttpErrorCode.INVALID_INPUT,
    ) -> "ValidationOutcome":
        messages = (errors,) if isinstance(errors, str) else tuple(errors)
        return cls(is_valid=False, errors=messages, error_code=error_code, http_error=http_error)

    @classmethod
    def combine(cls, *outcomes: "ValidationOutcome") -> "ValidationOutcome":
        """
        Agrega resultados de reglas independientes (no la usa la cadena fail-fast).

        Concatena los mensajes en orden; solo es válido si todos lo son. El
        código, la clasificación y la regla son los del primer fallo.
        """
        failed = [o for o in outcomes if not o.is_valid]
        if not failed:
            return cls.success()
        first = failed[0]
        return cls(
            is_valid=False,
            errors=tuple(msg for o in failed for msg in o.errors),
            error_code=first.error_code,
            http_error=first.http_error,
            failed_rule=first.failed_rule,
        )

    def for_rule(self, rule_name: str) -> "ValidationOutcome":
        """Copia del fallo anotada con la regla que lo produjo."""
        if self.is_valid:
            return self
        return self.model_copy(update={"failed_rule": rule_name})

    @property
    def first_error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None

    @property
    def all_errors(self) -> str:
        return "; ".join(self.errors)
