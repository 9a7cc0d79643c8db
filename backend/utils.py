"""
Utilidades compartidas para el backend.

Fechas: el frontend envía ISO con o sin zona horaria; todo se compara en UTC.
Importes: Decimal redondeado a 8 decimales (mismo criterio que el cálculo del pliego).
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

MONEY_PRECISION = Decimal("0.00000001")


def utc_now() -> datetime:
    """Reloj por defecto de las reglas de fechas (aware, UTC)."""
    return datetime.now(timezone.utc)


def as_utc(valor: datetime) -> datetime:
    """Las fechas sin zona horaria se interpretan como UTC."""
    if valor.tzinfo is None:
        return valor.replace(tzinfo=timezone.utc)
    return valor.astimezone(timezone.utc)


def same_calendar_day(a: datetime | None, b: datetime | None) -> bool:
    """True si ambas fechas existen y caen en el mismo día (UTC)."""
    if a is None or b is None:
        return False
    return as_utc(a).date() == as_utc(b).date()


def round_money(valor: Union[Decimal, int, float, str]) -> Decimal:
    """Redondeo bancario a 8 decimales."""
    return Decimal(str(valor)).quantize(MONEY_PRECISION, rounding=ROUND_HALF_EVEN)


def to_json_value(valor: Any) -> Any:
    """Convierte Decimal, fechas, enums y UUID a tipos serializables para Supabase."""
    if isinstance(valor, Decimal):
        return float(valor)
    if isinstance(valor, (datetime, date)):
        return valor.isoformat()
    if isinstance(valor, Enum):
        return valor.value
    if isinstance(valor, UUID):
        return str(valor)
    return valor


def fmt_date(valor: Union[str, date, datetime, None]) -> str:
    """Convierte fecha (ISO o date/datetime) a formato DD/MM/YYYY para los correos."""
    if not valor:
        return ""
    try:
        if isinstance(valor, (date, datetime)):
            return valor.strftime("%d/%m/%Y")
        valor_clean = valor.split("T")[0]
        dt = datetime.strptime(valor_clean, "%Y-%m-%d")
        return dt.strftime("%d/%m/%Y")
    except ValueError:
        return str(valor)
