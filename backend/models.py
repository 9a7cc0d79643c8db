from datetime import datetime
from decimal import Decimal
from enum import Enum, IntEnum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from backend.roles import DEFAULT_ROLE, UserType


# ----- Tipos de licitación -----
# IDs según la tabla de tipos de la plataforma. Extensible si se añaden más tipos.
class BidType(IntEnum):
    """Tipos de licitación. Solo PUBLIC y PRIVATE admiten garantía financiera."""

    PUBLIC = 1
    PRIVATE = 2
    HABILITATION = 3
    INSTANT = 4
    FREELANCING = 5


# Tipos que admiten garantía financiera (is_financial_insurance_required)
BID_TYPES_WITH_FINANCIAL_INSURANCE = {BidType.PUBLIC, BidType.PRIVATE}


class BidStatus(str, Enum):
    """Estados de una licitación en la plataforma."""

    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    PUBLISHED = "published"
    REJECTED = "rejected"


# ----- Auth (Supabase Auth + profiles) -----


class CurrentUser(BaseModel):
    """
    Usuario autenticado inyectado por get_current_user.
    Es el "actor" que consumen las reglas de autorización.
    """

    user_id: str = Field(..., description="UUID del usuario (auth.users.id).")
    email: str = Field("", description="Correo electrónico.")
    role: UserType = Field(default=DEFAULT_ROLE, description="Tipo de usuario en la plataforma.")
    org_id: Optional[UUID] = Field(None, description="UUID de la organización (entidades y donantes).")
    full_name: Optional[str] = Field(None, description="Nombre visible en correos y auditoría.")


# ----- Configuración general (tbl_app_general_settings) -----


class AppGeneralSettings(BaseModel):
    """
    Umbrales globales de la plataforma. Se leen una vez por petición y viajan
    dentro del contexto de validación, nunca como estado global.
    """

    min_tanafos_price: Decimal = Field(Decimal("0"), ge=0, description="Comisión mínima de la plataforma.")
    tanafos_percentage: Decimal = Field(Decimal("0"), ge=0, description="Porcentaje de comisión de la plataforma.")
    vat_percentage: Decimal = Field(Decimal("0"), ge=0, description="Porcentaje de IVA.")
    max_bid_document_price: Decimal = Field(Decimal("0"), ge=0, description="Precio máximo del pliego.")
    stopping_period_days: int = Field(0, ge=0, description="Días mínimos entre apertura de ofertas y adjudicación.")


# ----- Licitaciones (tbl_bids) -----


class BidSubmission(BaseModel):
    """
    Payload de alta/edición de una licitación.

    Es mutable a propósito: la regla de precio limpia los campos de garantía
    financiera cuando el tipo de licitación no los admite.
    """

    id: Optional[int] = Field(None, description="ID de la licitación; vacío o 0 en altas.")
    bid_name: Optional[str] = Field(None, description="Nombre de la licitación.")
    description: Optional[str] = Field(None, description="Descripción / notas.")
    ref_number: Optional[str] = Field(None, description="Nº de referencia.")
    bid_type_id: Optional[int] = Field(None, description="Tipo de licitación (BidType).")
    is_draft: bool = Field(False, description="Borrador: exento de campos obligatorios y fechas.")
    region_ids: List[int] = Field(default_factory=list, description="Regiones de la licitación.")
    industry_ids: List[int] = Field(default_factory=list, description="Sectores para avisos a proveedores.")
    last_date_receiving_enquiries: Optional[datetime] = Field(None, description="Último día para consultas.")
    last_date_offers_submission: Optional[datetime] = Field(None, description="Último día para presentar ofertas.")
    offers_opening_date: Optional[datetime] = Field(None, description="Fecha de apertura de ofertas.")
    expected_anchoring_date: Optional[datetime] = Field(None, description="Fecha prevista de adjudicación.")
    association_fees: Optional[Decimal] = Field(None, description="Precio del pliego fijado por la entidad.")
    is_financial_insurance_required: Optional[bool] = Field(None, description="Exige garantía financiera.")
    financial_insurance_value: Optional[Decimal] = Field(None, description="Importe de la garantía financiera.")

    @property
    def is_creation(self) -> bool:
        """True si el payload no identifica una licitación existente."""
        return not self.id


class Bid(BidSubmission):
    """Licitación persistida (tbl_bids)."""

    id: int = Field(..., description="ID de la licitación.")
    organization_id: Optional[UUID] = Field(None, description="Organización propietaria.")
    organization_name: Optional[str] = Field(None, description="Nombre de la entidad convocante.")
    status: BidStatus = Field(BidStatus.DRAFT, description="Estado de la licitación.")
    tanafos_fees: Optional[Decimal] = Field(None, description="Comisión de la plataforma.")
    bid_documents_price: Optional[Decimal] = Field(None, description="Precio total del pliego (con IVA).")
    created_by: Optional[str] = Field(None, description="Usuario que creó la licitación.")
    creation_date: Optional[datetime] = None
    modification_date: Optional[datetime] = None


class BidRejection(BaseModel):
    """Payload para rechazar una licitación en revisión (POST /bids/{id}/reject)."""

    rejection_notes: str = Field(..., min_length=1, description="Motivo del rechazo, se envía a la entidad.")


class BidDeadlineExtension(BaseModel):
    """Payload para ampliar plazos (POST /bids/{id}/extend-deadline)."""

    last_date_offers_submission: datetime = Field(..., description="Nuevo último día para presentar ofertas.")
    offers_opening_date: Optional[datetime] = Field(None, description="Nueva fecha de apertura (opcional).")
    last_date_receiving_enquiries: Optional[datetime] = Field(None, description="Nuevo último día de consultas.")
    extension_reason: Optional[str] = Field(None, description="Motivo de la ampliación.")


class PricePreviewRequest(BaseModel):
    """Payload para previsualizar el precio del pliego sin persistir nada."""

    association_fees: Decimal = Field(..., description="Precio fijado por la entidad.")
    bid_type_id: Optional[int] = Field(None, description="Tipo de licitación; por defecto PUBLIC.")
