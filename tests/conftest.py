"""
Fixtures compartidas: configuración general, actores, una licitación válida,
reloj fijo y repositorios en memoria para no tocar Supabase.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

import pytest

from backend.models import AppGeneralSettings, Bid, BidStatus, BidSubmission, BidType, CurrentUser
from backend.notifications import Audience, BidEmailService
from backend.roles import UserType
from backend.services import BidPriceCalculationService, BidService
from backend.validation import BidValidationService

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
ORG_ID = UUID("11111111-1111-1111-1111-111111111111")
OTHER_ORG_ID = UUID("22222222-2222-2222-2222-222222222222")


def fixed_clock() -> datetime:
    return NOW


# ----- Datos -----


@pytest.fixture
def settings() -> AppGeneralSettings:
    return AppGeneralSettings(
        min_tanafos_price=Decimal("50"),
        tanafos_percentage=Decimal("5"),
        vat_percentage=Decimal("15"),
        max_bid_document_price=Decimal("100000"),
        stopping_period_days=7,
    )


@pytest.fixture
def association_user() -> CurrentUser:
    return CurrentUser(
        user_id="entity-user",
        email="entidad@example.org",
        role=UserType.ASSOCIATION,
        org_id=ORG_ID,
        full_name="Asociación Ejemplo",
    )


@pytest.fixture
def admin_user() -> CurrentUser:
    return CurrentUser(user_id="admin-user", email="admin@example.org", role=UserType.ADMIN, full_name="Ana Admin")


@pytest.fixture
def provider_user() -> CurrentUser:
    return CurrentUser(user_id="provider-user", email="proveedor@example.org", role=UserType.PROVIDER)


def make_submission(**overrides: Any) -> BidSubmission:
    data: Dict[str, Any] = {
        "bid_name": "Suministro de material escolar",
        "description": "Material para 12 centros",
        "ref_number": "REF-2025-001",
        "bid_type_id": BidType.PUBLIC.value,
        "region_ids": [1, 2],
        "industry_ids": [7],
        "last_date_receiving_enquiries": NOW + timedelta(days=5),
        "last_date_offers_submission": NOW + timedelta(days=10),
        "offers_opening_date": NOW + timedelta(days=12),
        "expected_anchoring_date": NOW + timedelta(days=20),
        "association_fees": Decimal("1000"),
        "is_financial_insurance_required": False,
    }
    data.update(overrides)
    return BidSubmission(**data)


def make_bid(**overrides: Any) -> Bid:
    data = make_submission().model_dump()
    data.update(
        id=42,
        organization_id=ORG_ID,
        organization_name="Asociación Ejemplo",
        status=BidStatus.PENDING_REVIEW,
        created_by="entity-user",
        creation_date=NOW - timedelta(days=3),
    )
    data.update(overrides)
    return Bid(**data)


@pytest.fixture
def submission() -> BidSubmission:
    return make_submission()


@pytest.fixture
def existing_bid() -> Bid:
    return make_bid()


@pytest.fixture
def validation_service() -> BidValidationService:
    return BidValidationService(clock=fixed_clock)


# ----- Dobles en memoria -----


class InMemoryBidsRepository:
    def __init__(self, bids: Optional[List[Bid]] = None) -> None:
        self.bids: Dict[int, Bid] = {b.id: b for b in bids or []}
        self.writes: List[Dict[str, Any]] = []
        self._next_id = 100

    def get_bid(self, bid_id: int) -> Optional[Bid]:
        return self.bids.get(bid_id)

    def create_bid(self, data: Dict[str, Any]) -> Bid:
        self.writes.append(dict(data))
        bid = Bid(**{**data, "id": self._next_id})
        self.bids[bid.id] = bid
        self._next_id += 1
        return bid

    def update_bid(self, bid_id: int, data: Dict[str, Any]) -> Bid:
        self.writes.append(dict(data))
        current = self.bids[bid_id].model_dump()
        current.update({k: v for k, v in data.items() if k in Bid.model_fields and k != "id"})
        bid = Bid(**current)
        self.bids[bid_id] = bid
        return bid


class FakeSettingsRepository:
    def __init__(self, settings: Optional[AppGeneralSettings]) -> None:
        self._settings = settings

    def get_general_settings(self) -> Optional[AppGeneralSettings]:
        return self._settings


class RecordingEmailSender:
    """EmailSender que guarda cada envío en memoria."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    def send(self, recipients, subject, template_name, content) -> None:
        self.sent.append({
            "recipients": list(recipients),
            "subject": subject,
            "template_name": template_name,
            "content": content,
        })

    def templates(self) -> List[str]:
        return [s["template_name"] for s in self.sent]


class StaticDirectory:
    """RecipientDirectory con direcciones fijas por audiencia."""

    def __init__(self, recipients: Optional[Dict[Audience, List[str]]] = None) -> None:
        self.recipients = recipients if recipients is not None else {
            Audience.BID_OWNER: ["entidad@example.org"],
            Audience.BID_FOLLOWERS: ["seguidor1@example.org", "seguidor2@example.org"],
            Audience.INDUSTRY_PROVIDERS: ["proveedor1@example.org", "proveedor2@example.org"],
        }
        self.lookups: List[Audience] = []

    def get_recipients(self, audience: Audience, bid: Bid) -> List[str]:
        self.lookups.append(audience)
        return list(self.recipients.get(audience, []))


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def directory() -> StaticDirectory:
    return StaticDirectory()


@pytest.fixture
def bids_repository(existing_bid) -> InMemoryBidsRepository:
    return InMemoryBidsRepository([existing_bid])


@pytest.fixture
def bid_service(bids_repository, settings, validation_service, email_sender, directory) -> BidService:
    return BidService(
        bids_repository=bids_repository,
        settings_repository=FakeSettingsRepository(settings),
        validation=validation_service,
        pricing=BidPriceCalculationService(),
        emails=BidEmailService(email_sender, directory),
        clock=fixed_clock,
    )
