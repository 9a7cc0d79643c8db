"""
Dependencias de FastAPI.

get_current_user valida el JWT de Supabase Auth y enriquece el usuario con
organization_id, user_type y full_name desde public.profiles (caché por user_id
para evitar consultas repetidas en cada request).

get_bid_service monta el servicio de licitaciones con sus repositorios.
"""

import threading
import time
from typing import Annotated, Optional, Tuple

from uuid import UUID

import jwt
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client

from backend.config import EMAIL_BATCH_SIZE, SKIP_AUTH, SUPABASE_JWT_SECRET
from backend.database import get_supabase_client
from backend.models import CurrentUser
from backend.notifications import BidEmailService
from backend.repositories import (
    BidsRepository,
    EmailOutboxRepository,
    ProfilesRepository,
    SettingsRepository,
)
from backend.roles import UserType, normalize_role
from backend.services import BidPriceCalculationService, BidService
from backend.validation import BidValidationService

logger = structlog.get_logger(__name__)

security = HTTPBearer(auto_error=False)

# Caché de profiles: user_id -> (org_id, role, full_name, expiry_timestamp)
# TTL 60 segundos para equilibrar rendimiento y actualizaciones de rol/org
_PROFILE_CACHE: dict[str, Tuple[Optional[UUID], UserType, Optional[str], float]] = {}
_PROFILE_CACHE_LOCK = threading.Lock()
_PROFILE_CACHE_TTL_SECONDS = 60

_DUMMY_ORG_ID = UUID("00000000-0000-0000-0000-000000000001")


def _get_cached_profile(user_id: str) -> Tuple[Optional[UUID], UserType, Optional[str]] | None:
    """Devuelve (org_id, role, full_name) si está en caché y no expirado; None si miss."""
    with _PROFILE_CACHE_LOCK:
        entry = _PROFILE_CACHE.get(user_id)
        if not entry:
            return None
        org_id, role, full_name, expiry = entry
        if time.monotonic() >= expiry:
            del _PROFILE_CACHE[user_id]
            return None
        return (org_id, role, full_name)


def _set_cached_profile(user_id: str, org_id: Optional[UUID], role: UserType, full_name: Optional[str]) -> None:
    """Guarda profile en caché con TTL."""
    with _PROFILE_CACHE_LOCK:
        _PROFILE_CACHE[user_id] = (org_id, role, full_name, time.monotonic() + _PROFILE_CACHE_TTL_SECONDS)


def _get_dummy_user(client: Client) -> CurrentUser:
    """Usuario dummy para desarrollo cuando SKIP_AUTH=true: una entidad que puede crear licitaciones."""
    try:
        org_resp = client.table("organizations").select("id").limit(1).execute()
        org_id = UUID(str(org_resp.data[0]["id"])) if org_resp.data else _DUMMY_ORG_ID
    except Exception:
        logger.warning("dummy_user_without_organization")
        org_id = _DUMMY_ORG_ID
    return CurrentUser(
        user_id="dev-dummy-user",
        email="dev@localhost",
        org_id=org_id,
        role=UserType.ASSOCIATION,
        full_name="Entidad de desarrollo",
    )


def _decode_token(token: str, client: Client) -> dict:
    """Verifica el JWT con el secreto de Supabase; si falla, valida el token contra Supabase Auth."""
    try:
        return jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            audience="authenticated",
            algorithms=["HS256"],
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expirado.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError:
        pass

    # Fallback: si la verificación local falla (ej. Supabase usa ECC), validar con la API
    try:
        user_resp = client.auth.get_user(token)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido o expirado.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user_resp or not user_resp.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"sub": str(user_resp.user.id), "email": user_resp.user.email or ""}


def get_client() -> Client:
    return get_supabase_client()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    client: Annotated[Client, Depends(get_client)],
) -> CurrentUser:
    """
    Valida el JWT Bearer y devuelve el usuario con su tipo y organización.

    1. Si SKIP_AUTH=true y no hay token, devuelve usuario dummy (desarrollo).
    2. Verifica el token con el JWT secret de Supabase.
    3. Obtiene el profile (organization_id, user_type, full_name) desde public.profiles.
    4. Devuelve CurrentUser enriquecido.
    """
    if credentials is None:
        if SKIP_AUTH:
            return _get_dummy_user(client)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No se proporcionó token de autorización.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not SUPABASE_JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="SUPABASE_JWT_SECRET no configurado. Añade la variable en .env.",
        )

    payload = _decode_token(credentials.credentials, client)
    user_id = payload.get("sub")
    email = payload.get("email") or ""

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token malformado: falta sub.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Caché: evitar consultar profiles en cada request
    cached = _get_cached_profile(user_id)
    if cached:
        org_id, role, full_name = cached
        return CurrentUser(user_id=user_id, email=email, org_id=org_id, role=role, full_name=full_name)

    try:
        profile = ProfilesRepository(client).get_profile(user_id)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error obteniendo perfil: {e!s}",
        ) from e

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No existe perfil para este usuario. Contacta al administrador.",
        )

    # Los administradores no pertenecen a ninguna organización
    org_id = profile.get("organization_id")
    if isinstance(org_id, str):
        org_id = UUID(org_id)
    role = normalize_role(profile.get("user_type"))
    full_name = profile.get("full_name")

    _set_cached_profile(user_id, org_id, role, full_name)

    return CurrentUser(user_id=user_id, email=email, org_id=org_id, role=role, full_name=full_name)


def get_bid_service(client: Annotated[Client, Depends(get_client)]) -> BidService:
    """Servicio de licitaciones por request; los repositorios comparten el cliente singleton."""
    profiles = ProfilesRepository(client)
    return BidService(
        bids_repository=BidsRepository(client),
        settings_repository=SettingsRepository(client),
        validation=BidValidationService(),
        pricing=BidPriceCalculationService(),
        emails=BidEmailService(
            sender=EmailOutboxRepository(client),
            directory=profiles,
            batch_size=EMAIL_BATCH_SIZE,
        ),
    )


# Alias para inyección en routers
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
BidServiceDep = Annotated[BidService, Depends(get_bid_service)]
