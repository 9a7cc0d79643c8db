"""
Tipos de usuario de la plataforma.

  - super_admin | admin: revisan y editan licitaciones existentes, no las crean.
  - association (entidad convocante) | donor: crean y editan sus licitaciones.
  - provider | freelancer: participan en licitaciones, no las gestionan.
"""

from enum import Enum


class UserType(str, Enum):
    """Rol del actor tal y como viene en public.profiles.user_type."""

    ASSOCIATION = "association"
    DONOR = "donor"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    PROVIDER = "provider"
    FREELANCER = "freelancer"


DEFAULT_ROLE = UserType.PROVIDER

# Roles que pueden crear o editar licitaciones
BID_EDITOR_ROLES = frozenset({
    UserType.ASSOCIATION,
    UserType.DONOR,
    UserType.ADMIN,
    UserType.SUPER_ADMIN,
})

# Roles de administración: solo editan licitaciones existentes
ADMIN_ROLES = frozenset({UserType.ADMIN, UserType.SUPER_ADMIN})


def is_admin(role: UserType | None) -> bool:
    """True si el rol es admin o super_admin."""
    return role in ADMIN_ROLES


def normalize_role(role: str | None) -> UserType:
    """Devuelve siempre un UserType. Valores antiguos ('entity', 'superadmin') se traducen."""
    if not role or not str(role).strip():
        return DEFAULT_ROLE
    r = str(role).strip().lower()
    if r == "entity":
        return UserType.ASSOCIATION
    if r == "superadmin":
        return UserType.SUPER_ADMIN
    try:
        return UserType(r)
    except ValueError:
        return DEFAULT_ROLE
