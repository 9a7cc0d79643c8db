"""
Repositorios sobre Supabase.

Devuelven modelos Pydantic (Bid, AppGeneralSettings) y nunca validan reglas
de negocio: eso lo hace backend.validation antes de escribir.
"""

from backend.repositories.base_repository import BaseRepository
from backend.repositories.bids_repository import BidsRepository
from backend.repositories.email_outbox_repository import EmailOutboxRepository
from backend.repositories.profiles_repository import ProfilesRepository
from backend.repositories.settings_repository import SettingsRepository

__all__ = [
    "BaseRepository",
    "BidsRepository",
    "EmailOutboxRepository",
    "ProfilesRepository",
    "SettingsRepository",
]
