"""
Repositorio de perfiles (public.profiles) y seguidores de licitaciones (tbl_bid_followers).

Sirve a dos consumidores: deps.get_current_user (tipo de usuario y organización)
y los correos de licitaciones (RecipientDirectory).
"""

from typing import Any, Dict, List, Optional

from backend.models import Bid
from backend.notifications.models import Audience
from backend.repositories.base_repository import BaseRepository
from backend.roles import UserType


class ProfilesRepository(BaseRepository):
    TABLE_PROFILES = "profiles"
    TABLE_FOLLOWERS = "tbl_bid_followers"

    def __init__(self, client) -> None:
        super().__init__(client=client, table_name=self.TABLE_PROFILES, pk_column="id")

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """organization_id, user_type y full_name del usuario, o None si no tiene perfil."""
        return self.get_by_id(user_id, select="organization_id, user_type, full_name")

    def get_recipients(self, audience: Audience, bid: Bid) -> List[str]:
        if audience == Audience.BID_OWNER:
            if bid.organization_id is None:
                return []
            rows = self.get_all(select="email", organization_id=str(bid.organization_id))
        elif audience == Audience.BID_FOLLOWERS:
            rows = (
                self._client.table(self.TABLE_FOLLOWERS)
                .select("email")
                .eq("bid_id", bid.id)
                .execute()
            ).data or []
        else:
            if not bid.industry_ids:
                return []
            rows = (
                self._table()
                .select("email")
                .in_("user_type", [UserType.PROVIDER.value, UserType.FREELANCER.value])
                .in_("industry_id", list(bid.industry_ids))
                .execute()
            ).data or []
        # Sin duplicados, manteniendo el orden
        emails = [r.get("email") for r in rows if r.get("email")]
        return list(dict.fromkeys(emails))
