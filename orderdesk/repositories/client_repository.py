"""Client and user lookups needed by the order engine and statistics."""
from typing import List, Optional

from sqlalchemy import func

from orderdesk.models import AppUser, Client, UserTenant, UserRole
from orderdesk.repositories.base_repository import BaseRepository


class ClientRepository(BaseRepository):
    
    def _query(self, representative_id: Optional[int] = None):
        query = self.session.query(Client).filter(Client.tenant_id == self.tenant_id)
        if representative_id is not None:
            query = query.filter(Client.representative_id == representative_id)
        return query
    
    def find_by_id(self, client_id: int) -> Optional[Client]:
        return self._query().filter(Client.id == client_id).first()
    
    def list_all(self, representative_id: Optional[int] = None) -> List[Client]:
        return self._query(representative_id).order_by(Client.name).all()
    
    def count(self, representative_id: Optional[int] = None, active_only: bool = False) -> int:
        query = self.session.query(func.count(Client.id)).filter(Client.tenant_id == self.tenant_id)
        if representative_id is not None:
            query = query.filter(Client.representative_id == representative_id)
        if active_only:
            query = query.filter(Client.active == True)  # noqa: E712
        return query.scalar() or 0


class UserRepository(BaseRepository):
    """Users as seen from inside one tenant (membership + role)."""
    
    def _members(self):
        return (
            self.session.query(AppUser)
            .join(UserTenant, UserTenant.user_id == AppUser.id)
            .filter(UserTenant.tenant_id == self.tenant_id, UserTenant.active == True)  # noqa: E712
        )
    
    def find_by_id(self, user_id: int) -> Optional[AppUser]:
        return self._members().filter(AppUser.id == user_id).first()
    
    def list_representatives(self) -> List[AppUser]:
        return (
            self._members()
            .filter(UserTenant.role == UserRole.REPRESENTATIVE.value, AppUser.active == True)  # noqa: E712
            .order_by(AppUser.id)
            .all()
        )
