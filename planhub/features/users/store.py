"""User lookup consumed by the admin access check."""

from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from planhub.core.database import users
from planhub.models.user import User


class UserLookup(Protocol):
    def find_by_id(self, user_id: str) -> Optional[User]: ...


class SqlUserStore:
    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, user_id: str) -> Optional[User]:
        row = self.session.execute(
            select(users.c.id, users.c.email, users.c.is_admin).where(users.c.id == user_id)
        ).first()
        if not row:
            return None
        return User(id=row.id, email=row.email, is_admin=bool(row.is_admin))
