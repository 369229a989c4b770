"""
Process-local user accounts. Neither backend persists users.
"""
import logging
from typing import Dict, Optional

from app.models.domain import User

logger = logging.getLogger(__name__)


class UserRegistry:
    """Users keyed by a sequential integer id."""

    def __init__(self):
        self._users: Dict[int, User] = {}
        self._next_id = 1

    def get(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    def create(self, username: str, password: str) -> User:
        user = User(id=self._next_id, username=username, password=password)
        self._next_id += 1
        self._users[user.id] = user
        return user

    def update(self, user_id: int, username: str, password: str) -> Optional[User]:
        """Replace username and password. Returns None for an unknown id."""
        if user_id not in self._users:
            return None
        user = User(id=user_id, username=username, password=password)
        self._users[user_id] = user
        return user

    def ensure_account(self, username: str, password: str) -> User:
        """Create ``username`` if no account with that name exists."""
        existing = self.get_by_username(username)
        if existing is not None:
            return existing
        user = self.create(username, password)
        logger.info(f"Created default account '{username}'")
        return user
