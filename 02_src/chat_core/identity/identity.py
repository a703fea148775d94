"""Identity service: who is looking at the chat."""

from typing import Protocol

from ..errors import IdentityUnavailable
from ..models import Account


class IIdentityService(Protocol):
    """Resolves the current viewer."""

    async def get_current_user(self) -> Account:
        """Return the current viewer. Raises IdentityUnavailable."""
        ...


class StaticIdentity:
    """Identity fixed at construction (one session per authenticated viewer)."""

    def __init__(self, user_id: str | None):
        self._user_id = user_id

    async def get_current_user(self) -> Account:
        if not self._user_id:
            raise IdentityUnavailable("No user found")
        return Account(id=self._user_id)
