"""
Identity capability consumed by sessions.

The hosting platform owns who the caller is and who moderates a community;
the scheduler only asks the two questions below.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Mapping, Optional

ANONYMOUS = "<anon>"


class IdentityProvider(ABC):

    @abstractmethod
    async def get_current_username(self) -> str:
        pass

    @abstractmethod
    async def get_moderator_flag(self, username: str, community: str) -> bool:
        pass


class StaticIdentityProvider(IdentityProvider):
    """
    Fixed answers: one caller, a community -> moderators mapping.

    Backs the HTTP surface (caller taken from the connection) and serves as
    the deterministic double in tests.
    """

    def __init__(
        self,
        username: Optional[str],
        moderators: Optional[Mapping[str, Iterable[str]]] = None,
    ):
        self.username = username or ANONYMOUS
        self.moderators = {
            community: set(names) for community, names in (moderators or {}).items()
        }

    async def get_current_username(self) -> str:
        return self.username

    async def get_moderator_flag(self, username: str, community: str) -> bool:
        if username == ANONYMOUS:
            return False
        return username in self.moderators.get(community, set())
