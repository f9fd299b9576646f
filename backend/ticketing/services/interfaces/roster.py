"""
Invite roster interface: the externally maintained list of issued invite codes.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from pydantic import BaseModel


class RosterEntry(BaseModel):
    code: str
    group: str = ""
    name: str = ""


class RosterSource(ABC):
    """
    Read-only source of issued invite codes.

    Codes are returned upper-cased. Fetch failures raise UpstreamUnavailable.
    """

    @abstractmethod
    async def list_entries(self) -> list[RosterEntry]:
        pass

    async def list_valid_codes(self) -> set[str]:
        return {entry.code for entry in await self.list_entries()}

    async def get_code_details(self, code: str) -> Optional[RosterEntry]:
        for entry in await self.list_entries():
            if entry.code == code:
                return entry
        return None


class StaticRoster(RosterSource):
    """Roster from a fixed list of codes (settings.ROSTER_STATIC_CODES or tests)."""

    def __init__(self, codes: Iterable[str] = (), entries: Iterable[RosterEntry] = ()):
        self._entries = [RosterEntry(code=c.strip().upper()) for c in codes if c.strip()]
        self._entries.extend(
            RosterEntry(code=e.code.strip().upper(), group=e.group, name=e.name) for e in entries
        )

    async def list_entries(self) -> list[RosterEntry]:
        return list(self._entries)
