"""
Invite roster read from a published CSV export of the invite sheet.

Column positions are configurable; by default the group label is column A
and the invite code column E. Rows without a code are skipped.
"""

import csv
import io
from typing import Optional

import httpx

from ticketing.core.config import Settings
from ticketing.core.errors import UpstreamUnavailable
from ticketing.core.logging import get_logger
from ticketing.infrastructure.http import build_client
from ticketing.services.interfaces.roster import RosterEntry, RosterSource

logger = get_logger(__name__)


def parse_roster_csv(text: str, code_column: int = 4, group_column: int = 0) -> list[RosterEntry]:
    reader = csv.reader(io.StringIO(text))
    next(reader, None)  # header
    entries: dict[str, RosterEntry] = {}
    for row in reader:
        if len(row) <= code_column:
            continue
        code = row[code_column].strip().upper()
        if not code:
            continue
        group = row[group_column].strip() if len(row) > group_column else ""
        name = row[1].strip() if len(row) > 1 else ""
        entries.setdefault(code, RosterEntry(code=code, group=group, name=name))
    return list(entries.values())


class CsvRosterSource(RosterSource):
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = settings.ROSTER_CSV_URL
        self.code_column = settings.ROSTER_CODE_COLUMN
        self.group_column = settings.ROSTER_GROUP_COLUMN
        self.client = build_client(settings, transport=transport)

    async def list_entries(self) -> list[RosterEntry]:
        try:
            response = await self.client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("roster_fetch_failed", error=repr(e))
            raise UpstreamUnavailable("Invite roster unavailable", upstream="roster")

        entries = parse_roster_csv(response.text, self.code_column, self.group_column)
        logger.info("roster_fetched", codes=len(entries))
        return entries

    async def aclose(self) -> None:
        await self.client.aclose()
