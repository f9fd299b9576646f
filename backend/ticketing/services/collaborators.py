"""
Collaborator factory.
Wires the external adapters and the services that use them from Settings.

Selection:
- Gateway: Cashfree (always; missing credentials surface as upstream errors)
- Notifier: Resend when RESEND_API_KEY is set, otherwise NullNotifier
- Mirror: Apps Script sheet when MIRROR_URL is set, otherwise NullMirror
- Roster: CSV export when ROSTER_CSV_URL is set, otherwise ROSTER_STATIC_CODES
"""

from dataclasses import dataclass
from typing import Optional

from ticketing.core.config import Settings, get_settings
from ticketing.core.logging import get_logger
from ticketing.infrastructure import CashfreeGateway, CsvRosterSource, ResendNotifier, SheetMirror
from ticketing.services.checkin import CheckinService
from ticketing.services.event_catalog import all_qr_prefixes
from ticketing.services.interfaces import (
    Mirror,
    Notifier,
    NullMirror,
    NullNotifier,
    PaymentGateway,
    RosterSource,
    StaticRoster,
)
from ticketing.services.invite_registry import InviteRegistry
from ticketing.services.reconciliation import PaymentReconciler

logger = get_logger(__name__)


@dataclass
class Collaborators:
    settings: Settings
    gateway: PaymentGateway
    notifier: Notifier
    mirror: Mirror
    roster: RosterSource
    registry: InviteRegistry
    reconciler: PaymentReconciler
    checkin: CheckinService

    async def aclose(self) -> None:
        for adapter in (self.gateway, self.notifier, self.mirror, self.roster):
            close = getattr(adapter, "aclose", None)
            if close is not None:
                await close()


def build_collaborators(
    settings: Settings,
    gateway: Optional[PaymentGateway] = None,
    notifier: Optional[Notifier] = None,
    mirror: Optional[Mirror] = None,
    roster: Optional[RosterSource] = None,
    use_cache: bool = True,
) -> Collaborators:
    """Build the collaborator set; any adapter passed in replaces the configured one."""
    if gateway is None:
        gateway = CashfreeGateway(settings)
    if notifier is None:
        notifier = ResendNotifier(settings) if settings.RESEND_API_KEY else NullNotifier()
    if mirror is None:
        mirror = SheetMirror(settings) if settings.MIRROR_URL else NullMirror()
    if roster is None:
        if settings.ROSTER_CSV_URL:
            roster = CsvRosterSource(settings)
        else:
            roster = StaticRoster(codes=settings.ROSTER_STATIC_CODES)

    logger.info(
        "collaborators_configured",
        gateway=type(gateway).__name__,
        notifier=type(notifier).__name__,
        mirror=type(mirror).__name__,
        roster=type(roster).__name__,
    )

    prefix_tokens = settings.CHECKIN_CODE_PREFIXES or all_qr_prefixes()
    return Collaborators(
        settings=settings,
        gateway=gateway,
        notifier=notifier,
        mirror=mirror,
        roster=roster,
        registry=InviteRegistry(roster, use_cache=use_cache, cache_ttl=settings.ROSTER_CACHE_TTL),
        reconciler=PaymentReconciler(gateway, notifier, mirror, settings),
        checkin=CheckinService(mirror, prefix_tokens, mirror_timeout=settings.HTTP_TIMEOUT_SECONDS),
    )


# Singleton instance
_collaborators: Optional[Collaborators] = None


def get_collaborators() -> Collaborators:
    """Get the process-wide collaborator set."""
    global _collaborators
    if _collaborators is None:
        _collaborators = build_collaborators(get_settings())
    return _collaborators


async def close_collaborators() -> None:
    global _collaborators
    if _collaborators is not None:
        await _collaborators.aclose()
        _collaborators = None
