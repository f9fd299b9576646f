"""
Event registry: names, dates, reference prefixes and ticket pricing.

Add new events to EVENT_CONFIGS; booking creation, reference numbers and
check-in code parsing pick them up automatically.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Optional

from pydantic import BaseModel

PAISA = Decimal("0.01")


class TicketType(BaseModel):
    id: str
    name: str
    price: Decimal
    max_quantity: int = 1
    available: bool = True


class EventConfig(BaseModel):
    id: str
    name: str
    date: datetime
    venue: str = "TBD"
    reference_prefix: str
    ticket_types: list[TicketType]

    @property
    def qr_prefix(self) -> str:
        """Token printed before the reference number in ticket QR codes."""
        return f"SLANUP-{self.id.upper()}-"

    def ticket_type(self, ticket_type_id: str) -> Optional[TicketType]:
        for ticket_type in self.ticket_types:
            if ticket_type.id == ticket_type_id:
                return ticket_type
        return None


EVENT_CONFIGS: dict[str, EventConfig] = {
    "diwali": EventConfig(
        id="diwali",
        name="Slanup's BYOB Diwali Party 2025",
        date=datetime(2025, 10, 18, tzinfo=timezone.utc),
        reference_prefix="DIW",
        ticket_types=[
            TicketType(id="ultimate", name="ULTIMATE PARTY EXPERIENCE", price=Decimal("1699")),
        ],
    ),
    "luau": EventConfig(
        id="luau",
        name="Slanup's Tropical Luau 2025 - Hyderabad",
        date=datetime(2025, 11, 22, tzinfo=timezone.utc),
        reference_prefix="LUAU",
        ticket_types=[
            TicketType(id="ultimate", name="ULTIMATE LUAU EXPERIENCE", price=Decimal("1999")),
        ],
    ),
    "mafia-soiree": EventConfig(
        id="mafia-soiree",
        name="Slanup's Mafia Soiree",
        date=datetime(2024, 12, 31, tzinfo=timezone.utc),
        reference_prefix="MAFIA",
        ticket_types=[
            TicketType(id="ultimate", name="ULTIMATE MAFIA SOIREE EXPERIENCE", price=Decimal("1699")),
        ],
    ),
}


def get_event_config(event_id: str) -> Optional[EventConfig]:
    return EVENT_CONFIGS.get(event_id.strip().lower())


def all_qr_prefixes() -> list[str]:
    return [event.qr_prefix for event in EVENT_CONFIGS.values()]


def gateway_fee(amount: Decimal, fee_percent: float) -> Decimal:
    """Gateway charges on top of the ticket price, rounded up to the paisa."""
    fee = amount * Decimal(str(fee_percent)) / Decimal(100)
    return fee.quantize(PAISA, rounding=ROUND_CEILING)


def calculate_total(ticket_type: TicketType, count: int, fee_percent: float) -> Decimal:
    subtotal = ticket_type.price * count
    total = subtotal + gateway_fee(subtotal, fee_percent)
    return total.quantize(PAISA, rounding=ROUND_HALF_UP)
