"""
Infrastructure layer - external system integrations.
Keeps the booking lifecycle clean from HTTP and provider details.
"""

from .cashfree import CashfreeGateway
from .csv_roster import CsvRosterSource
from .resend_notifier import ResendNotifier
from .sheet_mirror import SheetMirror

__all__ = ['CashfreeGateway', 'CsvRosterSource', 'ResendNotifier', 'SheetMirror']
