"""
Collaborator interfaces for dependency inversion.
Allows swapping the gateway, notifier, mirror and roster without changing
the booking lifecycle code.
"""

from .gateway import PaymentGateway, GatewayOrder, CreatedOrder, CustomerDetails, PAID, ACTIVE
from .notifier import Notifier, NullNotifier
from .mirror import Mirror, NullMirror
from .roster import RosterSource, RosterEntry, StaticRoster

__all__ = [
    'PaymentGateway', 'GatewayOrder', 'CreatedOrder', 'CustomerDetails', 'PAID', 'ACTIVE',
    'Notifier', 'NullNotifier',
    'Mirror', 'NullMirror',
    'RosterSource', 'RosterEntry', 'StaticRoster',
]
