"""
Payment gateway interface.
The gateway is the source of truth for whether an order was paid.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

# Gateway order statuses
PAID = "PAID"
ACTIVE = "ACTIVE"


class CustomerDetails(BaseModel):
    customer_id: str
    name: str
    email: str
    phone: str


class CreatedOrder(BaseModel):
    order_id: str
    gateway_order_ref: Optional[str] = None
    payment_session_id: Optional[str] = None


class GatewayOrder(BaseModel):
    order_id: str
    status: str
    gateway_order_ref: Optional[str] = None
    gateway_payment_ref: Optional[str] = None


class PaymentGateway(ABC):
    """
    Interface for payment gateways.

    Implementations:
    - CashfreeGateway: Cashfree PG REST API over httpx
    - Test fakes in tests/fakes.py

    Both methods raise UpstreamUnavailable on transport errors, timeouts and
    non-2xx responses.
    """

    @abstractmethod
    async def create_order(
        self,
        order_id: str,
        amount: Decimal,
        customer: CustomerDetails,
    ) -> CreatedOrder:
        """
        Register an order with the gateway.

        Args:
            order_id: Our order id (the booking id)
            amount: Amount to charge, in rupees
            customer: Contact details shown on the payment page
        """
        pass

    @abstractmethod
    async def get_order(self, order_id: str) -> GatewayOrder:
        """
        Fetch the gateway's current view of an order.

        Returns:
            GatewayOrder whose status is PAID, ACTIVE or a terminal failure code
        """
        pass
