"""
Cashfree PG adapter.

Orders are created with our booking id as order_id; the gateway's own id
comes back as cf_order_id. Order status is one of ACTIVE, PAID, EXPIRED,
TERMINATED, TERMINATION_REQUESTED.
"""

import time
from decimal import Decimal
from typing import Optional

import httpx

from ticketing.core.config import Settings
from ticketing.core.errors import UpstreamUnavailable
from ticketing.core.logging import get_logger
from ticketing.core.metrics import gateway_latency
from ticketing.infrastructure.http import build_client
from ticketing.services.interfaces.gateway import (
    CreatedOrder,
    CustomerDetails,
    GatewayOrder,
    PaymentGateway,
)

logger = get_logger(__name__)


class CashfreeGateway(PaymentGateway):
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.public_base_url = settings.PUBLIC_BASE_URL.rstrip("/")
        self.client = build_client(
            settings,
            base_url=settings.CASHFREE_BASE_URL,
            headers={
                "x-client-id": settings.CASHFREE_APP_ID,
                "x-client-secret": settings.CASHFREE_SECRET_KEY,
                "x-api-version": settings.CASHFREE_API_VERSION,
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> dict:
        start = time.perf_counter()
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "gateway_http_error",
                operation=operation,
                status_code=e.response.status_code,
                body=e.response.text[:500],
            )
            raise UpstreamUnavailable(
                f"Payment gateway returned {e.response.status_code}", upstream="gateway"
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error("gateway_unreachable", operation=operation, error=repr(e))
            raise UpstreamUnavailable("Payment gateway unavailable", upstream="gateway")
        finally:
            gateway_latency.labels(operation=operation).observe(time.perf_counter() - start)

    async def create_order(
        self,
        order_id: str,
        amount: Decimal,
        customer: CustomerDetails,
    ) -> CreatedOrder:
        body = {
            "order_id": order_id,
            "order_amount": float(amount),
            "order_currency": "INR",
            "customer_details": {
                "customer_id": customer.customer_id,
                "customer_name": customer.name,
                "customer_email": customer.email,
                "customer_phone": customer.phone,
            },
            "order_meta": {
                "return_url": f"{self.public_base_url}/payment/success?order_id={order_id}",
                "notify_url": f"{self.public_base_url}/api/v1/payments/webhook",
            },
        }
        data = await self._request("create_order", "POST", "/orders", json=body)
        logger.info("gateway_order_created", order_id=order_id, cf_order_id=data.get("cf_order_id"))
        return CreatedOrder(
            order_id=order_id,
            gateway_order_ref=_str_or_none(data.get("cf_order_id")),
            payment_session_id=data.get("payment_session_id"),
        )

    async def get_order(self, order_id: str) -> GatewayOrder:
        data = await self._request("get_order", "GET", f"/orders/{order_id}")
        return GatewayOrder(
            order_id=order_id,
            status=str(data.get("order_status", "")).upper(),
            gateway_order_ref=_str_or_none(data.get("cf_order_id")),
            gateway_payment_ref=_str_or_none(data.get("cf_payment_id") or data.get("cf_order_id")),
        )

    async def aclose(self) -> None:
        await self.client.aclose()


def _str_or_none(value) -> Optional[str]:
    return None if value is None else str(value)
