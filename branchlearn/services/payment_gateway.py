"""
Payment Gateway Adapter

Thin boundary over the processor's payment-intent API. Transport failures and
processor error responses surface as GatewayError (retryable by the user);
the adapter itself never retries.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from branchlearn.core.config import Settings
from branchlearn.core.errors import GatewayError

logger = logging.getLogger(__name__)

INTENT_SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class IntentHandle:
    id: str
    client_secret: str


@dataclass(frozen=True)
class RetrievedIntent:
    id: str
    status: str
    amount_charged: int  # minor units
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == INTENT_SUCCEEDED


class PaymentGateway(ABC):
    @abstractmethod
    async def create_intent(
        self, amount_minor_units: int, currency: str, metadata: dict[str, str]
    ) -> IntentHandle: ...

    @abstractmethod
    async def retrieve_intent(self, intent_id: str) -> RetrievedIntent: ...


class StripeGateway(PaymentGateway):
    """Stripe REST API (form-encoded, basic auth with the secret key)."""

    def __init__(
        self,
        api_key: str,
        api_base: str = "https://api.stripe.com/v1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeGateway":
        return cls(
            api_key=settings.STRIPE_SECRET_KEY,
            api_base=settings.STRIPE_API_BASE,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    async def _request(self, method: str, path: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self._api_base,
                timeout=self._timeout,
                auth=(self._api_key, ""),
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, data=data)
        except httpx.TimeoutException:
            logger.warning("Payment processor timed out on %s %s", method, path)
            raise GatewayError("Payment service did not respond in time. Please retry.")
        except httpx.RequestError as exc:
            logger.warning("Payment processor unreachable: %s", exc)
            raise GatewayError("Payment service unreachable. Please retry.")

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.is_success:
            message = (body.get("error") or {}).get("message") or "Payment processor error"
            logger.warning("Payment processor returned %s: %s", response.status_code, message)
            raise GatewayError(message)
        return body

    async def create_intent(
        self, amount_minor_units: int, currency: str, metadata: dict[str, str]
    ) -> IntentHandle:
        data: dict[str, Any] = {"amount": amount_minor_units, "currency": currency}
        for key, value in metadata.items():
            data[f"metadata[{key}]"] = value
        body = await self._request("POST", "/payment_intents", data=data)
        return IntentHandle(id=body["id"], client_secret=body["client_secret"])

    async def retrieve_intent(self, intent_id: str) -> RetrievedIntent:
        body = await self._request("GET", f"/payment_intents/{quote(intent_id, safe='')}")
        return RetrievedIntent(
            id=body["id"],
            status=body.get("status", ""),
            amount_charged=int(body.get("amount_received") or body.get("amount") or 0),
            metadata=dict(body.get("metadata") or {}),
        )
