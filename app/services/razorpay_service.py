"""
app/services/razorpay_service.py

Purpose: Razorpay REST client

- Creates payment orders via the Razorpay Orders API
- Constructed once at startup from settings and injected where needed
- Every failure surfaces as ProviderUnavailableError
"""

import httpx
from typing import Any, Dict, Optional

from app.core.config import Settings
from app.core.exceptions import ProviderUnavailableError
from app.core.logging import get_logger

logger = get_logger(__name__)


class RazorpayClient:
    """Thin async client for the parts of the Razorpay API we use"""

    def __init__(
        self,
        key_id: Optional[str],
        key_secret: Optional[str],
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayClient":
        client = cls(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET,
            base_url=settings.RAZORPAY_BASE_URL,
            timeout=settings.RAZORPAY_TIMEOUT,
        )
        if client.is_configured():
            logger.info(f"Razorpay client ready (key {client.key_id[:8]}...)")
        else:
            logger.warning("Razorpay credentials missing; order creation will fail")
        return client

    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Creates a Razorpay order.

        Args:
            amount: Amount in the smallest currency unit
            currency: ISO currency code
            receipt: Merchant receipt id (max 40 chars)
            notes: Free-form key/value metadata

        Returns:
            Provider order, at least {"id", "amount", "currency"}

        Raises:
            ProviderUnavailableError: Missing credentials or any provider failure
        """
        if not self.is_configured():
            logger.error("Razorpay credentials not configured")
            raise ProviderUnavailableError(details={"reason": "credentials_missing"})

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }

        try:
            response = await self._get_client().post("/orders", json=payload)
        except httpx.TimeoutException as e:
            logger.error("Razorpay API timeout")
            raise ProviderUnavailableError(details={"reason": "timeout"}) from e
        except httpx.RequestError as e:
            logger.error(f"Network error calling Razorpay: {e}")
            raise ProviderUnavailableError(details={"reason": "network"}) from e

        if response.status_code not in (200, 201):
            logger.error(f"❌ Razorpay API error: {response.status_code} - {response.text[:200]}")
            raise ProviderUnavailableError(details={"reason": "provider_error", "status": response.status_code})

        try:
            order = response.json()
        except ValueError as e:
            logger.error("Razorpay returned a non-JSON body")
            raise ProviderUnavailableError(details={"reason": "bad_response"}) from e

        if not order.get("id"):
            logger.error(f"Razorpay order response without id: {order}")
            raise ProviderUnavailableError(details={"reason": "bad_response"})

        logger.info(f"✅ Razorpay order created: {order.get('id')}")
        return order

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
