"""
Razorpay payment gateway client.
Creates orders over the REST API and verifies checkout callback signatures.
"""

from buildex.config import Settings
from typing import Any, Dict, Optional
import hashlib
import hmac
import logging

import httpx

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Raised when the gateway rejects a request or cannot be reached."""


class RazorpayGateway:
    """
    Thin async client for the parts of the Razorpay API the checkout uses.
    """

    def __init__(
        self,
        key_id: Optional[str],
        key_secret: Optional[str],
        api_url: str = "https://api.razorpay.com/v1",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            key_id: Public key id, also handed to the checkout widget
            key_secret: Secret used for basic auth and signature checks
            api_url: Base URL of the REST API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayGateway":
        return cls(
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            api_url=settings.razorpay_api_url,
            timeout=settings.razorpay_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        """Both the key id and the secret are present."""
        return bool(self.key_id and self.key_secret)

    async def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create a gateway order.

        Args:
            amount_minor: Amount in the smallest currency unit
            currency: ISO currency code
            receipt: Caller generated unique receipt
            notes: Key/value pairs stored with the order

        Returns:
            Order payload returned by the gateway; "id" is the order id

        Raises:
            GatewayError: If the gateway is not configured, unreachable or rejects the order
        """
        if not self.is_configured:
            raise GatewayError("Payment gateway not configured")

        payload = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": {key: str(value) for key, value in (notes or {}).items()},
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.api_url,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                res = await client.post("/orders", json=payload)
            res.raise_for_status()
        except httpx.HTTPStatusError as e:
            description = _error_description(e.response)
            logger.error(f"Gateway rejected order {receipt}: {description}")
            raise GatewayError(description) from e
        except httpx.HTTPError as e:
            logger.error(f"Gateway request failed for order {receipt}: {e}")
            raise GatewayError("Payment gateway unreachable") from e

        order = res.json()
        if not order.get("id"):
            raise GatewayError("Gateway returned an order without an id")

        logger.info(f"Created gateway order {order['id']} for receipt {receipt}")
        return order

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: Optional[str]) -> bool:
        """
        Check the checkout callback signature.

        The expected value is the hex HMAC-SHA256 of "order_id|payment_id"
        keyed with the secret, compared in constant time.

        Returns:
            True only if a secret is configured and the signature matches
        """
        if not self.key_secret or not signature:
            return False

        body = f"{order_id}|{payment_id}".encode()
        expected = hmac.new(self.key_secret.encode(), body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)


def _error_description(response: httpx.Response) -> str:
    try:
        error = response.json().get("error", {})
    except ValueError:
        error = {}
    return error.get("description") or f"Gateway error (HTTP {response.status_code})"
