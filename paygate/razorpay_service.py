import httpx
import structlog

from paygate.errors import UpstreamError

logger = structlog.get_logger(__name__)


class RazorpayGateway:
    """Thin client for the Razorpay Orders API.

    Built once at startup and shared by every request.
    """

    def __init__(self, key_id, key_secret, api_url="https://api.razorpay.com/v1", timeout=10.0, client=None):
        self.key_id = key_id
        self._configured = bool(key_id and key_secret)
        self._client = client or httpx.Client(
            base_url=api_url,
            auth=(key_id or "", key_secret or ""),
            timeout=timeout,
        )

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict | None = None) -> dict:
        """Create an order for ``amount`` currency subunits (paise for INR)."""
        if not self._configured:
            raise UpstreamError("Razorpay credentials are not configured (set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET)")

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            resp = self._client.post("/orders", json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"Razorpay order creation failed ({e.response.status_code}): {e.response.text}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Razorpay unreachable: {e}") from e

        try:
            order = resp.json()
        except ValueError as e:
            raise UpstreamError(f"Razorpay returned a non-JSON body: {resp.text[:200]}") from e
        if not isinstance(order, dict) or not order.get("id"):
            raise UpstreamError(f"Razorpay returned an order without an id: {resp.text[:200]}")
        logger.info("razorpay_order_created", order_id=order.get("id"), amount=order.get("amount"))
        return order

    def close(self):
        self._client.close()
