"""Client-side payment status poller.

After checkout the browser only knows the order id; the payment row flips to a
terminal state once Razorpay's webhook lands, usually within seconds. The
poller asks the API at a fixed interval and gives up after ``max_attempts``
with a ``processing`` result instead of polling forever.
"""
import argparse
import sys
import time
from dataclasses import dataclass

import httpx
import structlog

logger = structlog.get_logger(__name__)

SUCCESS = "success"
FAILED = "failed"
ERROR = "error"
PROCESSING = "processing"

MESSAGES = {
    SUCCESS: "Payment successful! Your order has been confirmed.",
    FAILED: "Payment failed! Please try again.",
    ERROR: "Could not verify payment. Please contact support.",
    PROCESSING: "Payment is still processing. Please check back later.",
}


class StatusCheckError(Exception):
    pass


@dataclass
class PollResult:
    state: str
    payment: dict | None
    attempts: int

    @property
    def message(self) -> str:
        return MESSAGES[self.state]


class StatusPoller:
    def __init__(self, base_url: str, client: httpx.Client = None, interval: float = 2.0, max_attempts: int = 30, sleep=time.sleep):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client or httpx.Client(base_url=base_url, timeout=10.0)
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    def fetch_status(self, order_id: str) -> dict:
        """One status query; returns the payment row."""
        try:
            resp = self.client.get(f"/api/payment-status/{order_id}")
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StatusCheckError(f"Failed to fetch payment status: {e}") from e

        if not isinstance(data, dict):
            raise StatusCheckError("Unexpected status response")
        if not data.get("success"):
            raise StatusCheckError(data.get("message") or "Status check failed")
        if not isinstance(data.get("payment"), dict):
            raise StatusCheckError("Status response has no payment")
        return data["payment"]

    def wait_for_terminal(self, order_id: str) -> PollResult:
        payment = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                payment = self.fetch_status(order_id)
            except StatusCheckError as e:
                logger.warning("status_check_failed", order_id=order_id, attempt=attempt, error=str(e))
                return PollResult(ERROR, payment, attempt)

            status = payment.get("status")
            if status in (SUCCESS, FAILED):
                logger.info("payment_settled", order_id=order_id, status=status, attempts=attempt)
                return PollResult(status, payment, attempt)

            logger.debug("payment_pending", order_id=order_id, attempt=attempt)
            if attempt < self.max_attempts:
                self._sleep(self.interval)

        logger.info("payment_still_processing", order_id=order_id, attempts=self.max_attempts)
        return PollResult(PROCESSING, payment, self.max_attempts)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Wait for a Razorpay order to settle.")
    parser.add_argument("order_id")
    parser.add_argument("--api-url", default="http://localhost:5000")
    parser.add_argument("--interval", type=float, default=2.0)
    parser.add_argument("--max-attempts", type=int, default=30)
    args = parser.parse_args(argv)

    poller = StatusPoller(args.api_url, interval=args.interval, max_attempts=args.max_attempts)
    result = poller.wait_for_terminal(args.order_id)
    print(result.message)
    if result.payment:
        print(f"Order ID: {result.payment.get('order_id')}")
        print(f"Payment ID: {result.payment.get('payment_id') or 'N/A'}")
        print(f"Status: {str(result.payment.get('status')).upper()}")
    return 0 if result.state == SUCCESS else 1


if __name__ == "__main__":
    sys.exit(main())
