import base64
import json

import httpx
import pytest

from paygate.errors import UpstreamError
from paygate.razorpay_service import RazorpayGateway


def _gateway(handler, key_id="rzp_test_key", key_secret="rzp_test_secret"):
    client = httpx.Client(
        base_url="https://api.razorpay.test/v1",
        auth=(key_id or "", key_secret or ""),
        transport=httpx.MockTransport(handler),
    )
    return RazorpayGateway(key_id, key_secret, client=client)


def test_create_order_posts_to_orders():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "order_abc", "amount": 10000, "currency": "INR", "status": "created"})

    order = _gateway(handler).create_order(10000, "INR", "receipt_1", {"customer_id": 7})

    assert order["id"] == "order_abc"
    assert seen["path"] == "/v1/orders"
    assert seen["body"] == {"amount": 10000, "currency": "INR", "receipt": "receipt_1", "notes": {"customer_id": 7}}
    expected = base64.b64encode(b"rzp_test_key:rzp_test_secret").decode()
    assert seen["auth"] == f"Basic {expected}"


def test_create_order_http_error():
    def handler(request):
        return httpx.Response(400, json={"error": {"description": "amount too small"}})

    with pytest.raises(UpstreamError) as exc:
        _gateway(handler).create_order(1, "INR", "receipt_1")
    assert "400" in exc.value.message


def test_create_order_unreachable():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(UpstreamError):
        _gateway(handler).create_order(10000, "INR", "receipt_1")


def test_unconfigured_gateway_does_not_call_out():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    with pytest.raises(UpstreamError):
        _gateway(handler, key_id=None, key_secret=None).create_order(10000, "INR", "receipt_1")
    assert calls == []


def test_order_without_id_is_upstream_error():
    def handler(request):
        return httpx.Response(200, json={"error": "weird"})

    with pytest.raises(UpstreamError) as exc:
        _gateway(handler).create_order(10000, "INR", "receipt_1")
    assert "without an id" in exc.value.message


def test_non_object_order_is_upstream_error():
    def handler(request):
        return httpx.Response(200, json=["order_abc"])

    with pytest.raises(UpstreamError):
        _gateway(handler).create_order(10000, "INR", "receipt_1")
