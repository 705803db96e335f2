import json

import structlog
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from paygate import services, store
from paygate.config import Settings
from paygate.dependencies import get_db, get_gateway, get_settings
from paygate.errors import PaymentNotFound
from paygate.razorpay_service import RazorpayGateway
from paygate.schemas import CreateOrderRequest
from paygate.signature import verify_signature

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/")
def index():
    return {
        "message": "Razorpay Payment Gateway API is running",
        "endpoints": {
            "POST /api/create-order": "Create payment order",
            "POST /webhook": "Razorpay webhook handler",
            "GET /api/payment-status/:orderId": "Check payment status",
            "GET /api/payments": "Get all payments",
        },
    }


@router.post("/api/create-order")
def create_order_api(
    request: CreateOrderRequest,
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    logger.info("create_order_requested", email=request.email, amount=request.amount)
    return services.create_order(db, gateway, request, currency=settings.CURRENCY)


@router.post("/webhook")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    # signature is checked against the untouched body
    payload = await request.body()

    if not verify_signature(payload, settings.RAZORPAY_WEBHOOK_SECRET, x_razorpay_signature):
        logger.warning("webhook_invalid_signature", has_signature=x_razorpay_signature is not None)
        return JSONResponse(status_code=400, content={"success": False, "message": "Invalid signature"})

    # Razorpay retries anything but a 2xx, so failures past this point are logged and acknowledged
    try:
        event = json.loads(payload)
        outcome = await run_in_threadpool(services.reconcile_event, db, event)
    except Exception:
        logger.exception("webhook_processing_failed")
        return {"success": False, "message": "Webhook processing failed"}

    logger.info("webhook_processed", event_kind=event.get("event"), outcome=outcome.value)
    return {"success": True, "message": "Webhook processed"}


@router.get("/api/payment-status/{order_id}")
def payment_status(order_id: str, db: Session = Depends(get_db)):
    payment = store.get_payment(db, order_id)
    if payment is None:
        raise PaymentNotFound()
    return {"success": True, "payment": payment.to_dict()}


@router.get("/api/payments")
def all_payments(db: Session = Depends(get_db)):
    payments = []
    for payment in store.list_payments(db):
        row = payment.to_dict()
        row["customers"] = {"name": payment.customer.name, "email": payment.customer.email}
        payments.append(row)
    return {"success": True, "payments": payments}
