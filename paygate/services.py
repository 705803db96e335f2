import enum
import time

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from paygate import store
from paygate.errors import MalformedEvent, OrderValidationError, UpstreamError
from paygate.models import FAILED, SUCCESS
from paygate.razorpay_service import RazorpayGateway
from paygate.schemas import CreateOrderRequest

logger = structlog.get_logger(__name__)

SUCCESS_EVENTS = ("payment.authorized", "payment.captured")
FAILURE_EVENTS = ("payment.failed",)


class ReconcileOutcome(str, enum.Enum):
    UPDATED = "updated"
    DUPLICATE = "duplicate"
    CONFLICT = "conflict"
    IGNORED = "ignored"
    UNKNOWN_ORDER = "unknown_order"


def validate_order_request(request: CreateOrderRequest):
    name = (request.name or "").strip()
    email = (request.email or "").strip()
    phone = (request.phone or "").strip()
    if not name or not email or not phone or request.amount is None:
        raise OrderValidationError("Missing required fields")
    if request.amount <= 0:
        raise OrderValidationError("Amount must be a positive whole number")
    return name, email, phone


def create_order(db: Session, gateway: RazorpayGateway, request: CreateOrderRequest, currency: str = "INR") -> dict:
    name, email, phone = validate_order_request(request)
    description = (request.description or "").strip() or "Payment"

    try:
        customer = store.get_or_create_customer(db, name=name, email=email, phone=phone)
    except SQLAlchemyError as e:
        raise UpstreamError(f"Customer upsert failed: {e}") from e

    order = gateway.create_order(
        amount=request.amount * 100,
        currency=currency,
        receipt=f"receipt_{int(time.time() * 1000)}",
        notes={"customer_id": customer.id, "customer_email": email},
    )
    if not isinstance(order, dict) or not order.get("id"):
        raise UpstreamError(f"Processor returned an order without an id: {order!r}")

    try:
        store.insert_payment(
            db,
            order_id=order["id"],
            customer_id=customer.id,
            amount=request.amount,
            currency=currency,
            description=description,
        )
    except SQLAlchemyError as e:
        raise UpstreamError(f"Payment record insertion failed: {e}") from e

    logger.info("order_created", order_id=order["id"], customer_id=customer.id, amount=request.amount)

    return {
        "success": True,
        "orderId": order["id"],
        "amount": order.get("amount", request.amount * 100),
        "currency": order.get("currency", currency),
        "keyId": gateway.key_id,
        "customerName": name,
        "customerEmail": email,
        "customerPhone": phone,
    }


def _payment_entity(event: dict) -> dict:
    try:
        entity = event["payload"]["payment"]["entity"]
        entity["order_id"]
    except (KeyError, TypeError) as e:
        raise MalformedEvent(f"event {event.get('event')!r} has no payment entity") from e
    return entity


def reconcile_event(db: Session, event: dict) -> ReconcileOutcome:
    """Apply a verified Razorpay webhook event to the matching payment row.

    Transitions only leave ``pending``. Redelivery of an event whose effect is
    already recorded is a silent no-op; an event that contradicts a recorded
    terminal state is logged and dropped.
    """
    kind = event.get("event")
    if kind in SUCCESS_EVENTS:
        target = SUCCESS
    elif kind in FAILURE_EVENTS:
        target = FAILED
    else:
        logger.info("webhook_event_ignored", event_kind=kind)
        return ReconcileOutcome.IGNORED

    entity = _payment_entity(event)
    order_id = entity["order_id"]
    payment_id = entity.get("id") if target == SUCCESS else None
    log = logger.bind(event_kind=kind, order_id=order_id, payment_id=payment_id)

    if store.transition_payment(db, order_id, target, payment_id=payment_id):
        log.info("payment_status_updated", status=target)
        return ReconcileOutcome.UPDATED

    payment = store.get_payment(db, order_id)
    if payment is None:
        log.warning("webhook_unknown_order")
        return ReconcileOutcome.UNKNOWN_ORDER

    if payment.status == target and (target != SUCCESS or payment.payment_id == payment_id):
        log.info("webhook_duplicate_delivery", status=payment.status)
        return ReconcileOutcome.DUPLICATE

    log.warning(
        "webhook_conflicting_event",
        current_status=payment.status,
        current_payment_id=payment.payment_id,
        requested_status=target,
    )
    return ReconcileOutcome.CONFLICT
