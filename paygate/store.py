"""Order store queries over the ``customers`` and ``payments`` tables."""
import structlog
from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from paygate.models import PENDING, Customer, Payment

logger = structlog.get_logger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def get_customer_by_email(db: Session, email: str):
    return db.execute(select(Customer).filter_by(email=email)).scalars().first()


def get_or_create_customer(db: Session, name: str, email: str, phone: str) -> Customer:
    """Return the customer for ``email``, inserting it if absent.

    The insert is keyed on the unique email so two concurrent first orders
    for the same address end up with one row. Existing rows are not updated.
    """
    dialect_insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    if dialect_insert is not None:
        stmt = (
            dialect_insert(Customer)
            .values(name=name, email=email, phone=phone)
            .on_conflict_do_nothing(index_elements=["email"])
        )
        db.execute(stmt)
        db.commit()
        return get_customer_by_email(db, email)

    customer = get_customer_by_email(db, email)
    if customer:
        return customer
    try:
        customer = Customer(name=name, email=email, phone=phone)
        db.add(customer)
        db.commit()
    except IntegrityError:
        db.rollback()
        customer = get_customer_by_email(db, email)
    return customer


def insert_payment(
    db: Session,
    order_id: str,
    customer_id: int,
    amount: int,
    currency: str,
    description: str,
) -> Payment:
    payment = Payment(
        order_id=order_id,
        customer_id=customer_id,
        amount=amount,
        currency=currency,
        status=PENDING,
        description=description,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def get_payment(db: Session, order_id: str):
    return db.execute(select(Payment).filter_by(order_id=order_id)).scalars().first()


def list_payments(db: Session):
    stmt = (
        select(Payment)
        .options(joinedload(Payment.customer))
        .order_by(Payment.created_at.desc(), Payment.id.desc())
    )
    return db.execute(stmt).scalars().all()


def transition_payment(db: Session, order_id: str, status: str, payment_id: str | None = None) -> int:
    """Move a pending payment to ``status``.

    Only rows still in ``pending`` are touched, so terminal states are never
    overwritten. Returns the number of rows updated (0 or 1).
    """
    values = {"status": status}
    if payment_id is not None:
        values["payment_id"] = payment_id
    result = db.execute(
        update(Payment)
        .where(Payment.order_id == order_id, Payment.status == PENDING)
        .values(**values)
    )
    db.commit()
    logger.debug("payment_transition", order_id=order_id, status=status, rows=result.rowcount)
    return result.rowcount
