import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from bayline.models.booking import Booking
from bayline.models.customer import Customer

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def upsert_customer(db: Session, email: str, full_name: Optional[str] = None, phone: Optional[str] = None) -> Customer:
    """Idempotent upsert keyed by normalized email. Commits."""
    email = normalize_email(email)
    customer = db.query(Customer).filter(Customer.email == email).first()
    if customer is None:
        customer = Customer(email=email)
        db.add(customer)
    if full_name:
        customer.full_name = full_name.strip()
    if phone:
        customer.phone = phone.strip()
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with another insert for the same email
        db.rollback()
        customer = db.query(Customer).filter(Customer.email == email).one()
    return customer


def link_customer(db: Session, booking: Booking) -> Optional[UUID]:
    """
    Attach the booking to its customer profile after allocation committed.

    A failure here must not undo a committed booking, so it is logged and
    the booking is returned unlinked.
    """
    try:
        customer = upsert_customer(db, booking.customer_email, booking.customer_name, booking.customer_phone)
        booking.customer_id = customer.id
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to link booking %s to a customer profile", booking.booking_number)
        return None
    return customer.id
