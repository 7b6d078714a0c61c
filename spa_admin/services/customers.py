import logging
from typing import NamedTuple, Optional

from sqlalchemy import delete, select

from spa_admin.models import Customers
from spa_admin.services.booking_request import CustomerInput

logger = logging.getLogger(__name__)

UPSERT = "upsert"
ALWAYS_INSERT = "always_insert"
REGISTRATION_MODES = frozenset({UPSERT, ALWAYS_INSERT})


class Registration(NamedTuple):
    customer_id: int
    created: bool


class CustomerRegistrar:
    """
    Creates or refreshes the customer behind a booking.

    ``upsert``: the phone number is the natural key. An existing customer gets
    the profile fields the caller sent (absent fields are kept, blank ones
    cleared) and keeps its phone.

    ``always_insert``: every booking gets a fresh customer row. The caller is
    handed a compensation that deletes it again if the booking fails, and has
    to live with duplicate customers for the same phone.
    """

    def __init__(self, session, mode: str = UPSERT):
        if mode not in REGISTRATION_MODES:
            raise ValueError(
                f"CUSTOMER_REGISTRATION_MODE must be one of {sorted(REGISTRATION_MODES)}"
            )
        self.session = session
        self.mode = mode

    def register(self, customer: CustomerInput, undo=None) -> Registration:
        existing = None
        if self.mode == UPSERT:
            existing = self.find_by_phone(customer.phone)

        if existing is not None:
            customer.profile.apply_to(existing)
            self.session.flush()
            return Registration(existing.id, False)

        row = Customers(phone=customer.phone)
        customer.profile.apply_to(row)
        self.session.add(row)
        self.session.flush()
        logger.info("Created customer %s", row.id)

        if self.mode == ALWAYS_INSERT and undo is not None:
            undo.push(f"delete customer {row.id}", self.rollback, row.id)
        return Registration(row.id, True)

    def find_by_phone(self, phone: str) -> Optional[Customers]:
        stmt = (
            select(Customers)
            .where(Customers.phone == phone)
            .order_by(Customers.id.asc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def rollback(self, customer_id: int) -> None:
        """Delete a customer created for a booking that did not go through."""
        self.session.execute(delete(Customers).where(Customers.id == customer_id))
        self.session.commit()
