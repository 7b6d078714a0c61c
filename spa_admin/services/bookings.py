"""
Public booking intake.

A booking is written in one transaction: customer, booking row, line items and
the stored total are committed together or not at all. Line items copy the
service name, price, currency and duration as they stand at booking time, so
later catalog edits never rewrite history.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from spa_admin.errors import AppError, StorageError, UnavailableError
from spa_admin.models import Booking, BookingItem, Customers
from spa_admin.services.booking_request import BookingRequest
from spa_admin.services.undo import UndoStack
from spa_admin.utils.branches import BranchNotFound, resolve_branch

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class LineBreakdown:
    service_id: int
    service_name: str
    unit_price: Decimal
    quantity: int
    item_total: Decimal
    currency: str

    def to_dict(self):
        return {
            "service_id": self.service_id,
            "service_name": self.service_name,
            "unit_price": float(self.unit_price),
            "quantity": self.quantity,
            "item_total": float(self.item_total),
            "currency": self.currency,
        }


@dataclass(frozen=True)
class BookingResult:
    booking_id: int
    items: List[LineBreakdown]
    grand_total: Decimal
    currency: Optional[str]


class BookingAssembler:
    def __init__(self, session, registrar, resolver, notifier=None, isolation_level=None):
        self.session = session
        self.registrar = registrar
        self.resolver = resolver
        self.notifier = notifier
        self.isolation_level = isolation_level

    def create_booking(self, payload) -> BookingResult:
        request = BookingRequest.from_json(payload)

        undo = UndoStack()
        try:
            if self.isolation_level:
                # has to be set before the transaction's first statement
                self.session.connection(
                    execution_options={"isolation_level": self.isolation_level}
                )
            booking, lines = self._write(request, undo)
            self.session.commit()
        except SQLAlchemyError as e:
            self._abort(undo)
            logger.exception("Booking could not be stored")
            raise StorageError("Could not create booking") from e
        except AppError:
            self._abort(undo)
            raise

        booking_id = booking.id
        grand_total = sum((line.item_total for line in lines), Decimal("0"))
        currency = lines[0].currency if lines else None
        logger.info(
            "Booking %s created for customer %s at branch %s (%s items, total %s)",
            booking_id,
            booking.customer_id,
            booking.branch_id,
            len(lines),
            grand_total,
        )

        try:
            self._notify(booking, request, lines, grand_total, currency)
        except Exception:
            # already committed; notification is best effort
            logger.exception("Could not notify customer for booking %s", booking_id)
        return BookingResult(booking_id, lines, grand_total, currency)

    def _write(self, request: BookingRequest, undo: UndoStack):
        branch = resolve_branch(request.branch_ref)
        if isinstance(branch, BranchNotFound):
            raise UnavailableError("Branch not found")
        if not branch.is_active:
            raise UnavailableError("Branch is not accepting bookings")

        registration = self.registrar.register(request.customer, undo=undo)
        resolved = self.resolver.resolve(branch.id, request.services)

        booking = Booking(
            branch_id=branch.id,
            customer_id=registration.customer_id,
            date=request.date,
            notes=request.notes,
            status="confirmed",
            total_amount=Decimal("0"),
        )
        self.session.add(booking)
        self.session.flush()

        lines = []
        items = []
        for req in request.services:
            line = resolved[req.service_id]
            item_total = (line.unit_price * req.quantity).quantize(
                CENTS, rounding=ROUND_HALF_UP
            )
            items.append(
                BookingItem(
                    booking_id=booking.id,
                    service_id=line.service_id,
                    service_name_snapshot=line.service_name,
                    price_amount_snapshot=line.unit_price,
                    currency_snapshot=line.currency,
                    duration_min_snapshot=line.duration_min,
                    quantity=req.quantity,
                    sort_order=req.sort_order,
                )
            )
            lines.append(
                LineBreakdown(
                    service_id=line.service_id,
                    service_name=line.service_name,
                    unit_price=line.unit_price,
                    quantity=req.quantity,
                    item_total=item_total,
                    currency=line.currency,
                )
            )
        self.session.add_all(items)
        self.session.flush()

        booking.total_amount = sum((l.item_total for l in lines), Decimal("0"))
        self.session.flush()
        return booking, lines

    def _abort(self, undo: UndoStack):
        self.session.rollback()
        if len(undo):
            logger.warning("Booking failed, running %d compensation(s)", len(undo))
        undo.unwind()

    def _notify(self, booking, request, lines, grand_total, currency):
        if self.notifier is None:
            return
        customer = self.session.get(Customers, booking.customer_id)
        if customer is None or not customer.email:
            return

        branch = booking.branch
        payload = {
            "booking": {
                "id": booking.id,
                "date": request.date.isoformat(),
                "branch_name": branch.name if branch else None,
                "notes": booking.notes,
            },
            "customer": {"name": customer.full_name, "email": customer.email},
            "items": [
                {
                    "service_name": line.service_name,
                    "unit_price": float(line.unit_price),
                    "quantity": line.quantity,
                    "item_total": float(line.item_total),
                    "currency": line.currency,
                }
                for line in lines
            ],
            "totals": {"grand_total": float(grand_total), "currency": currency},
        }
        self.notifier.dispatch(payload)
