import logging
from types import MappingProxyType

from spa_admin.errors import InvalidTransitionError, NotFoundError, ValidationError
from spa_admin.models import BOOKING_STATUSES, Booking

logger = logging.getLogger(__name__)

# completed and cancelled are terminal
DEFAULT_TRANSITIONS = MappingProxyType(
    {
        "pending": frozenset({"confirmed", "cancelled", "completed"}),
        "confirmed": frozenset({"completed", "cancelled"}),
        "completed": frozenset(),
        "cancelled": frozenset(),
    }
)


class BookingStatusMachine:
    def __init__(self, session, transitions=DEFAULT_TRANSITIONS):
        self.session = session
        self.transitions = transitions

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.transitions.get(current, ())

    def transition(self, booking_id: int, target) -> Booking:
        """Move a booking to ``target``; only the status column is written."""
        if target not in BOOKING_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(BOOKING_STATUSES)}"
            )

        booking = self.session.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")

        current = booking.status
        if not self.can_transition(current, target):
            raise InvalidTransitionError(current, target)

        booking.status = target
        self.session.commit()
        logger.info("Booking %s moved from %s to %s", booking_id, current, target)
        return booking
