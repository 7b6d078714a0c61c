import logging
from decimal import Decimal
from typing import Dict, Iterable, List

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from spa_admin.errors import NotFoundError, ValidationError
from spa_admin.models import BOOKING_STATUSES, Booking, BookingItem
from spa_admin.utils.pagination import (
    ordered,
    paginate,
    parse_date,
    parse_int,
    parse_page,
    parse_sort,
)

logger = logging.getLogger(__name__)

DEFAULT_SORT_FIELDS = frozenset({"created_at", "date", "total_amount", "id"})


def _money(value) -> float:
    return float(value or 0)


def _iso(value):
    return value.isoformat() if value is not None else None


def aggregate_items(items: Iterable[BookingItem]) -> List[dict]:
    """
    Fold booking items into one entry per service, in first-seen order.

    ``items`` must already be ordered by sort_order. When the same service
    appears with different snapshot prices, the last one seen is reported as
    ``unit_price``; ``total_price`` is always the exact sum.
    """
    services: Dict[int, dict] = {}
    for item in items:
        quantity = int(item.quantity or 1)
        unit_price = Decimal(item.price_amount_snapshot or 0)
        duration = int(item.duration_min_snapshot or 0)

        entry = services.get(item.service_id)
        if entry is None:
            entry = services[item.service_id] = {
                "service_id": item.service_id,
                "service_name": item.service_name_snapshot,
                "currency": item.currency_snapshot,
                "quantity": 0,
                "unit_price": unit_price,
                "total_price": Decimal("0"),
                "total_duration_min": 0,
            }
        entry["quantity"] += quantity
        entry["total_price"] += unit_price * quantity
        entry["total_duration_min"] += duration * quantity
        entry["unit_price"] = unit_price

    result = []
    for entry in services.values():
        entry["unit_price"] = _money(entry["unit_price"])
        entry["total_price"] = _money(entry["total_price"])
        result.append(entry)
    return result


def summarize(session, booking_ids) -> Dict[int, dict]:
    """items_count and total_duration per booking, in a single grouped query."""
    if not booking_ids:
        return {}
    stmt = (
        select(
            BookingItem.booking_id,
            func.coalesce(func.sum(BookingItem.quantity), 0),
            func.coalesce(
                func.sum(BookingItem.duration_min_snapshot * BookingItem.quantity), 0
            ),
        )
        .where(BookingItem.booking_id.in_(list(booking_ids)))
        .group_by(BookingItem.booking_id)
    )
    return {
        booking_id: {"items_count": int(count), "total_duration": int(duration)}
        for booking_id, count, duration in session.execute(stmt)
    }


def booking_summary_row(booking: Booking, meta: dict) -> dict:
    customer = booking.customer
    branch = booking.branch
    return {
        "id": booking.id,
        "branch_id": booking.branch_id,
        "customer_id": booking.customer_id,
        "status": booking.status,
        "date": _iso(booking.date),
        "total_amount": _money(booking.total_amount),
        "notes": booking.notes,
        "created_at": _iso(booking.created_at),
        "branch": {"id": branch.id, "name": branch.name} if branch else None,
        "customer": (
            {
                "id": customer.id,
                "first_name": customer.first_name,
                "last_name": customer.last_name,
                "phone": customer.phone,
            }
            if customer
            else None
        ),
        "items_count": meta.get("items_count", 0),
        "total_duration": meta.get("total_duration", 0),
    }


class BookingReadModel:
    def __init__(self, session, sort_fields=DEFAULT_SORT_FIELDS):
        self.session = session
        self.sort_fields = sort_fields

    def get_detail(self, booking_id: int) -> dict:
        stmt = (
            select(Booking)
            .options(selectinload(Booking.branch), selectinload(Booking.customer))
            .where(Booking.id == booking_id)
        )
        booking = self.session.scalars(stmt).first()
        if booking is None:
            raise NotFoundError("Booking not found")

        items = self.session.scalars(
            select(BookingItem)
            .where(BookingItem.booking_id == booking.id)
            .order_by(BookingItem.sort_order.asc(), BookingItem.id.asc())
        ).all()
        services = aggregate_items(items)
        customer = booking.customer
        branch = booking.branch

        return {
            "id": booking.id,
            "status": booking.status,
            "date": _iso(booking.date),
            "notes": booking.notes,
            "created_at": _iso(booking.created_at),
            "branch": {
                "id": branch.id if branch else booking.branch_id,
                "name": branch.name if branch else None,
            },
            "customer": {
                "id": customer.id if customer else booking.customer_id,
                "name": customer.full_name if customer else "",
                "phone": customer.phone if customer else None,
                "email": customer.email if customer else None,
                "gender": customer.gender if customer else None,
                "nationality": customer.nationality if customer else None,
            },
            "services": services,
            "totals": {
                "items_count": sum(int(i.quantity or 1) for i in items),
                "total_duration_min": sum(s["total_duration_min"] for s in services),
                "total_amount": _money(booking.total_amount),
            },
        }

    def get_list_page(self, args):
        """Return ``(page, rows, total)`` for the admin booking list."""
        page = parse_page(args, default_limit=20)
        sort = parse_sort(args, self.sort_fields, "created_at")

        status = args.get("status") or None
        if status is not None and status not in BOOKING_STATUSES:
            raise ValidationError("Invalid status filter")
        branch_id = parse_int(args.get("branch_id"), "branch_id")
        date_from = parse_date(args.get("from"), "from")
        date_to = parse_date(args.get("to"), "to")

        stmt = select(Booking).options(
            selectinload(Booking.branch), selectinload(Booking.customer)
        )
        if branch_id:
            stmt = stmt.where(Booking.branch_id == branch_id)
        if status:
            stmt = stmt.where(Booking.status == status)
        if date_from:
            stmt = stmt.where(Booking.date >= date_from)
        if date_to:
            stmt = stmt.where(Booking.date <= date_to)

        bookings, total = paginate(ordered(stmt, Booking, sort), page)
        return page, self._enrich(bookings), total

    def recent(self, limit=10) -> List[dict]:
        limit = min(max(int(limit), 1), 50)
        stmt = (
            select(Booking)
            .options(selectinload(Booking.branch), selectinload(Booking.customer))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .limit(limit)
        )
        return self._enrich(self.session.scalars(stmt).all())

    def _enrich(self, bookings) -> List[dict]:
        meta = summarize(self.session, [b.id for b in bookings])
        return [booking_summary_row(b, meta.get(b.id, {})) for b in bookings]
