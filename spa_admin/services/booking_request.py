"""
Shape validation for the public booking endpoint.

Everything here is pure: a request that fails validation never reaches the
database.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from spa_admin.errors import ValidationError
from spa_admin.utils.patch import Patch, optional_str, positive_int

CUSTOMER_FIELDS = ("first_name", "last_name", "email", "gender", "nationality")
_ISO_DATE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}")


@dataclass(frozen=True)
class ServiceRequest:
    service_id: int
    quantity: int
    sort_order: int


@dataclass(frozen=True)
class CustomerInput:
    phone: str
    # Only the optional fields the caller actually sent
    profile: Patch = field(default_factory=Patch)

    @classmethod
    def from_json(cls, data) -> "CustomerInput":
        if not isinstance(data, dict):
            raise ValidationError("Customer phone is required")
        phone = optional_str(data.get("phone"), "customer.phone")
        if not phone:
            raise ValidationError("Customer phone is required")
        profile = Patch.from_json(data, {name: optional_str for name in CUSTOMER_FIELDS})
        return cls(phone=phone, profile=profile)


@dataclass(frozen=True)
class BookingRequest:
    branch_ref: str
    date: date
    services: List[ServiceRequest]
    customer: CustomerInput
    notes: Optional[str] = None

    @property
    def service_ids(self):
        return [s.service_id for s in self.services]

    @classmethod
    def from_json(cls, data) -> "BookingRequest":
        if not isinstance(data, dict):
            raise ValidationError("Invalid booking data")

        branch_ref = data.get("branch_id")
        raw_date = data.get("date")
        services = data.get("services")
        if (
            branch_ref in (None, "")
            or isinstance(branch_ref, bool)
            or not raw_date
            or not isinstance(services, list)
            or not services
        ):
            raise ValidationError("Invalid booking data")

        booking_date = parse_booking_date(raw_date)

        notes = data.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("notes must be a string")

        return cls(
            branch_ref=str(branch_ref).strip(),
            date=booking_date,
            services=merge_service_requests(services),
            customer=CustomerInput.from_json(data.get("customer")),
            notes=(notes or "").strip() or None,
        )


def parse_booking_date(raw) -> date:
    """
    ``YYYY-MM-DD``, optionally followed by an ISO time part (``T...`` or a space),
    which is dropped.
    """
    text = str(raw).strip()
    if not _ISO_DATE.match(text) or (len(text) > 10 and text[10] not in "T "):
        raise ValidationError("date must be a valid date (YYYY-MM-DD)")
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError("date must be a valid date (YYYY-MM-DD)")


def merge_service_requests(entries) -> List[ServiceRequest]:
    """
    Validate the requested services and fold repeated service ids into one line.

    The merged line keeps the position of the first occurrence and the summed
    quantity, so ``[{10, 2}, {20, 1}, {10, 1}]`` becomes ``[(10, 3), (20, 1)]``.
    """
    quantities = {}
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError(
                "Each service must have a valid service_id and quantity (>= 1)"
            )
        try:
            service_id = positive_int(entry.get("service_id"), "service_id")
            quantity = positive_int(entry.get("quantity"), "quantity")
        except ValidationError:
            raise ValidationError(
                "Each service must have a valid service_id and quantity (>= 1)"
            )
        quantities[service_id] = quantities.get(service_id, 0) + quantity

    return [
        ServiceRequest(service_id=service_id, quantity=quantity, sort_order=position)
        for position, (service_id, quantity) in enumerate(quantities.items(), start=1)
    ]
