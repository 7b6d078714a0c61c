# Per-app wiring of the booking workflow
from typing import NamedTuple

from flask import current_app

from spa_admin.extensions import db
from spa_admin.scheduler import init_scheduler
from spa_admin.services.booking_read import BookingReadModel
from spa_admin.services.booking_status import BookingStatusMachine
from spa_admin.services.bookings import BookingAssembler
from spa_admin.services.customers import CustomerRegistrar
from spa_admin.services.email_service import EmailService
from spa_admin.services.notifier import BookingNotifier
from spa_admin.services.pricing import PricingResolver


class BookingServices(NamedTuple):
    assembler: BookingAssembler
    status_machine: BookingStatusMachine
    read_model: BookingReadModel
    notifier: BookingNotifier


def init_booking_services(app, notifier=None):
    """Build the booking workflow once; fails fast on bad configuration."""
    config = app.config
    session = db.session

    if notifier is None:
        notifier = BookingNotifier(
            EmailService.from_config(config),
            scheduler=init_scheduler(app),
            enabled=config.get("NOTIFICATIONS_ENABLED", True),
        )

    registrar = CustomerRegistrar(session, config["CUSTOMER_REGISTRATION_MODE"])
    services = BookingServices(
        assembler=BookingAssembler(
            session,
            registrar,
            PricingResolver(session),
            notifier,
            isolation_level=config.get("BOOKING_ISOLATION_LEVEL"),
        ),
        status_machine=BookingStatusMachine(session),
        read_model=BookingReadModel(session, config["BOOKING_SORT_FIELDS"]),
        notifier=notifier,
    )
    app.extensions["booking_services"] = services
    return services


def booking_services() -> BookingServices:
    return current_app.extensions["booking_services"]
