"""
Pytest configuration and shared fixtures for the spa admin tests.
"""

import json
from datetime import date
from decimal import Decimal

import pytest
from flask import Flask

from main import create_app
from spa_admin.extensions import db as database
from spa_admin.models import (
    Admins,
    Base,
    Booking,
    BookingItem,
    Branch,
    BranchServicePricing,
    Customers,
    Hotel,
    Service,
    ServiceCategory,
)
from spa_admin.utils.auth import hash_password

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SECRET_KEY": "test-secret-key-for-testing-only",
    "JWT_SECRET": "test-jwt-secret",
    "DEBUG_ERRORS": True,
    "CUSTOMER_REGISTRATION_MODE": "upsert",
    "BOOKING_ISOLATION_LEVEL": None,
}


class RecordingNotifier:
    """Stands in for the email notifier; remembers every payload."""

    def __init__(self):
        self.sent = []

    def dispatch(self, payload):
        self.sent.append(payload)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_app(notifier):
    """Build an app on a fresh in-memory database; extra config wins."""
    built = []

    def factory(**overrides):
        config = dict(TEST_CONFIG, **overrides)
        app = create_app(test_config=config, notifier=notifier)
        ctx = app.app_context()
        ctx.push()
        Base.metadata.create_all(bind=database.engine)
        built.append((app, ctx))
        return app

    yield factory

    for app, ctx in reversed(built):
        database.session.remove()
        Base.metadata.drop_all(bind=database.engine)
        ctx.pop()


@pytest.fixture
def app(make_app) -> Flask:
    return make_app()


@pytest.fixture
def db_session(app):
    return database.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(db_session):
    admin = Admins(
        name="Test Admin",
        email="admin@example.com",
        password_hash=hash_password("password123"),
    )
    db_session.add(admin)
    db_session.commit()
    return admin


@pytest.fixture
def auth_headers(client, admin):
    """Log the seeded admin in through the API and return bearer headers."""
    response = client.post(
        "/api/admin/auth/login",
        data=json.dumps({"email": "admin@example.com", "password": "password123"}),
        content_type="application/json",
    )
    assert response.status_code == 200
    token = json.loads(response.data)["data"]["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_branch(db_session):
    """
    Active branch "downtown" with:
      service 10 at 100.00 USD / 30 min
      service 20 at 50.00 USD / 45 min
      service 30 not priced here
      service 40 priced but inactive
    """
    category = ServiceCategory(name="Massage", sort_order=1)
    db_session.add(category)
    db_session.flush()

    hotel = Hotel(name="Nile Hotel", title="Riverside")
    db_session.add(hotel)
    db_session.flush()

    branch = Branch(
        name="Downtown",
        slug="downtown",
        city="Cairo",
        country="Egypt",
        hotel_id=hotel.id,
    )
    db_session.add(branch)
    db_session.flush()

    for service_id, name, duration in (
        (10, "Swedish Massage", 60),
        (20, "Foot Reflexology", None),
        (30, "Hot Stones", 90),
        (40, "Body Scrub", 40),
    ):
        db_session.add(
            Service(
                id=service_id,
                category_id=category.id,
                name=name,
                default_duration_min=duration,
            )
        )
    db_session.flush()

    db_session.add_all(
        [
            BranchServicePricing(
                branch_id=branch.id,
                service_id=10,
                price_amount=Decimal("100.00"),
                currency="USD",
                duration_min=30,
            ),
            BranchServicePricing(
                branch_id=branch.id,
                service_id=20,
                price_amount=Decimal("50.00"),
                currency="USD",
                duration_min=45,
            ),
            BranchServicePricing(
                branch_id=branch.id,
                service_id=40,
                price_amount=Decimal("70.00"),
                currency="USD",
                duration_min=40,
                is_active=False,
            ),
        ]
    )
    db_session.commit()
    return branch


@pytest.fixture
def booking_payload(sample_branch):
    return {
        "branch_id": str(sample_branch.id),
        "date": "2025-06-01",
        "notes": "Window room please",
        "services": [
            {"service_id": 10, "quantity": 2},
            {"service_id": 20, "quantity": 1},
        ],
        "customer": {
            "first_name": "Mona",
            "last_name": "Adel",
            "phone": "+201000000001",
            "email": "mona@example.com",
        },
    }


@pytest.fixture
def make_booking(db_session, sample_branch):
    """Insert a booking directly, bypassing the intake workflow."""
    counter = {"n": 0}

    def factory(status="confirmed", booking_date=date(2025, 6, 1), items=((10, 1),)):
        counter["n"] += 1
        customer = Customers(phone=f"+2010000{counter['n']:05d}", first_name="Guest")
        db_session.add(customer)
        db_session.flush()

        booking = Booking(
            branch_id=sample_branch.id,
            customer_id=customer.id,
            status=status,
            date=booking_date,
            total_amount=Decimal("0"),
        )
        db_session.add(booking)
        db_session.flush()

        prices = {10: (Decimal("100.00"), 30), 20: (Decimal("50.00"), 45)}
        total = Decimal("0")
        for position, (service_id, quantity) in enumerate(items, start=1):
            price, duration = prices[service_id]
            db_session.add(
                BookingItem(
                    booking_id=booking.id,
                    service_id=service_id,
                    service_name_snapshot=f"Service {service_id}",
                    price_amount_snapshot=price,
                    currency_snapshot="USD",
                    duration_min_snapshot=duration,
                    quantity=quantity,
                    sort_order=position,
                )
            )
            total += price * quantity
        booking.total_amount = total
        db_session.commit()
        return booking

    return factory
