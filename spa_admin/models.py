from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKeyConstraint,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()
metadata = Base.metadata

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")


class Admins(Base):
    __tablename__ = "admins"
    __table_args__ = (Index("admins_email_unique", "email", unique=True),)

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(100))
    email = mapped_column(String(255), nullable=False)
    password_hash = mapped_column(String(72), nullable=False)
    is_active = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("1")
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


class Hotel(Base):
    __tablename__ = "hotels"
    __table_args__ = {"comment": "Lodging profile owned by exactly one branch."}

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(150), nullable=False)
    title = mapped_column(String(255), nullable=False, server_default=text("''"))
    description = mapped_column(Text)
    image_url_1 = mapped_column(String(512))

    branch: Mapped[Optional["Branch"]] = relationship(
        "Branch", back_populates="hotel", uselist=False
    )


class Branch(Base):
    __tablename__ = "branches"
    __table_args__ = (
        ForeignKeyConstraint(
            ["hotel_id"], ["hotels.id"], ondelete="SET NULL", name="fk_branch_hotel"
        ),
        Index("branches_slug_unique", "slug", unique=True),
        Index("fk_branch_hotel", "hotel_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(150), nullable=False)
    slug = mapped_column(String(160), nullable=False)
    address = mapped_column(String(255))
    phone = mapped_column(String(50))
    country = mapped_column(String(100))
    city = mapped_column(String(100))
    region = mapped_column(String(100))
    description = mapped_column(Text)
    image_url_1 = mapped_column(String(512))
    image_url_2 = mapped_column(String(512))
    image_url_3 = mapped_column(String(512))
    image_url_4 = mapped_column(String(512))
    image_url_5 = mapped_column(String(512))
    hotel_id = mapped_column(Integer)
    is_active = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("1")
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    hotel: Mapped[Optional["Hotel"]] = relationship("Hotel", back_populates="branch")
    pricing: Mapped[List["BranchServicePricing"]] = relationship(
        "BranchServicePricing", uselist=True, back_populates="branch"
    )
    bookings: Mapped[List["Booking"]] = relationship(
        "Booking", uselist=True, back_populates="branch"
    )


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(150), nullable=False)
    description = mapped_column(Text)
    sort_order = mapped_column(Integer, nullable=False, server_default=text("0"))
    is_active = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("1")
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    services: Mapped[List["Service"]] = relationship(
        "Service", uselist=True, back_populates="category"
    )


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        ForeignKeyConstraint(
            ["category_id"], ["service_categories.id"], name="fk_service_category"
        ),
        Index("fk_service_category", "category_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    category_id = mapped_column(Integer, nullable=False)
    name = mapped_column(String(150), nullable=False)
    description = mapped_column(Text)
    default_duration_min = mapped_column(Integer)
    image_url_1 = mapped_column(String(512))
    is_active = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("1")
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    category: Mapped["ServiceCategory"] = relationship(
        "ServiceCategory", back_populates="services"
    )
    pricing: Mapped[List["BranchServicePricing"]] = relationship(
        "BranchServicePricing", uselist=True, back_populates="service"
    )


class BranchServicePricing(Base):
    __tablename__ = "branch_service_pricing"
    __table_args__ = (
        ForeignKeyConstraint(
            ["branch_id"], ["branches.id"], ondelete="CASCADE", name="fk_bsp_branch"
        ),
        ForeignKeyConstraint(
            ["service_id"], ["services.id"], ondelete="CASCADE", name="fk_bsp_service"
        ),
        UniqueConstraint("branch_id", "service_id", name="uq_bsp_branch_service"),
        Index("fk_bsp_service", "service_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    branch_id = mapped_column(Integer, nullable=False)
    service_id = mapped_column(Integer, nullable=False)
    price_amount = mapped_column(Numeric(10, 2), nullable=False)
    currency = mapped_column(String(3), nullable=False)
    duration_min = mapped_column(Integer)
    is_active = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("1")
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    branch: Mapped["Branch"] = relationship("Branch", back_populates="pricing")
    service: Mapped["Service"] = relationship("Service", back_populates="pricing")


class Customers(Base):
    __tablename__ = "customers"
    __table_args__ = (Index("customers_phone", "phone"),)

    id = mapped_column(Integer, primary_key=True)
    first_name = mapped_column(String(100))
    last_name = mapped_column(String(100))
    phone = mapped_column(String(50), nullable=False)
    email = mapped_column(String(255))
    gender = mapped_column(String(20))
    nationality = mapped_column(String(100))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    bookings: Mapped[List["Booking"]] = relationship(
        "Booking", uselist=True, back_populates="customer"
    )

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        ForeignKeyConstraint(["branch_id"], ["branches.id"], name="fk_bk_branch"),
        ForeignKeyConstraint(["customer_id"], ["customers.id"], name="fk_bk_customer"),
        Index("bookings_branch_date", "branch_id", "date"),
        Index("fk_bk_customer", "customer_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    branch_id = mapped_column(Integer, nullable=False)
    customer_id = mapped_column(Integer, nullable=False)
    status = mapped_column(
        Enum(*BOOKING_STATUSES, name="booking_status"),
        nullable=False,
        server_default=text("'pending'"),
    )
    date = mapped_column(Date, nullable=False)
    notes = mapped_column(Text)
    total_amount = mapped_column(
        Numeric(10, 2), nullable=False, server_default=text("0")
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    branch: Mapped["Branch"] = relationship("Branch", back_populates="bookings")
    customer: Mapped["Customers"] = relationship(
        "Customers", back_populates="bookings"
    )
    items: Mapped[List["BookingItem"]] = relationship(
        "BookingItem",
        uselist=True,
        back_populates="booking",
        cascade="all, delete-orphan",
    )


class BookingItem(Base):
    __tablename__ = "booking_items"
    __table_args__ = (
        ForeignKeyConstraint(
            ["booking_id"], ["bookings.id"], ondelete="CASCADE", name="fk_bi_booking"
        ),
        Index("fk_bi_booking", "booking_id", "sort_order"),
        Index("bi_service", "service_id"),
        {"comment": "Line items with price/name snapshots frozen at booking time."},
    )

    id = mapped_column(Integer, primary_key=True)
    booking_id = mapped_column(Integer, nullable=False)
    # Plain reference: snapshots must survive edits to the service row
    service_id = mapped_column(Integer, nullable=False)
    service_name_snapshot = mapped_column(String(150), nullable=False)
    price_amount_snapshot = mapped_column(Numeric(10, 2), nullable=False)
    currency_snapshot = mapped_column(String(3), nullable=False)
    duration_min_snapshot = mapped_column(Integer, nullable=False, server_default=text("0"))
    quantity = mapped_column(Integer, nullable=False, server_default=text("1"))
    sort_order = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="items")
