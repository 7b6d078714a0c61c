# JSON shapes for ORM rows returned by the admin and browse endpoints
from datetime import date, datetime
from decimal import Decimal


def json_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def row_dict(row, fields):
    return {name: json_value(getattr(row, name)) for name in fields}


ADMIN_FIELDS = ("id", "name", "email", "is_active", "created_at")
CATEGORY_FIELDS = ("id", "name", "description", "sort_order", "is_active", "created_at")
SERVICE_FIELDS = (
    "id",
    "category_id",
    "name",
    "description",
    "default_duration_min",
    "image_url_1",
    "is_active",
    "created_at",
)
PRICING_FIELDS = (
    "id",
    "branch_id",
    "service_id",
    "price_amount",
    "currency",
    "duration_min",
    "is_active",
    "created_at",
)
BRANCH_FIELDS = (
    "id",
    "slug",
    "name",
    "address",
    "phone",
    "country",
    "city",
    "region",
    "description",
    "image_url_1",
    "image_url_2",
    "image_url_3",
    "image_url_4",
    "image_url_5",
    "hotel_id",
    "is_active",
    "created_at",
)
HOTEL_FIELDS = ("id", "name", "title", "description", "image_url_1")


def branch_dict(branch, with_hotel=True):
    data = row_dict(branch, BRANCH_FIELDS)
    if with_hotel:
        data["hotel"] = row_dict(branch.hotel, HOTEL_FIELDS) if branch.hotel else None
    return data


def service_dict(service, with_category=False):
    data = row_dict(service, SERVICE_FIELDS)
    if with_category:
        category = service.category
        data["category"] = (
            {"id": category.id, "name": category.name} if category else None
        )
    return data


def pricing_dict(pricing, with_relations=True):
    data = row_dict(pricing, PRICING_FIELDS)
    if with_relations:
        data["branch"] = (
            {"id": pricing.branch.id, "name": pricing.branch.name}
            if pricing.branch
            else None
        )
        data["service"] = (
            {"id": pricing.service.id, "name": pricing.service.name}
            if pricing.service
            else None
        )
    return data
