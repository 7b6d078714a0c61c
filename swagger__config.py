"""
Swagger/OpenAPI configuration for the Spa Admin API
"""

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api/docs",
}

SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Spa Admin API",
        "description": "Branch, catalog and pricing administration with customer booking intake",
        "version": "1.0.0",
    },
    "host": "",
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": 'JWT Authorization header using the Bearer scheme. Example: "Authorization: Bearer {token}"',
        }
    },
    "security": [{"Bearer": []}],
    "tags": [
        {"name": "Authentication", "description": "Admin login and session"},
        {"name": "Branches", "description": "Branches, their hotel profile and services"},
        {"name": "Categories", "description": "Service categories"},
        {"name": "Services", "description": "Service catalog"},
        {"name": "Pricing", "description": "Per-branch service prices"},
        {"name": "Bookings", "description": "Booking intake and administration"},
        {"name": "Dashboard", "description": "Admin statistics"},
        {"name": "Browse", "description": "Public catalog for customers"},
        {"name": "Images", "description": "Image upload"},
        {"name": "Utility", "description": "Health"},
    ],
    "definitions": {
        "Error": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "error"},
                "message": {"type": "string"},
                "details": {"type": "object"},
            },
        },
        "Success": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "success"},
                "message": {"type": "string"},
            },
        },
        "BookingLine": {
            "type": "object",
            "properties": {
                "service_id": {"type": "integer"},
                "service_name": {"type": "string"},
                "unit_price": {"type": "number"},
                "quantity": {"type": "integer"},
                "item_total": {"type": "number"},
                "currency": {"type": "string", "example": "EGP"},
            },
        },
        "BookingCreated": {
            "type": "object",
            "properties": {
                "success": {"type": "boolean"},
                "booking_id": {"type": "integer"},
                "items": {"type": "array", "items": {"$ref": "#/definitions/BookingLine"}},
                "grand_total": {"type": "number"},
                "currency": {"type": "string"},
            },
        },
        "Branch": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "slug": {"type": "string"},
                "name": {"type": "string"},
                "address": {"type": "string"},
                "city": {"type": "string"},
                "country": {"type": "string"},
                "is_active": {"type": "boolean"},
            },
        },
        "Pricing": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "branch_id": {"type": "integer"},
                "service_id": {"type": "integer"},
                "price_amount": {"type": "number"},
                "currency": {"type": "string"},
                "duration_min": {"type": "integer"},
                "is_active": {"type": "boolean"},
            },
        },
    },
}
