# Query-string helpers shared by the admin list endpoints
import math
from datetime import date
from typing import NamedTuple, Optional

from sqlalchemy import func, select

from spa_admin.errors import NotFoundError, ValidationError
from spa_admin.extensions import db
from spa_admin.utils.patch import MAX_ID


class PageRequest(NamedTuple):
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class SortRequest(NamedTuple):
    field: str
    ascending: bool


def _to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_page(args, default_limit=10, max_limit=100) -> PageRequest:
    page = min(max(_to_int(args.get("page"), 1), 1), MAX_ID)
    limit = min(max(_to_int(args.get("limit"), default_limit), 1), max_limit)
    return PageRequest(page, limit)


def parse_sort(args, allowed, default_field, default_order="desc") -> SortRequest:
    """Column names outside ``allowed`` silently fall back to the default."""
    field = str(args.get("sortBy") or default_field)
    if field not in allowed:
        field = default_field
    order = str(args.get("sortOrder") or default_order).lower()
    return SortRequest(field, order == "asc")


def parse_bool(value) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("true", "1", "yes")


def parse_int(value, name) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if abs(number) > MAX_ID:
        raise ValidationError(f"{name} is out of range")
    return number


def parse_date(value, name) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


def ordered(stmt, model, sort: SortRequest):
    column = getattr(model, sort.field)
    primary = column.asc() if sort.ascending else column.desc()
    # id breaks ties so pages never overlap
    return stmt.order_by(primary, model.id.asc())


def paginate(stmt, page: PageRequest):
    """Return ``(rows, total)`` for an ORM select."""
    total = db.session.scalar(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )
    rows = db.session.scalars(stmt.offset(page.offset).limit(page.limit)).all()
    return rows, total or 0


def pagination_meta(page: PageRequest, total: int):
    return {
        "page": page.page,
        "limit": page.limit,
        "total": total,
        "totalPages": math.ceil(total / page.limit) if total else 0,
    }


def get_or_404(model, row_id, message):
    # ids past the column range cannot exist
    row = db.session.get(model, row_id) if 0 < row_id <= MAX_ID else None
    if row is None:
        raise NotFoundError(message)
    return row


def positive_path_int(value, message, missing=None) -> int:
    """
    Parse a numeric path segment. Values past the id range raise
    ``NotFoundError(missing)`` when ``missing`` is given.
    """
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(message)
    if number <= 0:
        raise ValidationError(message)
    if number > MAX_ID:
        if missing:
            raise NotFoundError(missing)
        raise ValidationError(message)
    return number
