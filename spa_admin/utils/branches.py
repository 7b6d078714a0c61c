import re
from typing import NamedTuple, Union

from sqlalchemy import select

from spa_admin.errors import NotFoundError
from spa_admin.extensions import db
from spa_admin.models import Branch
from spa_admin.utils.patch import MAX_ID

_NUMERIC = re.compile(r"^[0-9]+$")


class BranchFound(NamedTuple):
    id: int
    name: str
    slug: str
    is_active: bool


class BranchNotFound(NamedTuple):
    ref: str


BranchLookup = Union[BranchFound, BranchNotFound]


def normalize_slug(value: str) -> str:
    slug = re.sub(r"\s+", "-", str(value).strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def slugify(name: str) -> str:
    """'Maadi  Spa & Wellness' -> 'maadi-spa-wellness'"""
    slug = re.sub(r"-+", "-", normalize_slug(name)).strip("-")
    return slug or "branch"


def resolve_branch(ref) -> BranchLookup:
    """Look a branch up by numeric id or by slug."""
    value = str(ref if ref is not None else "").strip()
    if not value:
        return BranchNotFound(value)

    stmt = select(Branch.id, Branch.name, Branch.slug, Branch.is_active)
    if _NUMERIC.match(value):
        if int(value) > MAX_ID:
            return BranchNotFound(value)
        stmt = stmt.where(Branch.id == int(value))
    else:
        stmt = stmt.where(Branch.slug == value)

    row = db.session.execute(stmt).first()
    if row is None:
        return BranchNotFound(value)
    return BranchFound(row.id, row.name, row.slug, bool(row.is_active))


def require_branch(ref, active_only=False) -> BranchFound:
    found = resolve_branch(ref)
    if isinstance(found, BranchNotFound):
        raise NotFoundError("Branch not found")
    if active_only and not found.is_active:
        raise NotFoundError("Branch is not active")
    return found
