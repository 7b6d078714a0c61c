"""
Partial updates from JSON bodies.

A key missing from the body is ``UNSET`` and leaves the column alone; a key sent
as ``null`` is ``None`` and clears it. Coercers turn raw JSON values into
column values and raise ``ValidationError`` with the field name.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from spa_admin.errors import ValidationError


class _Unset:
    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET = _Unset()

# Largest value an INTEGER id column can hold
MAX_ID = 2**31 - 1

Coercer = Callable[[Any, str], Any]


class Patch:
    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._values = dict(values or {})

    @classmethod
    def from_json(cls, data, fields: Mapping[str, Coercer]) -> "Patch":
        data = data or {}
        values = {}
        for name, coerce in fields.items():
            if name in data:
                values[name] = coerce(data[name], name)
        return cls(values)

    def get(self, name):
        return self._values.get(name, UNSET)

    def __contains__(self, name):
        return name in self._values

    def __bool__(self):
        return bool(self._values)

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        return iter(self._values.items())

    def subset(self, prefix: str) -> "Patch":
        """Fields named ``<prefix>x`` re-keyed as ``x``."""
        return Patch(
            {k[len(prefix):]: v for k, v in self._values.items() if k.startswith(prefix)}
        )

    def without(self, *names) -> "Patch":
        return Patch({k: v for k, v in self._values.items() if k not in names})

    def apply_to(self, row) -> None:
        for name, value in self._values.items():
            setattr(row, name, value)


def optional_str(value, name):
    if value is None:
        return None
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ValidationError(f"{name} must be a string")
    value = str(value).strip()
    return value or None


def required_str(value, name):
    value = optional_str(value, name)
    if value is None:
        raise ValidationError(f"{name} must be a non-empty string")
    return value


def as_bool(value, name):
    if isinstance(value, bool):
        return value
    if value in (0, 1, "0", "1", "true", "false"):
        return value in (1, "1", "true")
    raise ValidationError(f"{name} must be a boolean")


def positive_int(value, name):
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        value = int(value.strip())
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive number")
    if value > MAX_ID:
        raise ValidationError(f"{name} is too large")
    return value


def positive_int_or_null(value, name):
    if value is None:
        return None
    return positive_int(value, name)


def amount(value, name):
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{name} is required and must be a number")
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{name} is required and must be a number")
    if not number.is_finite() or number < 0:
        raise ValidationError(f"{name} must be a number >= 0")
    try:
        return number.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{name} is too large")


def currency_in(allowed) -> Coercer:
    def coerce(value, name):
        code = str(value or "").strip().upper()
        if code not in allowed:
            raise ValidationError(
                f"{name} must be one of: {', '.join(sorted(allowed))}"
            )
        return code

    return coerce
