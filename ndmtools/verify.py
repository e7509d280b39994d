"""Validation of the storage capacity requested by a device claim."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

RESOURCE_STORAGE = "storage"

_INT64_MAX = 2**63 - 1
_INT64_MIN = -(2**63)

_BINARY_SUFFIXES = {
    "Ki": 2**10,
    "Mi": 2**20,
    "Gi": 2**30,
    "Ti": 2**40,
    "Pi": 2**50,
    "Ei": 2**60,
}

_DECIMAL_SUFFIXES = {
    "n": -9,
    "u": -6,
    "m": -3,
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
    "E": 18,
}

_QUANTITY = re.compile(
    r"^(?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+))"
    r"(?P<suffix>Ki|Mi|Gi|Ti|Pi|Ei|[eE][+-]?\d+|[numkMGTPE])?$"
)


class CapacityError(ValueError):
    """Raised when a quantity or a requested capacity is not valid."""


def parse_quantity(value):
    """Parse a resource quantity such as ``10Gi``, ``500M`` or ``1e3`` exactly.

    Integers and decimals are taken as they are. Raises :class:`CapacityError`
    for anything that is not a quantity.
    """
    if isinstance(value, bool):
        raise CapacityError(f"quantities must be numbers or strings, not {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise CapacityError(f"quantity {value} is not finite")
        return value
    if not isinstance(value, str):
        raise CapacityError(f"quantities must be numbers or strings, not {value!r}")
    match = _QUANTITY.match(value)
    if match is None:
        raise CapacityError(f"quantities must match the regular expression: {value!r}")
    try:
        number = Decimal(match["number"])
    except InvalidOperation as err:
        raise CapacityError(f"cannot parse quantity {value!r}") from err
    suffix = match["suffix"] or ""
    if suffix in _BINARY_SUFFIXES:
        return number * _BINARY_SUFFIXES[suffix]
    if suffix in _DECIMAL_SUFFIXES:
        return number.scaleb(_DECIMAL_SUFFIXES[suffix])
    return number.scaleb(int(suffix[1:]))


def get_requested_capacity(requests):
    """Requested storage in bytes from a claim's resource requests.

    The request must be a whole, positive number of bytes that fits in a
    signed 64-bit integer; otherwise :class:`CapacityError` is raised.
    """
    raw = (requests or {}).get(RESOURCE_STORAGE, 0)
    quantity = parse_quantity(raw)
    if quantity != quantity.to_integral_value():
        raise CapacityError(f"invalid capacity requested, {raw!r} is not a whole number")
    capacity = int(quantity)
    if not _INT64_MIN <= capacity <= _INT64_MAX:
        raise CapacityError(f"invalid capacity requested, {raw!r} is out of range")
    if capacity <= 0:
        raise CapacityError(f"invalid capacity requested, {raw!r}")
    return capacity