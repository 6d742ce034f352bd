"""Warehouse settings: location alphabet, shelf ranges, and env flags.

Settings are read from the environment on every call so tests can flip them
with ``monkeypatch.setenv`` without reloading modules.
"""

import os
from string import ascii_uppercase

AWAITING_LOCATION = "Awaiting Location"

_TRUTHY = {"1", "true", "yes", "on"}


def _build_location_codes() -> tuple[str, ...]:
    # Bay codes A1..Z5 (A and B carry two bays) plus the lettered aisles AA..FG.
    codes = ["A1", "A2", "B1", "B2"]
    for letter in ascii_uppercase[ascii_uppercase.index("C") :]:
        codes.extend(f"{letter}{n}" for n in range(1, 6))
    for aisle in "ABCDEF":
        codes.extend(f"{aisle}{bay}" for bay in "ABCDEFG")
    return tuple(codes)


LOCATION_CODES = _build_location_codes()


def is_extended_shelf_location(location_code: str) -> bool:
    """O1–O8 and P1–P8 carry eight shelves instead of six."""
    return len(location_code) == 2 and location_code[0] in ("O", "P") and location_code[1] in "12345678"


def max_shelf_number(location_code: str) -> int:
    return 7 if is_extended_shelf_location(location_code) else 5


def is_known_location(location_code: str | None) -> bool:
    return location_code == AWAITING_LOCATION or location_code in LOCATION_CODES


def is_valid_shelf(location_code: str | None, shelf_number: str | None) -> bool:
    if location_code == AWAITING_LOCATION:
        return True
    if shelf_number is None:
        return False
    shelf = str(shelf_number).strip()
    if not shelf.isdigit():
        return False
    return 0 <= int(shelf) <= max_shelf_number(location_code or "")


def enforce_location_availability() -> bool:
    return os.environ.get("WAREHOUSE_ENFORCE_LOCATION_AVAILABILITY", "false").strip().lower() in _TRUTHY


def product_lookup_adapter() -> str:
    return os.environ.get("PRODUCT_LOOKUP_ADAPTER", "fake")
