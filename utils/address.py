"""
Address display helpers.

Splits a full address into house number, street and a secondary line so the
load HUD can show "333" large and "Fleming Road" beneath it.
"""

import re
from dataclasses import dataclass


_HOUSE_NUMBER = re.compile(r'^(\d+)\s+(.*)')


@dataclass(frozen=True)
class AddressDisplay:
    number: str
    street: str
    secondary: str = ""


def format_address_for_display(full_address: str) -> AddressDisplay:
    """
    Split "333 Fleming Road, Sarver" into ("333", "Fleming Road", "Sarver").

    Only the first comma-separated part is searched for a house number.
    """
    if not full_address:
        return AddressDisplay(number="", street="Unknown")

    parts = full_address.split(',')
    street_part = parts[0].strip()

    match = _HOUSE_NUMBER.match(street_part)
    if match:
        return AddressDisplay(
            number=match.group(1),
            street=match.group(2),
            secondary=parts[1].strip() if len(parts) > 1 else "",
        )

    return AddressDisplay(number="", street=street_part)
