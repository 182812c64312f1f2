"""
Phone number formatting for the reservation form.

Formats digits as they are typed into the North American pattern
``(XXX) XXX-XXXX``.
"""

import re
from typing import Optional


NON_DIGITS = re.compile(r'[^\d]')

MAX_DIGITS = 10


def phone_digits(value: Optional[str]) -> str:
    """Strip everything that is not a digit."""
    if not value:
        return ""
    return NON_DIGITS.sub('', value)


def normalize_phone_number(value: Optional[str]) -> Optional[str]:
    """
    Format raw phone input as the guest types it.

    Fewer than four digits come back bare so the area code is not
    punctuated too early. Digits past the tenth are dropped.

    Args:
        value: Raw field value, possibly already formatted

    Returns:
        Formatted number, or the input unchanged if it is empty
    """
    if not value:
        return value

    digits = phone_digits(value)

    if len(digits) < 4:
        return digits

    if len(digits) < 7:
        return f"({digits[:3]}) {digits[3:]}"

    return f"({digits[:3]}) {digits[3:6]}-{digits[6:MAX_DIGITS]}"
