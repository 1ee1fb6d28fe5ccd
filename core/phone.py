"""
Phone number normalization.

The normalized form is the system-wide customer identity key: two raw inputs
that normalize identically always resolve to the same Customer.
"""

import re
from dataclasses import dataclass
from typing import Optional

INTERNATIONAL_PATTERN = re.compile(r"^\+?[\d\s\-()]{10,}$")

# Dialing code -> country. Matched longest prefix first so "+254" wins over "+2".
COUNTRY_DIALING_CODES = {
    "+1": "US",
    "+44": "UK",
    "+91": "IN",
    "+86": "CN",
    "+33": "FR",
    "+49": "DE",
    "+81": "JP",
    "+82": "KR",
    "+61": "AU",
    "+55": "BR",
    "+254": "KE",
    "+234": "NG",
    "+27": "ZA",
}
UNKNOWN_COUNTRY = "UNKNOWN"

_PREFIXES_LONGEST_FIRST = sorted(COUNTRY_DIALING_CODES, key=len, reverse=True)


class InvalidPhoneNumber(ValueError):
    pass


@dataclass(frozen=True)
class PhoneValidation:
    is_valid: bool
    normalized: Optional[str] = None
    formatted: Optional[str] = None
    country_code: Optional[str] = None
    error: Optional[str] = None
    original: Optional[str] = None


def clean_phone_number(phone_number) -> str:
    """
    Removes every character except digits and '+', then applies the
    country-code rules:
    - already '+'-prefixed: kept as is
    - 11 digits starting with 1: '+' prepended (North American number)
    - exactly 10 digits: treated as '+1' number
    - longer than 10 digits: '+' prepended
    """
    if not phone_number:
        return ""

    cleaned = re.sub(r"[^\d+]", "", str(phone_number))

    if cleaned.startswith("+"):
        return cleaned

    if cleaned.startswith("1") and len(cleaned) == 11:
        return "+" + cleaned

    if len(cleaned) == 10:
        return "+1" + cleaned

    if len(cleaned) > 10:
        return "+" + cleaned

    return cleaned


def is_valid_phone_number(phone_number) -> bool:
    if not phone_number:
        return False

    cleaned = clean_phone_number(phone_number)
    return bool(INTERNATIONAL_PATTERN.match(cleaned)) and len(cleaned) >= 10


def normalize_phone_number(phone_number) -> str:
    """
    Returns the canonical storage form of a phone number.

    Raises:
        InvalidPhoneNumber: if the number cannot be normalized.
    """
    if not phone_number:
        raise InvalidPhoneNumber("Phone number is required")

    cleaned = clean_phone_number(phone_number)
    if not is_valid_phone_number(cleaned):
        raise InvalidPhoneNumber("Invalid phone number format")

    return cleaned


def format_phone_number(phone_number, style: str = "international") -> str:
    if not phone_number:
        return ""

    cleaned = clean_phone_number(phone_number)

    if style == "us" and (cleaned.startswith("+1") or cleaned.startswith("1")):
        digits = re.sub(r"^\+?1", "", cleaned)
        if len(digits) == 10:
            return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"

    return cleaned


def get_country_code(phone_number) -> Optional[str]:
    if not phone_number:
        return None

    cleaned = clean_phone_number(phone_number)
    for prefix in _PREFIXES_LONGEST_FIRST:
        if cleaned.startswith(prefix):
            return COUNTRY_DIALING_CODES[prefix]

    return UNKNOWN_COUNTRY


def validate_and_normalize(phone_number) -> PhoneValidation:
    """
    Validates and normalizes a phone number without raising.
    """
    try:
        normalized = normalize_phone_number(phone_number)
    except InvalidPhoneNumber as e:
        return PhoneValidation(is_valid=False, error=str(e), original=phone_number)

    return PhoneValidation(
        is_valid=True,
        normalized=normalized,
        formatted=format_phone_number(normalized, "us"),
        country_code=get_country_code(normalized),
        original=phone_number,
    )


def are_phone_numbers_equal(first, second) -> bool:
    try:
        return normalize_phone_number(first) == normalize_phone_number(second)
    except InvalidPhoneNumber:
        return False


def mask_phone_number(phone_number, mask_char: str = "*") -> str:
    """
    Masks all but the last four digits, e.g. for log lines.
    """
    if not phone_number:
        return ""

    formatted = format_phone_number(phone_number, "us")
    if "(" in formatted and ")" in formatted:
        # (555) 123-4567 -> (***) ***-4567
        return re.sub(r"\d(?=.*\d{4})", mask_char, formatted)

    cleaned = clean_phone_number(phone_number)
    if len(cleaned) > 4:
        return re.sub(r"\d", mask_char, cleaned[:-4]) + cleaned[-4:]

    return str(phone_number)
