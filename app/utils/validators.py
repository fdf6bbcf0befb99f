import ipaddress
import re

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

_IP_INPUT_RE = re.compile(r"^[0-9.]*$")
_PHONE_INPUT_RE = re.compile(r"^[\d\s\-+()]*$")
_PHONE_STRIP_RE = re.compile(r"[^\d\s\-+()]")

PHONE_MIN_DIGITS = 8
PHONE_MAX_DIGITS = 15


def is_valid_ip_address(value: str) -> bool:
    """True for an IPv4 or IPv6 literal."""
    try:
        ipaddress.ip_address((value or "").strip())
    except ValueError:
        return False
    return True


def is_ip_input_valid(value: str) -> bool:
    return bool(_IP_INPUT_RE.match(value or ""))


def format_ip_input(value: str) -> str:
    """Normalise partial IPv4 input as it is typed.

    Keeps digits and dots only, collapses repeated dots and caps the result
    at four groups of at most three digits.
    """
    sanitized = re.sub(r"[^0-9.]", "", value or "")
    sanitized = re.sub(r"\.{2,}", ".", sanitized)
    parts = sanitized.split(".")[:4]
    return ".".join(part[:3] for part in parts)


def is_phone_input_valid(value: str) -> bool:
    return bool(_PHONE_INPUT_RE.match(value or ""))


def format_phone_input(value: str) -> str:
    return _PHONE_STRIP_RE.sub("", value or "")


def normalize_phone_number(value: str) -> str | None:
    """``+<digits>`` form of a phone number, or None when it cannot be one.

    E.164 allows at most 15 digits; fewer than 8 is never a dialable
    subscriber number.
    """
    digits = re.sub(r"\D", "", format_phone_input(value))
    if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        return None
    try:
        parsed = phonenumbers.parse(f"+{digits}", None)
    except NumberParseException:
        return f"+{digits}"
    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)
