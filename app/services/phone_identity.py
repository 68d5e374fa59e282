"""Phone number identity for Turkish numbers.

Historical lead rows were written with whatever formatting the source sheet
used ("0555 123 45 67", "+905551234567", "5551234567", ...). Canonical form
is the 12-digit "90" + national number; ``generate_variants`` lists every
representation the store may still hold for the same physical number.
"""

import re
from typing import Optional

COUNTRY_CODE = "90"
NATIONAL_DIGITS = 10
# Below this many digits a row is treated as garbage and dropped on import
MIN_PHONE_DIGITS = 6

_NON_DIGIT = re.compile(r"\D")


def normalize_digits(raw: str | None) -> str:
    """Strip every non-digit character."""
    if not raw:
        return ""
    return _NON_DIGIT.sub("", raw)


def national_number(raw: str | None) -> Optional[str]:
    """Last 10 significant digits, or None when the number is too short."""
    digits = normalize_digits(raw)
    if len(digits) < NATIONAL_DIGITS:
        return None
    return digits[-NATIONAL_DIGITS:]


def canonicalize(raw: str | None) -> Optional[str]:
    """Return the canonical "90XXXXXXXXXX" form, or None if fewer than 10 digits."""
    local = national_number(raw)
    if local is None:
        return None
    return COUNTRY_CODE + local


def format_display(canonical: str) -> str:
    """"905551234567" -> "+90 555 123 45 67"."""
    local = canonical[-NATIONAL_DIGITS:]
    return f"+{COUNTRY_CODE} {local[:3]} {local[3:6]} {local[6:8]} {local[8:]}"


def storage_form(raw: str | None) -> Optional[str]:
    """Value persisted in ``leads.phone_number``.

    Canonical when the number has 10+ digits; 6–9 digit numbers are kept
    as bare digits; anything shorter is invalid (None).
    """
    canonical = canonicalize(raw)
    if canonical:
        return canonical
    digits = normalize_digits(raw)
    if len(digits) >= MIN_PHONE_DIGITS:
        return digits
    return None


def generate_variants(raw: str, canonical: str | None = None) -> set[str]:
    """Every encoding of the same number a historical row might contain."""
    variants = {raw}
    digits = normalize_digits(raw)
    if digits:
        variants.add(digits)
        variants.add("+" + digits)

    canonical = canonical or canonicalize(raw)
    if canonical:
        local = canonical[-NATIONAL_DIGITS:]
        variants.update({
            canonical,
            "+" + canonical,
            local,
            "0" + local,
            format_display(canonical),
        })

    variants.discard("")
    return variants
