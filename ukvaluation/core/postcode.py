import re

from .errors import PostcodeFormatError

# 1-2 letters, digit or "R", optional digit/letter, space, digit, 2 letters
POSTCODE_RE = re.compile(r"^[A-Z]{1,2}[0-9R][0-9A-Z]? [0-9][A-Z]{2}$", re.IGNORECASE)
_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]", re.IGNORECASE)

def normalize(raw: str | None) -> str:
    """
    Canonical spacing and casing:
    - trim whitespace
    - uppercase
    - collapse whitespace runs to a single space
    """
    if not raw:
        return ""
    return " ".join(raw.strip().upper().split())

def is_valid(pc: str) -> bool:
    return bool(POSTCODE_RE.match(pc))

def auto_format(raw: str) -> str | None:
    """
    Recover postcodes typed without (or with odd) separators, e.g. "sw1a1aa"
    or "SW1A-1AA". The inward code is always the last three characters.
    """
    cleaned = _NON_ALNUM_RE.sub("", raw or "").upper()
    if len(cleaned) < 5 or len(cleaned) > 7:
        return None
    formatted = f"{cleaned[:-3]} {cleaned[-3:]}"
    return formatted if is_valid(formatted) else None

def outcode(pc: str) -> str:
    """Postal area part of a validated postcode ("SW1A 1AA" -> "SW1A")."""
    return pc.split(" ", 1)[0]

def parent_outcode(code: str) -> str | None:
    """Broader district for sub-divided outcodes ("SW1A" -> "SW1"), else None."""
    if len(code) > 3:
        return code[:-1]
    return None

def resolve(raw: str) -> str:
    """
    Normalize, falling back to auto-formatting the *original* input.
    Raises PostcodeFormatError when neither yields a valid postcode.
    """
    pc = normalize(raw)
    if is_valid(pc):
        return pc
    recovered = auto_format(raw)
    if recovered:
        return recovered
    raise PostcodeFormatError("Invalid UK postcode format. Example: SW1A 1AA")
