# repositories/base.py
import re

INTERNAL_ID_RE = re.compile(r"^[0-9a-f]{32}$")


class InvalidIdentifierError(ValueError):
    """Raised when a value passed as an internal id is not one."""


def ensure_internal_id(value: str) -> str:
    if not isinstance(value, str) or not INTERNAL_ID_RE.match(value):
        raise InvalidIdentifierError(f"invalid internal id: {value!r}")
    return value
