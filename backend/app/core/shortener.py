import random
import string
import time
from typing import Optional

from .exceptions import ConflictError, GenerationError
from ..config import settings


# Case-sensitive alphanumeric alphabet (Base62)
CHARSET = string.ascii_letters + string.digits  # A-Za-z0-9

# Lowercase alphabet for opaque ids
ID_CHARSET = string.ascii_lowercase + string.digits

MAX_ATTEMPTS = 10
FALLBACK_EXTRA_LENGTH = 2


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(ID_CHARSET[remainder])
    return "".join(reversed(digits))


def _random_code(length: int) -> str:
    return "".join(random.choices(CHARSET, k=length))


def generate_short_code(store, custom_code: Optional[str] = None,
                        length: Optional[int] = None) -> str:
    """
    Produce a short code that no existing link uses.

    Args:
        store: Record store used for the uniqueness check
        custom_code: Code requested by the user, returned unchanged if free
        length: Length of generated codes (defaults to settings)

    Returns:
        A unique short code

    Raises:
        ConflictError: If the custom code is already taken
        GenerationError: If no free code was found

    Note:
        - 8 chars: 62^8 ~ 2.2e14 combinations
        - after 10 collisions a single 10-char code is tried
    """
    if custom_code:
        if store.get_link_by_code(custom_code) is not None:
            raise ConflictError("Custom short code already exists")
        return custom_code

    length = length or settings.SHORT_CODE_LENGTH

    for _ in range(MAX_ATTEMPTS):
        code = _random_code(length)
        if store.get_link_by_code(code) is None:
            return code

    # If we couldn't find a unique code, try once with a longer one
    code = _random_code(length + FALLBACK_EXTRA_LENGTH)
    if store.get_link_by_code(code) is None:
        return code

    raise GenerationError("Unable to generate unique short code")


def new_record_id() -> str:
    """Opaque id for links and clicks: base36 millis plus a random suffix"""
    millis = int(time.time() * 1000)
    return _to_base36(millis) + "".join(random.choices(ID_CHARSET, k=11))


def new_session_id() -> str:
    """Visitor session id"""
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(ID_CHARSET, k=11))
    return f"session_{_to_base36(millis)}_{suffix}"
