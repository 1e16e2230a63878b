import re
from typing import List
from urllib.parse import urlparse


CUSTOM_CODE_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')
CUSTOM_CODE_MIN_LENGTH = 3
CUSTOM_CODE_MAX_LENGTH = 50

FIELD_LABELS = {
    "originalUrl": "URL",
    "customCode": "Custom code",
    "expiresAt": "Expiration date",
    "isActive": "Active flag",
    "body": "Request body",
}


def is_valid_url(url: str) -> tuple[bool, str]:
    """
    Validate that a URL is a well-formed http(s) URL.

    Args:
        url: The URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url:
        return False, "Please enter a valid URL"

    if len(url) > 2048:
        return False, "URL is too long (max 2048 characters)"

    try:
        result = urlparse(url)
    except ValueError:
        return False, "Please enter a valid URL"

    # Must have scheme and netloc
    if not all([result.scheme, result.netloc]) or not result.hostname:
        return False, "Please enter a valid URL"

    # Only http and https
    if result.scheme not in ['http', 'https']:
        return False, "URL must use HTTP or HTTPS protocol"

    return True, ""


def validate_custom_code(code: str) -> tuple[bool, str]:
    """
    Validate a user-chosen short code.

    Args:
        code: The custom code to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if len(code) < CUSTOM_CODE_MIN_LENGTH:
        return False, f"Custom code must be at least {CUSTOM_CODE_MIN_LENGTH} characters"

    if len(code) > CUSTOM_CODE_MAX_LENGTH:
        return False, f"Custom code must be no more than {CUSTOM_CODE_MAX_LENGTH} characters"

    if not CUSTOM_CODE_PATTERN.match(code):
        return False, "Custom code can only contain letters, numbers, hyphens, and underscores"

    return True, ""


def collect_error_messages(errors: List[dict]) -> List[str]:
    """First error message for every offending field, in field order"""
    messages = []
    seen = set()
    for error in errors:
        loc = list(error.get("loc") or ())
        # Request body errors are located under "body"
        if loc and loc[0] == "body":
            loc = loc[1:]
        field = str(loc[0]) if loc and isinstance(loc[0], str) else "body"
        if field in seen:
            continue
        seen.add(field)
        if error["type"] == "missing":
            messages.append(f"{FIELD_LABELS.get(field, field)} is required")
        else:
            messages.append(error["msg"])
    return messages


def get_client_ip(request) -> str:
    """
    Get client IP address from request.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address
    """
    # Check for X-Forwarded-For header (if behind proxy)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()

    # Otherwise use client.host
    return request.client.host if request.client else "127.0.0.1"
