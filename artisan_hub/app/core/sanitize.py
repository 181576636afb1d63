"""Input clean-up and URL checks shared by the request schemas."""
from typing import Optional
from urllib.parse import urlparse


def sanitize_user_input(text: Optional[str]) -> Optional[str]:
    """
    Strip null bytes and control characters from free text.

    Newlines and tabs are kept. Length limits are enforced by the schemas.
    """
    if text is None:
        return None
    text = text.replace('\x00', '')
    return ''.join(char for char in text if ord(char) >= 32 or char in '\n\r\t')


def is_http_url(value: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def check_http_url(value: Optional[str], field: str) -> Optional[str]:
    """Validator helper: raise ValueError unless value is None or an http(s) URL."""
    if value is None:
        return None
    if not is_http_url(value):
        raise ValueError(f"{field} must be a valid http(s) URL")
    return value
