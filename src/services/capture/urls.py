"""URL helpers shared by capture, sanitization and navigation."""

from __future__ import annotations

import ipaddress
import re
from urllib.parse import quote_plus, urljoin, urlsplit

from core.exceptions import InputValidationError


HTTP_SCHEMES = frozenset({"http", "https"})

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_HTTP_PREFIX_RE = re.compile(r"^https?://", re.IGNORECASE)
# Browsers ignore tabs/newlines/control chars inside a scheme ("java\tscript:")
_IGNORED_URL_CHARS_RE = re.compile(r"[\x00-\x20\x7f]+")


def compact_url(value: str) -> str:
    """Lower-case ``value`` with whitespace and control characters removed."""
    return _IGNORED_URL_CHARS_RE.sub("", value).lower()


def has_scheme(value: str, *schemes: str) -> bool:
    compacted = compact_url(value)
    return any(compacted.startswith(f"{scheme}:") for scheme in schemes)


def is_absolute_http(value: str) -> bool:
    return _HTTP_PREFIX_RE.match(value.strip()) is not None


def validate_http_url(value: str) -> str | None:
    """Return ``value`` if it is a well-formed absolute http(s) URL, else None."""
    try:
        parts = urlsplit(value)
        # Accessing .port validates it (raises on "host:abc" or out of range)
        parts.port  # noqa: B018
    except ValueError:
        return None
    if parts.scheme.lower() not in HTTP_SCHEMES or not parts.hostname:
        return None
    if any(ch.isspace() for ch in parts.netloc):
        return None
    return value


def resolve_url(value: str, base_url: str) -> str | None:
    """Resolve ``value`` against ``base_url`` into an absolute http(s) URL.

    Returns None when the value cannot be resolved into something a browser
    could fetch; callers drop the attribute (or node) in that case.
    """
    candidate = value.strip()
    if not candidate:
        return None
    try:
        absolute = urljoin(base_url, candidate)
    except ValueError:
        return None
    return validate_http_url(absolute)


def is_pdf_url(url: str) -> bool:
    lowered = url.lower()
    path = urlsplit(lowered).path if is_absolute_http(lowered) else lowered
    return path.endswith(".pdf") or ".pdf?" in lowered


def normalize_user_input(raw: str | None, search_url_template: str) -> str:
    """Turn URL-bar input into a URL to load.

    Bare words become a web search, host-like input without a scheme gets
    ``https://``.

    Raises:
        InputValidationError: If the input is empty.
    """
    text = (raw or "").strip()
    if not text:
        raise InputValidationError("A URL is required")
    if is_absolute_http(text):
        return text
    if _SCHEME_RE.match(text) and not re.match(r"^[^:/]+:\d", text):
        # Some other explicit scheme (ftp:, file:, javascript:) - let the
        # validator reject it rather than searching for it.
        return text
    if "." not in text:
        return search_url_template.format(query=quote_plus(text))
    return f"https://{text}"


def ensure_capture_url(url: str | None, *, allow_private_hosts: bool = False) -> str:
    """Validate a URL before any browser is launched for it.

    Raises:
        InputValidationError: If the URL is missing, malformed, not http(s),
            or points at a loopback/private address.
    """
    text = (url or "").strip()
    if not text:
        raise InputValidationError("Missing url parameter")
    if not is_absolute_http(text):
        if _SCHEME_RE.match(text) and not re.match(r"^[^:/]+:\d", text):
            raise InputValidationError("URL must use HTTP or HTTPS protocol")
        text = f"https://{text}"

    if validate_http_url(text) is None:
        raise InputValidationError("URL must include a valid scheme and domain")

    hostname = urlsplit(text).hostname or ""
    if not allow_private_hosts and _is_private_host(hostname):
        raise InputValidationError(
            "Cannot fetch from localhost or private IP addresses"
        )
    return text


def _is_private_host(hostname: str) -> bool:
    host = hostname.strip("[]").lower()
    if host == "localhost" or host.endswith(".localhost"):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
    )
