"""Input sanitization helpers for untrusted strings.

Each helper trims, caps length, then strips or rejects. Truncation always
happens first so stripping can never push a value back over its cap, and every
helper returns a fixed point: sanitizing its own output changes nothing.

These are a secondary hardening layer. Queries must still be parameterized and
output must still be encoded for its context; denylist regexes are easy to
evade with encodings and nesting.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable
from urllib.parse import quote, urlsplit

from request_guard.core.errors import InvalidFormatError, InvalidUrlError

logger = logging.getLogger(__name__)

FREE_TEXT_MAX_LENGTH = 255
SEARCH_TERM_MAX_LENGTH = 100
# RFC 5321 upper bound for a forward path
EMAIL_MAX_LENGTH = 254

_CONTROL_CHARS = re.compile(r"[\x00\x08\x0b\x0c\x0e-\x1f]")
_HTML_TAG = re.compile(r"<[^>]*>")
_EMAIL_DENYLIST = re.compile(r"[<>;\"']")

_SEARCH_DENYLIST: tuple[re.Pattern[str], ...] = (
    # SQL comment after a statement break
    re.compile(r";.*--", re.IGNORECASE),
    re.compile(r"UNION.*SELECT", re.IGNORECASE),
    re.compile(r"DROP.*TABLE", re.IGNORECASE),
    re.compile(r"INSERT.*INTO", re.IGNORECASE),
    re.compile(r"DELETE.*FROM", re.IGNORECASE),
    re.compile(r"UPDATE.*SET", re.IGNORECASE),
    # Markup / script injection
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
)

_UUID = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)
_DIGITS = re.compile(r"[0-9]+")

_ALLOWED_SCHEMES = ("http", "https")
_DEFAULT_PORTS = {"http": 80, "https": 443}
_INVALID_HOST_CHARS = re.compile(r"[\s<>\"{}|\\^`]")
# Characters WHATWG leaves as-is when serializing path/query/fragment
_URL_SAFE = "/%:@!$&'()*+,;=-._~"
_USERINFO_SAFE = "!$&'()*+,%-._~"


def _strip_patterns(value: str, patterns: Iterable[re.Pattern[str]]) -> str:
    """Apply every pattern until none matches.

    One removal can splice a new match together (``<scr<scriptipt``), so a
    single pass is not enough for the result to be stable.
    """
    patterns = tuple(patterns)
    previous = None
    while previous != value:
        previous = value
        for pattern in patterns:
            value = pattern.sub("", value)
    return value


def sanitize_free_text(value: str | None, max_length: int = FREE_TEXT_MAX_LENGTH) -> str:
    """Clean free text such as names and addresses.

    Trims, truncates to ``max_length``, removes null bytes and C0 control
    characters (tab, newline and carriage return are kept) and strips HTML
    tags while keeping the text between them.

    Args:
        value: Raw user input.
        max_length: Maximum length kept before stripping.

    Returns:
        Cleaned string; ``""`` for empty input.

    Example:
        >>> sanitize_free_text("<b>Ada</b> Lovelace")
        'Ada Lovelace'
    """
    if not value:
        return ""
    if max_length < 0:
        raise ValueError("max_length must be >= 0")

    cleaned = value.strip()[:max_length]
    cleaned = _strip_patterns(cleaned, (_CONTROL_CHARS, _HTML_TAG))
    return cleaned.strip()


def sanitize_search_term(value: str | None, max_length: int = SEARCH_TERM_MAX_LENGTH) -> str:
    """Clean a search box query.

    Removes null bytes plus a denylist of SQL-injection and script-injection
    fragments. The search query must still be bound as a parameter.

    Args:
        value: Raw search input.
        max_length: Maximum length kept before stripping.

    Returns:
        Cleaned search term; ``""`` for empty input.
    """
    if not value:
        return ""
    if max_length < 0:
        raise ValueError("max_length must be >= 0")

    cleaned = value.strip()[:max_length].replace("\x00", "")
    cleaned = _strip_patterns(cleaned, _SEARCH_DENYLIST)
    return cleaned.strip()


def sanitize_email(value: str | None) -> str:
    """Normalize an email address for storage and lookup.

    Lowercases, caps at 254 characters and drops ``< > ; " '``. Grammar
    validation is the schema's job, not this helper's.
    """
    if not value:
        return ""

    cleaned = value.strip().lower()[:EMAIL_MAX_LENGTH]
    return _EMAIL_DENYLIST.sub("", cleaned).strip()


def sanitize_identifier(value: str | None) -> str:
    """Validate a record identifier.

    Args:
        value: Candidate id from a path or form field.

    Returns:
        The UUID lowercased, or the numeric id unchanged.

    Raises:
        InvalidFormatError: If the value is neither a canonical UUID nor
            made only of ASCII digits. Empty input is rejected too.
    """
    if value and _UUID.fullmatch(value):
        return value.lower()
    if value and _DIGITS.fullmatch(value):
        return value

    logger.debug(
        "sanitize.rejected",
        extra={"kind": "identifier", "reason": "invalid_format", "length": len(value or "")},
    )
    raise InvalidFormatError(details={"field": "id", "actual_length": len(value or "")})


def _reject_url(reason: str, **details: str) -> InvalidUrlError:
    logger.debug("sanitize.rejected", extra={"kind": "url", "reason": reason})
    return InvalidUrlError(details={"hint": reason, **details})


def sanitize_url(value: str | None) -> str:
    """Validate an absolute http(s) URL and return its canonical form.

    Canonicalization lowercases scheme and host, drops the scheme's default
    port, gives bare origins a ``/`` path and percent-encodes characters that
    are not allowed in userinfo, path, query or fragment. An empty userinfo
    is dropped; an empty query or fragment keeps its ``?`` or ``#``.

    Args:
        value: Candidate URL.

    Returns:
        Re-serialized URL string.

    Raises:
        InvalidUrlError: If the value is empty, not absolute, has no host,
            has an invalid port, has a backslash in its authority, or its
            scheme is not http/https.

    Example:
        >>> sanitize_url("HTTPS://Example.com:443")
        'https://example.com/'
    """
    candidate = (value or "").strip()
    if not candidate:
        raise _reject_url("empty")

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as exc:
        raise _reject_url("unparsable") from exc

    scheme = parts.scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        raise _reject_url("scheme_not_allowed", scheme=scheme)

    # Browsers read a backslash in the authority as a path separator.
    if "\\" in parts.netloc:
        raise _reject_url("invalid_authority")

    host = parts.hostname
    if not host or _INVALID_HOST_CHARS.search(host):
        raise _reject_url("missing_or_invalid_host")

    netloc = f"[{host}]" if ":" in host else host
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"
    if parts.username or parts.password:
        userinfo = quote(parts.username or "", safe=_USERINFO_SAFE)
        if parts.password:
            userinfo = f"{userinfo}:{quote(parts.password, safe=_USERINFO_SAFE)}"
        netloc = f"{userinfo}@{netloc}"

    # urlsplit cannot tell "?" from no query; empty separators are kept.
    before_fragment, has_fragment, _ = candidate.partition("#")
    path = quote(parts.path or "/", safe=_URL_SAFE)
    canonical = f"{scheme}://{netloc}{path}"
    if parts.query or "?" in before_fragment:
        canonical += "?" + quote(parts.query, safe=_URL_SAFE + "?")
    if has_fragment:
        canonical += "#" + quote(parts.fragment, safe=_URL_SAFE + "?#")
    return canonical
