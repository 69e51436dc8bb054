"""
Option helpers for the curl request builder.

Pure functions that turn builder input (method names, query maps, bodies,
header maps) into the values handed to libcurl.
"""
import logging
import re
from typing import Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote, urlencode

import pycurl

from ..types import ALLOWED_METHODS, DEFAULT_METHOD, Body, HttpMethod, QueryParams

logger = logging.getLogger("fetch_curl.options")

_CHARSET_RE = re.compile(r"charset\s*=\s*[\"']?([\w.:-]+)", re.IGNORECASE)
_NON_ASCII_RE = re.compile(r"[^\x00-\x7f]+")


def normalize_method(method: Optional[str]) -> HttpMethod:
    """Upper-case the method and fall back to GET when it is not allowed."""
    normalized = (method or "").strip().upper()
    if normalized not in ALLOWED_METHODS:
        logger.debug(f"normalize_method: {method!r} not in {ALLOWED_METHODS}, using {DEFAULT_METHOD}")
        return DEFAULT_METHOD
    return normalized  # type: ignore[return-value]


def wire_method(method: HttpMethod) -> str:
    """Verb sent on the request line."""
    return "HEAD" if method == "HEADER" else method


def quote_non_ascii(text: str) -> str:
    """Percent-encode (UTF-8) only the non-ASCII runs of a URL or query."""
    return _NON_ASCII_RE.sub(lambda m: quote(m.group(0)), text)


def curl_text(text: str) -> Union[str, bytes]:
    """pycurl takes ASCII str only; anything wider goes as UTF-8 bytes."""
    return text if text.isascii() else text.encode("utf-8")


def _scalar(value: object) -> str:
    if value is True:
        return "1"
    if value is False:
        return "0"
    return str(value)


def _flatten(prefix: str, value: object) -> List[Tuple[str, str]]:
    # Nested mappings use bracket keys (a[b]=c), sequences repeat the key.
    if value is None:
        return []
    if isinstance(value, Mapping):
        pairs: List[Tuple[str, str]] = []
        for key, item in value.items():
            pairs.extend(_flatten(f"{prefix}[{key}]", item))
        return pairs
    if isinstance(value, (list, tuple)):
        pairs = []
        for item in value:
            pairs.extend(_flatten(prefix, item))
        return pairs
    return [(prefix, _scalar(value))]


def build_query_string(params: Mapping[str, object]) -> str:
    """URL-encode a parameter map.

    Booleans are sent as 1/0 and None values are skipped.
    """
    pairs: List[Tuple[str, str]] = []
    for key, value in params.items():
        pairs.extend(_flatten(str(key), value))
    return urlencode(pairs)


def build_url(url: str, query: Optional[Union[str, QueryParams]] = None) -> str:
    """Append a query map or pre-encoded query string to a URL."""
    if not query:
        return url

    query_str = query if isinstance(query, str) else build_query_string(query)
    query_str = quote_non_ascii(query_str.lstrip("?&"))
    if not query_str:
        return url

    if "?" not in url:
        separator = "?"
    elif url.endswith(("?", "&")):
        separator = ""
    else:
        separator = "&"
    return f"{url}{separator}{query_str}"


def encode_body(
    data: Optional[Body],
    has_file: bool = False,
) -> Tuple[Optional[Union[str, bytes]], Optional[List[Tuple[str, object]]]]:
    """Encode a request body.

    Returns ``(raw_body, multipart_fields)``; at most one of them is set.
    A map is sent form-urlencoded, or as multipart/form-data when has_file
    is set. Text is sent as UTF-8 bytes; bytes go out unchanged.
    """
    if data is None:
        return None, None

    if isinstance(data, Mapping):
        if has_file:
            fields: List[Tuple[str, object]] = []
            for key, value in data.items():
                # pycurl form tuples such as (pycurl.FORM_FILE, path) pass through
                fields.append((
                    curl_text(str(key)),
                    value if isinstance(value, tuple) else _scalar(value).encode("utf-8"),
                ))
            return None, fields
        return build_query_string(data), None

    if isinstance(data, str):
        return data.encode("utf-8"), None
    return data, None


def normalize_headers(headers: Optional[Union[Mapping[str, object], Iterable[str]]]) -> List[str]:
    """Turn a header map or a list of "Name: value" lines into header lines."""
    if not headers:
        return []
    if isinstance(headers, Mapping):
        return [f"{name}: {value}" for name, value in headers.items()]
    return [str(line) for line in headers]


def ip_resolve_option(protocol: Optional[str]) -> int:
    """Map 'ipv4' / 'ipv6' / anything else to the IPRESOLVE value."""
    if protocol == "ipv4":
        return pycurl.IPRESOLVE_V4
    if protocol == "ipv6":
        return pycurl.IPRESOLVE_V6
    return pycurl.IPRESOLVE_WHATEVER


def detect_charset(header_lines: Iterable[str]) -> Optional[str]:
    """Charset of the last Content-Type header seen, if any.

    After redirects the header lines hold several responses; the last
    Content-Type wins.
    """
    charset = None
    for line in header_lines:
        name, sep, value = line.partition(":")
        if not sep or name.strip().lower() != "content-type":
            continue
        match = _CHARSET_RE.search(value)
        charset = match.group(1) if match else None
    return charset


def decode_body(raw: bytes, charset: Optional[str] = None) -> str:
    """Decode transfer bytes, falling back to UTF-8 with replacement."""
    if charset:
        try:
            return raw.decode(charset)
        except (LookupError, UnicodeDecodeError):
            logger.debug(f"decode_body: charset {charset!r} failed, using utf-8")
    return raw.decode("utf-8", errors="replace")
