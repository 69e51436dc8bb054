"""
Core modules for fetch_curl.
"""
from .request_builder import CurlRequest
from .options import (
    build_url,
    build_query_string,
    encode_body,
    normalize_headers,
    normalize_method,
)

__all__ = [
    "CurlRequest",
    "build_url",
    "build_query_string",
    "encode_body",
    "normalize_headers",
    "normalize_method",
]
