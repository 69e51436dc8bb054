"""
Fluent HTTP request builder over libcurl.

Configure a request through chained setters, then execute it to get the
body or the header text:

    from fetch_curl import CurlRequest

    html = (
        CurlRequest("https://example.com/search")
        .set_query({"q": "curl"})
        .set_follow_location()
        .set_timeout(10)
        .execute()
    )
"""
from .types import (
    HttpMethod,
    IpProtocol,
    TransferError,
)
from .config import (
    CurlConfig,
    ResolvedConfig,
    resolve_config,
)
from .exceptions import (
    FetchCurlError,
    HandleClosedError,
    ConfigError,
)
from .core.request_builder import CurlRequest
from .core.options import build_url, build_query_string

__all__ = [
    # Types
    "HttpMethod",
    "IpProtocol",
    "TransferError",
    # Config
    "CurlConfig",
    "ResolvedConfig",
    "resolve_config",
    # Errors
    "FetchCurlError",
    "HandleClosedError",
    "ConfigError",
    # Builder
    "CurlRequest",
    "build_url",
    "build_query_string",
]

__version__ = "0.1.0"
