"""
Type definitions for fetch_curl.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Mapping, Optional, TextIO, Tuple, Union


# HTTP methods accepted by the builder. "HEADER" is sent on the wire as HEAD.
HttpMethod = Literal["GET", "POST", "HEADER"]

ALLOWED_METHODS: Tuple[str, ...] = ("GET", "POST", "HEADER")
DEFAULT_METHOD: HttpMethod = "GET"

# IP resolve preference
IpProtocol = Literal["ipv4", "ipv6", "all"]

QueryValue = Union[str, int, float, bool]
QueryParams = Mapping[str, Union[QueryValue, List[QueryValue]]]
Body = Union[str, bytes, Mapping[str, object]]

DEFAULT_TIMEOUT = 30.0


@dataclass
class TransferError:
    """libcurl failure of the most recent transfer."""

    code: int
    message: str

    def __str__(self) -> str:
        return f"curl error {self.code}: {self.message}"


@dataclass
class RequestState:
    """Mutable request configuration accumulated by the builder.

    A copy taken with snapshot() is what gets applied to the handle, so a
    transfer never sees a half-updated configuration.
    """

    url: str
    method: HttpMethod = DEFAULT_METHOD
    body: Optional[Union[str, bytes]] = None
    multipart: Optional[List[Tuple[str, object]]] = None
    cookie: str = ""
    cookie_file: Optional[str] = None
    cookie_jar: Optional[str] = None
    referer: str = ""
    headers: List[str] = field(default_factory=list)
    timeout: float = DEFAULT_TIMEOUT
    connect_timeout: Optional[float] = None
    follow_location: bool = False
    max_redirects: Optional[int] = None
    fresh_connect: bool = False
    dns_cache: bool = True
    verify_ssl: bool = True
    ip_protocol: IpProtocol = "all"
    return_body: bool = True
    return_transfer: bool = True
    return_response_header: bool = False
    return_request_header: bool = False
    output_stream: Optional[TextIO] = None

    def snapshot(self) -> "RequestState":
        """Return an independent copy of the current configuration."""
        return RequestState(
            **{
                **self.__dict__,
                "headers": list(self.headers),
                "multipart": list(self.multipart) if self.multipart is not None else None,
            }
        )

    def to_log_dict(self) -> Dict[str, object]:
        """Summary of the options for debug logging (no header or cookie values)."""
        return {
            "url": self.url,
            "method": self.method,
            "has_body": self.body is not None or self.multipart is not None,
            "multipart": self.multipart is not None,
            "header_count": len(self.headers),
            "timeout": self.timeout,
            "follow_location": self.follow_location,
            "max_redirects": self.max_redirects,
            "verify_ssl": self.verify_ssl,
            "ip_protocol": self.ip_protocol,
            "return_body": self.return_body,
            "return_transfer": self.return_transfer,
        }
