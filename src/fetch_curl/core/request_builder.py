"""
Fluent request builder over a pycurl handle.

Setters accumulate a RequestState and return the builder for chaining.
Execute-style calls reset the handle, apply a snapshot of the state in one
pass, run the transfer and (by default) close the handle.
"""
import logging
import os
import sys
from io import BytesIO
from typing import Iterable, List, Mapping, Optional, TextIO, Union

import pycurl

from ..config import CurlConfig, ResolvedConfig, resolve_config
from ..console import print_request, print_response
from ..exceptions import HandleClosedError
from ..types import (
    DEFAULT_TIMEOUT,
    Body,
    HttpMethod,
    IpProtocol,
    QueryParams,
    RequestState,
    TransferError,
)
from .options import (
    build_url,
    curl_text,
    decode_body,
    detect_charset,
    encode_body,
    ip_resolve_option,
    normalize_headers,
    normalize_method,
    quote_non_ascii,
    wire_method,
)

logger = logging.getLogger("fetch_curl.request_builder")

# libcurl's own default when the DNS cache is left on
DNS_CACHE_TIMEOUT_DEFAULT = 60

HEADER_ENCODING = "iso-8859-1"


class CurlRequest:
    """Chainable request configuration executed through libcurl.

    Example:
        body = CurlRequest("https://example.com").set_method("POST").set_body({"a": 1}).execute()
    """

    def __init__(
        self,
        url: str,
        config: Optional[CurlConfig] = None,
        curl_handle: Optional[pycurl.Curl] = None,
    ):
        self._config: ResolvedConfig = resolve_config(config)
        self._curl = curl_handle if curl_handle is not None else pycurl.Curl()
        self._closed = False
        self._state = RequestState(
            url=url,
            timeout=self._config.timeout,
            connect_timeout=self._config.connect_timeout,
            verify_ssl=self._config.verify_ssl,
            follow_location=self._config.follow_location,
            max_redirects=self._config.max_redirects,
            ip_protocol=self._config.ip_protocol,
            headers=normalize_headers(self._config.headers),
        )
        self._last_error: Optional[TransferError] = None
        self._status_code: Optional[int] = None
        self._effective_url: Optional[str] = None
        self._request_header_lines: List[str] = []
        self._response_header_lines: List[str] = []
        logger.debug(f"CurlRequest: created for url={url}")

    @classmethod
    def request(
        cls,
        url: str,
        method: str = "GET",
        query: Optional[Union[str, QueryParams]] = None,
        body: Optional[Body] = None,
        cookie: str = "",
        referer: str = "",
        config: Optional[CurlConfig] = None,
    ) -> "CurlRequest":
        """Build a configured request in one call; chain execute() or a header getter."""
        return (
            cls(url, config=config)
            .set_method(method)
            .set_query(query)
            .set_body(body)
            .set_cookie(cookie)
            .set_referer(referer)
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._state.url

    @property
    def method(self) -> HttpMethod:
        return self._state.method

    @property
    def timeout(self) -> float:
        return self._state.timeout

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_error(self) -> Optional[TransferError]:
        """Failure of the most recent transfer, None after a successful one."""
        return self._last_error

    @property
    def status_code(self) -> Optional[int]:
        return self._status_code

    @property
    def effective_url(self) -> Optional[str]:
        return self._effective_url

    @property
    def response_header_lines(self) -> List[str]:
        """Raw header lines received during the last transfer (all hops)."""
        return list(self._response_header_lines)

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def set_query(self, query: Optional[Union[str, QueryParams]]) -> "CurlRequest":
        """Append query parameters (map or encoded string) to the URL."""
        if not query:
            return self
        self._state.url = build_url(self._state.url, query)
        return self

    def set_body(self, data: Optional[Body], has_file: bool = False) -> "CurlRequest":
        """
        Set the request body.

        Args:
            data: Raw string/bytes, or a map of form fields
            has_file: Send a map as multipart/form-data instead of
                application/x-www-form-urlencoded
        """
        if data is None or (isinstance(data, Mapping) and not data):
            self._state.body = None
            self._state.multipart = None
            return self
        self._state.body, self._state.multipart = encode_body(data, has_file)
        return self

    def set_referer(self, referer: str) -> "CurlRequest":
        self._state.referer = referer
        return self

    def set_method(self, method: str = "GET") -> "CurlRequest":
        """Set the method; anything outside GET/POST/HEADER becomes GET."""
        self._state.method = normalize_method(method)
        return self

    def set_cookie(self, cookie: str) -> "CurlRequest":
        if cookie:
            self._state.cookie = cookie
        return self

    def set_cookie_file(self, path: str) -> "CurlRequest":
        """Read cookies from a file; ignored when the file does not exist."""
        if os.path.exists(path):
            self._state.cookie_file = path
        else:
            logger.debug(f"set_cookie_file: {path} does not exist, skipping")
        return self

    def set_cookie_jar(self, path: str) -> "CurlRequest":
        """Write received cookies to a file when the handle is closed."""
        self._state.cookie_jar = path
        return self

    def set_follow_location(self, enabled: bool = True) -> "CurlRequest":
        self._state.follow_location = enabled
        return self

    def set_follow_location_max(self, num: int = 1) -> "CurlRequest":
        """Redirect limit; -1 (or anything lower) means unlimited."""
        self._state.max_redirects = num if num >= -1 else -1
        return self

    def set_fresh_connect(self, enabled: bool = True) -> "CurlRequest":
        """Force a new connection instead of a cached one."""
        self._state.fresh_connect = enabled
        return self

    def set_dns_cache(self, enabled: bool = True) -> "CurlRequest":
        """Disable to resolve the host again on every transfer."""
        self._state.dns_cache = enabled
        return self

    def set_header_array(
        self, headers: Optional[Union[Mapping[str, object], Iterable[str]]] = None
    ) -> "CurlRequest":
        """Replace the header list with "Name: value" lines or a header map."""
        self._state.headers = normalize_headers(headers)
        return self

    def add_header(self, name: str, value: object) -> "CurlRequest":
        self._state.headers.append(f"{name}: {value}")
        return self

    def set_return_response_header(self, enabled: bool = True) -> "CurlRequest":
        """Prepend the response header block to the returned text."""
        self._state.return_response_header = enabled
        return self

    def set_return_request_header(self, enabled: bool = True) -> "CurlRequest":
        """Capture the outgoing header block of the next transfer."""
        self._state.return_request_header = enabled
        return self

    def set_return_transfer(self, enabled: bool = True, stream: Optional[TextIO] = None) -> "CurlRequest":
        """
        Return the transfer as a string, or write it to a stream.

        Args:
            enabled: When False, output goes to ``stream`` and execute()
                returns an empty string
            stream: Text stream for the output (default: sys.stdout)
        """
        self._state.return_transfer = enabled
        self._state.output_stream = stream
        return self

    def set_return_body(self, enabled: bool = True) -> "CurlRequest":
        """When False the body is not requested (a bare GET goes out as HEAD)."""
        self._state.return_body = enabled
        return self

    def set_ssl_verify(self, enabled: bool = True) -> "CurlRequest":
        """Turn peer and host certificate verification on or off."""
        self._state.verify_ssl = enabled
        return self

    def set_timeout(self, timeout: float = DEFAULT_TIMEOUT) -> "CurlRequest":
        """Whole-transfer timeout in seconds; a negative value restores the default."""
        self._state.timeout = timeout if timeout >= 0 else DEFAULT_TIMEOUT
        return self

    def set_connect_timeout(self, timeout: Optional[float]) -> "CurlRequest":
        """Connect-phase timeout in seconds; None or a negative value leaves it to libcurl."""
        self._state.connect_timeout = timeout if timeout is not None and timeout >= 0 else None
        return self

    def set_ip_protocol(self, protocol: IpProtocol = "all") -> "CurlRequest":
        """Resolve names to 'ipv4', 'ipv6' or 'all' addresses."""
        self._state.ip_protocol = protocol if protocol in ("ipv4", "ipv6") else "all"
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, auto_close: bool = True) -> Optional[str]:
        """
        Run the transfer.

        Args:
            auto_close: Close the handle afterwards (default True)

        Returns:
            The response text, "" when the transfer was written to a stream,
            or None when libcurl rejected an option or the transfer failed
            (see last_error).
        """
        self._ensure_open()
        try:
            return self._perform()
        finally:
            if auto_close:
                self.close()

    def get_request_headers(self, auto_close: bool = True) -> Optional[str]:
        """Run the transfer without a body and return the outgoing header text."""
        self._ensure_open()
        self.set_return_body(False)
        self.set_return_transfer()
        self.set_return_request_header()
        try:
            if self._perform() is None:
                return None
            return "".join(self._request_header_lines)
        finally:
            if auto_close:
                self.close()

    def get_response_headers(self, auto_close: bool = True, content: bool = False) -> Optional[str]:
        """
        Run the transfer and return the response header text.

        Args:
            auto_close: Close the handle afterwards (default True)
            content: Keep the body after the header block. With redirects
                the text holds one header block per hop.
        """
        self._ensure_open()
        if not content:
            self.set_return_body(False)
        self.set_return_transfer()
        self.set_return_response_header()
        try:
            return self._perform()
        finally:
            if auto_close:
                self.close()

    def close(self) -> None:
        """Release the native handle. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._curl.close()
        logger.debug(f"CurlRequest.close: handle released for url={self._state.url}")

    def __enter__(self) -> "CurlRequest":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"CurlRequest(method={self._state.method!r}, url={self._state.url!r}, closed={self._closed})"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise HandleClosedError(self._state.url)

    def _apply(self, state: RequestState, buffer: BytesIO) -> None:
        """Reset the handle and set every option from the snapshot."""
        curl = self._curl
        curl.reset()

        method = wire_method(state.method)
        has_body = state.multipart is not None or state.body is not None
        curl.setopt(pycurl.URL, quote_non_ascii(state.url))

        if state.multipart is not None:
            curl.setopt(pycurl.MIMEPOST, state.multipart)
        elif state.body is not None:
            curl.setopt(pycurl.POSTFIELDS, state.body)
        elif method == "POST":
            curl.setopt(pycurl.POSTFIELDS, "")

        # A bare GET is left to libcurl so that NOBODY turns it into HEAD
        if method == "POST" or (method == "GET" and has_body):
            curl.setopt(pycurl.CUSTOMREQUEST, method)

        if state.cookie:
            curl.setopt(pycurl.COOKIE, curl_text(state.cookie))
        if state.cookie_file:
            curl.setopt(pycurl.COOKIEFILE, state.cookie_file)
        if state.cookie_jar:
            curl.setopt(pycurl.COOKIEJAR, state.cookie_jar)
        if state.referer:
            curl.setopt(pycurl.REFERER, quote_non_ascii(state.referer))
        if state.headers:
            curl.setopt(pycurl.HTTPHEADER, [curl_text(line) for line in state.headers])

        curl.setopt(pycurl.FOLLOWLOCATION, 1 if state.follow_location else 0)
        if state.max_redirects is not None:
            curl.setopt(pycurl.MAXREDIRS, state.max_redirects)
        curl.setopt(pycurl.FRESH_CONNECT, 1 if state.fresh_connect else 0)
        curl.setopt(pycurl.DNS_CACHE_TIMEOUT, DNS_CACHE_TIMEOUT_DEFAULT if state.dns_cache else 0)

        curl.setopt(pycurl.TIMEOUT_MS, int(state.timeout * 1000))
        if state.connect_timeout is not None:
            curl.setopt(pycurl.CONNECTTIMEOUT_MS, int(state.connect_timeout * 1000))

        curl.setopt(pycurl.SSL_VERIFYPEER, 1 if state.verify_ssl else 0)
        curl.setopt(pycurl.SSL_VERIFYHOST, 2 if state.verify_ssl else 0)
        curl.setopt(pycurl.IPRESOLVE, ip_resolve_option(state.ip_protocol))

        # HEAD never carries a body
        curl.setopt(pycurl.NOBODY, 0 if state.return_body and method != "HEAD" else 1)
        curl.setopt(pycurl.HEADER, 1 if state.return_response_header else 0)

        if state.return_transfer:
            curl.setopt(pycurl.WRITEFUNCTION, buffer.write)
        else:
            curl.setopt(pycurl.WRITEFUNCTION, self._stream_writer(state.output_stream or sys.stdout))
        curl.setopt(pycurl.HEADERFUNCTION, self._on_header)

        if state.return_request_header:
            curl.setopt(pycurl.VERBOSE, 1)
            curl.setopt(pycurl.DEBUGFUNCTION, self._on_debug)

    @staticmethod
    def _stream_writer(stream: TextIO):
        def write(chunk: bytes) -> None:
            stream.write(chunk.decode("utf-8", errors="replace"))

        return write

    def _on_header(self, line: bytes) -> None:
        self._response_header_lines.append(line.decode(HEADER_ENCODING))

    def _on_debug(self, debug_type: int, message: bytes) -> None:
        if debug_type == pycurl.INFOTYPE_HEADER_OUT:
            self._request_header_lines.append(message.decode(HEADER_ENCODING))

    def _perform(self) -> Optional[str]:
        state = self._state.snapshot()
        buffer = BytesIO()
        self._request_header_lines = []
        self._response_header_lines = []
        self._last_error = None
        self._status_code = None
        self._effective_url = None

        logger.debug(f"CurlRequest._perform: {state.to_log_dict()}")
        if self._config.pretty_print:
            print_request(wire_method(state.method), state.url, state.headers)

        try:
            self._apply(state, buffer)
            self._curl.perform()
        except pycurl.error as e:
            code, message = e.args[0], (e.args[1] if len(e.args) > 1 else str(e))
            self._last_error = TransferError(code=code, message=message)
            logger.error(f"CurlRequest._perform: transfer failed for {state.url}: {self._last_error}")
            return None

        self._status_code = self._curl.getinfo(pycurl.RESPONSE_CODE)
        self._effective_url = self._curl.getinfo(pycurl.EFFECTIVE_URL)
        logger.debug(f"CurlRequest._perform: status={self._status_code}, effective_url={self._effective_url}")

        if not state.return_transfer:
            return ""

        text = decode_body(buffer.getvalue(), detect_charset(self._response_header_lines))
        if self._config.pretty_print:
            print_response(self._status_code, self._effective_url, text)
        return text
