"""
Configuration for fetch_curl.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from .exceptions import ConfigError
from .types import DEFAULT_TIMEOUT, IpProtocol

logger = logging.getLogger("fetch_curl.config")

ENV_TIMEOUT = "FETCH_CURL_TIMEOUT"
ENV_CONNECT_TIMEOUT = "FETCH_CURL_CONNECT_TIMEOUT"
ENV_PRETTY_PRINT = "FETCH_CURL_PRETTY_PRINT"

VALID_IP_PROTOCOLS = ("ipv4", "ipv6", "all")


def _is_ssl_verify_disabled_by_env() -> bool:
    """
    Check if SSL verification is disabled via environment variables.

    Returns True if any of these are set:
    - NODE_TLS_REJECT_UNAUTHORIZED=0
    - SSL_CERT_VERIFY=0
    """
    node_tls = os.environ.get("NODE_TLS_REJECT_UNAUTHORIZED", "")
    ssl_cert_verify = os.environ.get("SSL_CERT_VERIFY", "")
    return node_tls == "0" or ssl_cert_verify == "0"


def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number")
        return None


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CurlConfig:
    """Builder defaults.

    Fields left as None are filled from the environment (or the built-in
    default) by resolve_config().
    """

    timeout: Optional[float] = None
    connect_timeout: Optional[float] = None
    verify_ssl: Optional[bool] = None
    follow_location: bool = False
    max_redirects: Optional[int] = None
    ip_protocol: IpProtocol = "all"
    headers: Dict[str, str] = field(default_factory=dict)
    pretty_print: Optional[bool] = None


@dataclass
class ResolvedConfig:
    """Builder defaults with environment and built-in values applied."""

    timeout: float
    connect_timeout: Optional[float]
    verify_ssl: bool
    follow_location: bool
    max_redirects: Optional[int]
    ip_protocol: IpProtocol
    headers: Dict[str, str]
    pretty_print: bool


def validate_config(config: CurlConfig) -> None:
    """Validate builder defaults."""
    if config.timeout is not None and config.timeout < 0:
        raise ConfigError(f"timeout must be >= 0, got {config.timeout}")
    if config.connect_timeout is not None and config.connect_timeout < 0:
        raise ConfigError(f"connect_timeout must be >= 0, got {config.connect_timeout}")
    if config.max_redirects is not None and config.max_redirects < 0:
        raise ConfigError(f"max_redirects must be >= 0, got {config.max_redirects}")
    if config.ip_protocol not in VALID_IP_PROTOCOLS:
        raise ConfigError(
            f"Invalid ip_protocol: {config.ip_protocol}. Must be one of: {list(VALID_IP_PROTOCOLS)}"
        )


def resolve_config(config: Optional[CurlConfig] = None) -> ResolvedConfig:
    """Resolve builder defaults: explicit values, then environment, then built-ins."""
    config = config or CurlConfig()
    validate_config(config)

    timeout = config.timeout
    if timeout is None:
        timeout = _env_float(ENV_TIMEOUT)
    if timeout is None or timeout < 0:
        timeout = DEFAULT_TIMEOUT

    connect_timeout = config.connect_timeout
    if connect_timeout is None:
        connect_timeout = _env_float(ENV_CONNECT_TIMEOUT)

    verify_ssl = config.verify_ssl
    if verify_ssl is None:
        verify_ssl = not _is_ssl_verify_disabled_by_env()

    pretty_print = config.pretty_print
    if pretty_print is None:
        pretty_print = _env_flag(ENV_PRETTY_PRINT)

    resolved = ResolvedConfig(
        timeout=timeout,
        connect_timeout=connect_timeout,
        verify_ssl=verify_ssl,
        follow_location=config.follow_location,
        max_redirects=config.max_redirects,
        ip_protocol=config.ip_protocol,
        headers=dict(config.headers),
        pretty_print=pretty_print,
    )
    logger.debug(
        f"resolve_config: timeout={resolved.timeout}, connect_timeout={resolved.connect_timeout}, "
        f"verify_ssl={resolved.verify_ssl}, header_names={list(resolved.headers)}"
    )
    return resolved
