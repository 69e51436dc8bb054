"""
Shared fixtures for fetch_curl tests.
"""
import pytest
from unittest.mock import MagicMock

import pycurl


ENV_VARS = (
    "FETCH_CURL_TIMEOUT",
    "FETCH_CURL_CONNECT_TIMEOUT",
    "FETCH_CURL_PRETTY_PRINT",
    "SSL_CERT_VERIFY",
    "NODE_TLS_REJECT_UNAUTHORIZED",
)


def applied_options(curl):
    """Options set on a mock handle since its last reset()."""
    options = {}
    for name, args, _ in curl.mock_calls:
        if name == "reset":
            options = {}
        elif name == "setopt":
            options[args[0]] = args[1]
    return options


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment overrides out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_curl():
    """Mock pycurl.Curl handle answering RESPONSE_CODE and EFFECTIVE_URL."""
    curl = MagicMock(spec=pycurl.Curl)
    info = {
        pycurl.RESPONSE_CODE: 200,
        pycurl.EFFECTIVE_URL: "https://api.example.com/users",
    }
    curl.getinfo.side_effect = lambda key: info.get(key)
    return curl


@pytest.fixture
def simulate_transfer(mock_curl):
    """Make perform() feed the registered callbacks like libcurl would."""

    def _simulate(body=b"", response_headers=(), request_headers=()):
        def perform():
            options = applied_options(mock_curl)
            write = options[pycurl.WRITEFUNCTION]
            for line in response_headers:
                options[pycurl.HEADERFUNCTION](line)
                if options.get(pycurl.HEADER):
                    write(line)
            if options.get(pycurl.VERBOSE):
                for line in request_headers:
                    options[pycurl.DEBUGFUNCTION](pycurl.INFOTYPE_HEADER_OUT, line)
            if not options.get(pycurl.NOBODY) and body:
                write(body)

        mock_curl.perform.side_effect = perform
        return mock_curl

    return _simulate
