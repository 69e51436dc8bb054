"""
Console output for fetch_curl transfers.

Request/response panels rendered with Rich, plus masking helpers so that
credentials in headers and URLs never reach the terminal.
"""
import re
from typing import Iterable, List, Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

console = Console()

SENSITIVE_HEADERS = {"authorization", "proxy-authorization", "cookie", "x-api-key"}
SENSITIVE_PARAMS = {"key", "token", "secret", "password", "apikey", "api_key", "auth"}


def mask_sensitive(value: Optional[str], show_chars: int = 4) -> str:
    """
    Mask a sensitive value for display.

    Args:
        value: Value to mask
        show_chars: Number of leading characters left visible

    Returns:
        str: Masked value, "<none>" for empty input
    """
    if not value:
        return "<none>"
    if len(value) <= show_chars:
        return "*" * len(value)
    return value[:show_chars] + "***"


def mask_url(url: Optional[str]) -> str:
    """
    Mask a URL by hiding the password and sensitive query parameters.

    Args:
        url: URL to mask

    Returns:
        str: Masked URL
    """
    if not url:
        return "<none>"

    try:
        parsed = urlparse(url)

        if parsed.password:
            netloc = parsed.netloc.replace(f":{parsed.password}@", ":****@")
        else:
            netloc = parsed.netloc

        if parsed.query:
            params = parse_qs(parsed.query, keep_blank_values=True)
            for param in SENSITIVE_PARAMS:
                if param in params:
                    params[param] = ["****"]
            query = urlencode(params, doseq=True)
        else:
            query = parsed.query

        return urlunparse((
            parsed.scheme,
            netloc,
            parsed.path,
            parsed.params,
            query,
            parsed.fragment,
        ))
    except ValueError:
        # Regex fallback if URL parsing fails
        result = re.sub(r"(://[^:]+:)[^@]+(@)", r"\1****\2", url)
        result = re.sub(
            r"([?&](key|token|secret|password|apikey|api_key|auth)=)[^&]+",
            r"\1****",
            result,
            flags=re.IGNORECASE,
        )
        return result


def mask_header_lines(lines: Iterable[str]) -> List[str]:
    """Mask the values of credential-bearing "Name: value" header lines."""
    masked = []
    for line in lines:
        name, sep, value = line.partition(":")
        if sep and name.strip().lower() in SENSITIVE_HEADERS:
            masked.append(f"{name}: {mask_sensitive(value.strip(), 15)}")
        else:
            masked.append(line)
    return masked


def print_panel(content: str, title: Optional[str] = None) -> None:
    """Print content in a bordered panel."""
    console.print(Panel(content, title=title))


def print_syntax_panel(
    code: str,
    lexer: str = "text",
    title: Optional[str] = None,
    theme: str = "monokai",
) -> None:
    """Print syntax-highlighted text in a bordered panel."""
    console.print(Panel(Syntax(code, lexer, theme=theme), title=title, expand=True))


def _guess_lexer(text: str) -> str:
    stripped = text.lstrip()
    if stripped.startswith(("{", "[")):
        return "json"
    if stripped.startswith("<"):
        return "html"
    return "text"


def print_request(method: str, url: str, headers: Iterable[str]) -> None:
    """Print the outgoing request with masked URL and headers."""
    print_panel(
        f"[bold cyan]{method}[/bold cyan] {mask_url(url)}",
        title="[bold blue]Request[/bold blue]",
    )
    header_lines = mask_header_lines(headers)
    if header_lines:
        console.print("[bold]Headers:[/bold]", header_lines)


def print_response(status_code: int, url: str, body: Optional[str]) -> None:
    """Print the response status and body."""
    status_color = "green" if 200 <= status_code < 300 else "red"
    print_panel(
        f"[bold {status_color}]{status_code}[/bold {status_color}]",
        title=f"[bold blue]Response[/bold blue] ({mask_url(url)})",
    )
    if body:
        print_syntax_panel(body, lexer=_guess_lexer(body), title="[bold]Response Body[/bold]")
