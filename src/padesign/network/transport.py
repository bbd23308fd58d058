"""
HTTPS transport for the remote verification service.

Standard-library ``urllib.request`` with:

- HTTPS-only URLs, and HTTPS to HTTP redirects refused
- a response size cap
- retry with exponential backoff on timeouts only

Non-2xx responses are returned to the caller, not raised.
"""

from __future__ import annotations

__all__ = ["HttpResponse", "http_post"]

import logging
import time
import urllib.error
import urllib.request
from typing import TYPE_CHECKING, NamedTuple, Protocol, TypeVar
from urllib.parse import urlparse

from ..constants import (
    BYTES_PER_MB,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT_VERIFIER,
    MAX_RESPONSE_SIZE,
    RECV_BUFFER_SIZE,
)
from ..errors import ConfigError, ExternalServiceUnavailable

if TYPE_CHECKING:
    import http.client
    from collections.abc import Callable

_T = TypeVar("_T")

_logger = logging.getLogger(__name__)


class HttpResponse(NamedTuple):
    """Status code and body of a completed HTTP exchange."""

    status: int
    body: bytes


def _require_https_url(url: str) -> None:
    """Reject anything but an https:// URL with a host.

    Raises:
        ConfigError: If the URL is not usable.
    """
    parsed = urlparse(url)
    if parsed.scheme.lower() != "https":
        raise ConfigError(f"Only HTTPS URLs are allowed (got {parsed.scheme or 'no'} scheme).")
    if not parsed.hostname:
        raise ConfigError(f"Cannot extract hostname from URL: {url}")


# ── Retry logic ──────────────────────────────────────────────────────


def _with_retry(
    fn: Callable[[], _T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    delay: float = DEFAULT_RETRY_DELAY,
    backoff: float = DEFAULT_RETRY_BACKOFF,
    operation: str = "request",
) -> _T:
    """
    Call *fn*, retrying retryable ExternalServiceUnavailable errors.

    Args:
        fn: Zero-argument callable.
        max_retries: Retry attempts after the first call.
        delay: Initial delay between attempts in seconds.
        backoff: Delay multiplier after each retry.
        operation: Description for log messages.

    Raises:
        The last error once retries are exhausted, or any non-retryable error.
    """
    current_delay = delay
    attempt = 0
    while True:
        try:
            return fn()
        except ExternalServiceUnavailable as exc:
            if attempt >= max_retries or not exc.retryable:
                raise
            _logger.warning(
                "%s failed (attempt %d/%d): %s. Retrying in %.1fs...",
                operation.capitalize(),
                attempt + 1,
                max_retries + 1,
                exc,
                current_delay,
            )
            time.sleep(current_delay)
            current_delay *= backoff
            attempt += 1


# ── urllib plumbing ──────────────────────────────────────────────────


class _Readable(Protocol):
    def read(self, amt: int = ...) -> bytes: ...


def _read_with_limit(response: _Readable, url: str) -> bytes:
    """Read a response body, refusing bodies above MAX_RESPONSE_SIZE."""
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = response.read(RECV_BUFFER_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > MAX_RESPONSE_SIZE:
            raise ExternalServiceUnavailable(
                f"Response from {url} exceeds {MAX_RESPONSE_SIZE // BYTES_PER_MB} MB limit"
            )
        chunks.append(chunk)
    return b"".join(chunks)


class _SafeRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Redirect handler that refuses HTTPS to HTTP downgrades."""

    def redirect_request(  # type: ignore[override]  # urllib stubs use incompatible signature
        self,
        req: urllib.request.Request,
        fp: http.client.HTTPResponse,
        code: int,
        msg: str,
        headers: http.client.HTTPMessage,
        newurl: str,
    ) -> urllib.request.Request | None:
        if urlparse(req.full_url).scheme == "https" and urlparse(newurl).scheme == "http":
            raise ExternalServiceUnavailable(f"Refused redirect from HTTPS to HTTP: {newurl}")
        return super().redirect_request(req, fp, code, msg, headers, newurl)


_safe_opener = urllib.request.build_opener(_SafeRedirectHandler)


def _safe_urlopen(request: urllib.request.Request, *, timeout: int) -> http.client.HTTPResponse:
    """Open *request* through the downgrade-refusing opener."""
    return _safe_opener.open(request, timeout=timeout)


def _urllib_post(url: str, body: bytes, headers: dict[str, str], timeout: int) -> HttpResponse:
    _logger.debug("POST %s (timeout=%ds, %d bytes)", url, timeout, len(body))
    req = urllib.request.Request(url, data=body, method="POST")  # noqa: S310 -- scheme checked by _require_https_url
    for key, value in headers.items():
        req.add_header(key, value)
    try:
        with _safe_urlopen(req, timeout=timeout) as response:
            data = _read_with_limit(response, url)
            status = response.status
    except urllib.error.HTTPError as exc:
        data = _read_with_limit(exc, url) if exc.fp is not None else b""
        status = exc.code
    except urllib.error.URLError as exc:
        raise ExternalServiceUnavailable(
            f"Cannot reach verification service {url}: {exc.reason}",
            retryable=isinstance(exc.reason, TimeoutError),
        ) from exc
    except TimeoutError as exc:
        raise ExternalServiceUnavailable(
            f"Connection timed out after {timeout}s: {url}", retryable=True
        ) from exc
    except OSError as exc:
        raise ExternalServiceUnavailable(f"Connection to {url} failed: {exc}") from exc

    _logger.debug("POST %s -> HTTP %d, %d bytes", url, status, len(data))
    return HttpResponse(status, data)


# ── Public API ───────────────────────────────────────────────────────


def http_post(
    url: str,
    body: bytes,
    *,
    headers: dict[str, str] | None = None,
    timeout: int = DEFAULT_TIMEOUT_VERIFIER,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> HttpResponse:
    """
    Send an HTTPS POST, retrying on timeouts.

    Args:
        url: Target URL (must be https).
        body: Request body bytes.
        headers: Additional HTTP headers.
        timeout: Socket timeout in seconds.
        max_retries: Retry attempts after a timeout.

    Returns:
        HttpResponse with the status code and body, whatever the status.

    Raises:
        ConfigError: If the URL is not HTTPS.
        ExternalServiceUnavailable: If the service cannot be reached.
    """
    _require_https_url(url)

    def _do_post() -> HttpResponse:
        return _urllib_post(url, body, headers or {}, timeout)

    if max_retries > 0:
        return _with_retry(_do_post, max_retries=max_retries, operation=f"POST {url}")
    return _do_post()
