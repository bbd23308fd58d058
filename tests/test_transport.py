"""Tests for padesign.network.transport -- https checks, retries, http_post."""

import io
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from padesign.errors import ConfigError, ExternalServiceUnavailable
from padesign.network import transport

URL = "https://verifier.example.com/report"


def _make_urllib_response(data: bytes, status: int = 200) -> MagicMock:
    """Build a mock urllib response that works with chunked read()."""
    mock = MagicMock()
    mock.read.side_effect = [data, b""]
    mock.status = status
    mock.__enter__ = MagicMock(return_value=mock)
    mock.__exit__ = MagicMock(return_value=False)
    return mock


# ── URL checks ───────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "url",
    ["http://verifier.example.com/report", "ftp://example.com", "https://", "example.com/report"],
    ids=["http", "ftp", "no-host", "no-scheme"],
)
def test_http_post_rejects_non_https(url):
    """Plain HTTP and other schemes are refused before any I/O."""
    with patch.object(transport, "_safe_urlopen") as mock_open, pytest.raises(ConfigError):
        transport.http_post(url, b"body")
    mock_open.assert_not_called()


# ── http_post ────────────────────────────────────────────────────────


def test_http_post_success():
    """A 200 response returns status and body."""
    mock_response = _make_urllib_response(b'{"ok": true}')
    with patch.object(transport, "_safe_urlopen", return_value=mock_response) as mock_open:
        result = transport.http_post(URL, b"payload", headers={"X-Test": "1"}, timeout=7)

    assert result == transport.HttpResponse(200, b'{"ok": true}')
    request = mock_open.call_args.args[0]
    assert request.get_method() == "POST"
    assert request.data == b"payload"
    assert request.get_header("X-test") == "1"
    assert mock_open.call_args.kwargs["timeout"] == 7


def test_http_post_returns_http_errors():
    """HTTP error statuses come back as responses, not exceptions."""
    error = urllib.error.HTTPError(URL, 422, "Unprocessable", {}, io.BytesIO(b"bad input"))
    with patch.object(transport, "_safe_urlopen", side_effect=error):
        result = transport.http_post(URL, b"payload")
    assert result.status == 422
    assert result.body == b"bad input"


def test_http_post_response_size_limit():
    """Bodies over the limit raise instead of filling memory."""
    mock_response = _make_urllib_response(b"x" * 100)
    with (
        patch.object(transport, "MAX_RESPONSE_SIZE", 10),
        patch.object(transport, "_safe_urlopen", return_value=mock_response),
        pytest.raises(ExternalServiceUnavailable, match="exceeds"),
    ):
        transport.http_post(URL, b"payload", max_retries=0)


def test_http_post_connection_refused_not_retried():
    """Connection refused fails on the first attempt."""
    with (
        patch.object(transport, "_safe_urlopen", side_effect=ConnectionRefusedError("refused")),
        patch("time.sleep") as mock_sleep,
        pytest.raises(ExternalServiceUnavailable, match="failed") as exc_info,
    ):
        transport.http_post(URL, b"payload", max_retries=3)
    assert not exc_info.value.retryable
    mock_sleep.assert_not_called()


def test_http_post_dns_failure_not_retried():
    error = urllib.error.URLError("Name or service not known")
    with (
        patch.object(transport, "_safe_urlopen", side_effect=error) as mock_open,
        patch("time.sleep"),
        pytest.raises(ExternalServiceUnavailable, match="Cannot reach"),
    ):
        transport.http_post(URL, b"payload", max_retries=3)
    assert mock_open.call_count == 1


def test_http_post_retries_timeouts():
    """Timeouts are retried up to max_retries."""
    ok = _make_urllib_response(b"done")
    with (
        patch.object(transport, "_safe_urlopen", side_effect=[TimeoutError(), ok]) as mock_open,
        patch("time.sleep") as mock_sleep,
    ):
        result = transport.http_post(URL, b"payload", max_retries=2)
    assert result.body == b"done"
    assert mock_open.call_count == 2
    mock_sleep.assert_called_once()


def test_http_post_url_timeout_is_retryable():
    """A URLError wrapping a timeout counts as a timeout."""
    error = urllib.error.URLError(TimeoutError("timed out"))
    with (
        patch.object(transport, "_safe_urlopen", side_effect=error) as mock_open,
        patch("time.sleep"),
        pytest.raises(ExternalServiceUnavailable),
    ):
        transport.http_post(URL, b"payload", max_retries=2)
    assert mock_open.call_count == 3


def test_http_post_no_retries():
    with (
        patch.object(transport, "_safe_urlopen", side_effect=TimeoutError()) as mock_open,
        pytest.raises(ExternalServiceUnavailable, match="timed out"),
    ):
        transport.http_post(URL, b"payload", max_retries=0)
    assert mock_open.call_count == 1


# ── _with_retry ──────────────────────────────────────────────────────


def test_with_retry_backoff():
    """Delays grow by the backoff factor between attempts."""
    fn = MagicMock(side_effect=ExternalServiceUnavailable("slow", retryable=True))
    with patch("time.sleep") as mock_sleep, pytest.raises(ExternalServiceUnavailable):
        transport._with_retry(fn, max_retries=3, delay=1.0, backoff=2.0)
    assert fn.call_count == 4
    assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0, 4.0]


def test_with_retry_passes_other_errors():
    fn = MagicMock(side_effect=ValueError("boom"))
    with pytest.raises(ValueError):
        transport._with_retry(fn, max_retries=3)
    assert fn.call_count == 1


# ── Redirect handling ────────────────────────────────────────────────


def test_redirect_downgrade_refused():
    """HTTPS to HTTP redirects must be blocked."""
    handler = transport._SafeRedirectHandler()
    req = MagicMock(full_url=URL)
    with pytest.raises(ExternalServiceUnavailable, match="Refused redirect"):
        handler.redirect_request(req, MagicMock(), 302, "Found", {}, "http://evil.example.com/")
