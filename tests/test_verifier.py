"""Tests for padesign.network.verifier -- ITI Verificador client."""

from unittest.mock import patch

import pytest

from padesign.constants import VERIFIER_PRODUCTION_URL, VERIFIER_STAGING_URL
from padesign.errors import ExternalServiceUnavailable
from padesign.network import ItiVerifier, ServiceResponse
from padesign.network.transport import HttpResponse

REPORT = b'[{"signatures": [{"status": "aprovado"}]}]'


def _sent(mock_post) -> tuple[bytes, dict[str, str]]:
    call = mock_post.call_args
    return call.args[1], call.kwargs["headers"]


# ── Endpoint selection ───────────────────────────────────────────────


def test_defaults_to_production():
    """Without configuration the verifier targets production."""
    assert ItiVerifier().url == VERIFIER_PRODUCTION_URL


def test_staging_flag():
    assert ItiVerifier(staging=True).url == VERIFIER_STAGING_URL


def test_staging_from_environment(monkeypatch):
    """The staging flag can come from the environment."""
    monkeypatch.setenv("PADESIGN_VERIFIER_STAGING", "1")
    assert ItiVerifier().url == VERIFIER_STAGING_URL


def test_explicit_url_and_timeout():
    verifier = ItiVerifier(url="https://local.example/report", timeout=5, staging=True)
    assert verifier.url == "https://local.example/report"
    assert verifier.timeout == 5


# ── Requests ─────────────────────────────────────────────────────────


def test_verify_detached_multipart():
    """Detached verification uploads both the signature and the PDF."""
    with patch("padesign.network.verifier.http_post", return_value=HttpResponse(200, REPORT)) as mp:
        result = ItiVerifier(timeout=9).verify_detached_signature(
            b"CMS-BYTES", b"%PDF-1.7 doc", "contract.pdf.p7s", "contract.pdf"
        )

    body, headers = _sent(mp)
    assert headers["Content-Type"].startswith("multipart/form-data; boundary=")
    boundary = headers["Content-Type"].split("boundary=")[1]
    assert body.endswith(f"--{boundary}--\r\n".encode())
    assert b'name="report_type"\r\n\r\njson\r\n' in body
    assert b'name="signature_files[]"; filename="contract.pdf.p7s"' in body
    assert b'name="detached_files[]"; filename="contract.pdf"' in body
    assert b"CMS-BYTES" in body
    assert b"%PDF-1.7 doc" in body
    assert b'name="verify_incremental_updates"\r\n\r\ntrue' in body
    assert mp.call_args.kwargs["timeout"] == 9

    assert result.ok
    assert result.signature_valid


def test_verify_embedded_multipart():
    with patch("padesign.network.verifier.http_post", return_value=HttpResponse(200, REPORT)) as mp:
        ItiVerifier().verify_embedded_signature(b"%PDF-signed", "signed.pdf")

    body, _ = _sent(mp)
    assert b'filename="signed.pdf"\r\nContent-Type: application/pdf' in body
    assert b"detached_files[]" not in body


def test_filename_quotes_escaped():
    """Quotes in file names cannot break the multipart header."""
    with patch("padesign.network.verifier.http_post", return_value=HttpResponse(200, b"{}")) as mp:
        ItiVerifier().verify_embedded_signature(b"%PDF", 'we"ird.pdf')
    body, _ = _sent(mp)
    assert b'filename="we\\"ird.pdf"' in body


def test_service_error_returned():
    """Non-2xx answers are returned with their status."""
    with patch("padesign.network.verifier.http_post", return_value=HttpResponse(500, b"oops")):
        result = ItiVerifier().verify_embedded_signature(b"%PDF")
    assert not result.ok
    assert not result.signature_valid
    assert str(result) == "HTTP 500 (error): oops"


def test_unreachable_service_raises():
    """Transport failures raise ExternalServiceUnavailable."""
    error = ExternalServiceUnavailable("Cannot reach verification service")
    with (
        patch("padesign.network.verifier.http_post", side_effect=error),
        pytest.raises(ExternalServiceUnavailable),
    ):
        ItiVerifier().verify_embedded_signature(b"%PDF")


# ── ServiceResponse ──────────────────────────────────────────────────


def test_service_response_preview_truncated():
    """Long bodies are shortened in the preview."""
    text = str(ServiceResponse(200, "a" * 300))
    assert text.startswith("HTTP 200 (ok): ")
    assert text.endswith("a" * 200 + "...")


def test_service_response_not_approved():
    assert not ServiceResponse(200, '{"status": "reprovado"}').signature_valid
