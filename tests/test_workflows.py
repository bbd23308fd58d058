"""Tests for padesign.ui.workflows -- shared signing and verification workflows."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from unittest.mock import patch

from conftest import PASSWORD, WRONG_PASSWORD

from padesign.api import SignatureFormat
from padesign.core.certificates import load_certificate_material
from padesign.core.pdf import verify_embedded_signature
from padesign.errors import ConfigError, InvalidDocument
from padesign.ui.workflows import (
    _classify_error,
    format_verify_results,
    sign_one,
    signing_time_inside_validity,
)

if TYPE_CHECKING:
    from pathlib import Path

    from padesign.core.pdf import VerificationResult

# ── _classify_error tests ────────────────────────────────────────


def test_classify_padesign_error():
    """Library errors keep their code and message."""
    result = _classify_error(InvalidDocument("bad pdf"))
    assert not result.ok
    assert result.error_code == "INVALID_DOCUMENT"
    assert result.error_message == "bad pdf"


def test_classify_config_error():
    assert _classify_error(ConfigError("nope")).error_code == "CONFIG_ERROR"


def test_classify_unexpected_error_hides_details():
    """Unexpected exceptions map to a generic message."""
    result = _classify_error(RuntimeError("internal detail"))
    assert result.error_code == "SIGNING_ERROR"
    assert "internal detail" not in result.error_message


# ── signing_time_inside_validity ─────────────────────────────────


def test_time_for_valid_certificate_is_none(signer_p12):
    """A currently valid certificate needs no time override."""
    assert signing_time_inside_validity(signer_p12, PASSWORD) is None


def test_time_for_expired_certificate(expired_p12):
    """Expired certificates sign one second before not_after."""
    material = load_certificate_material(expired_p12, PASSWORD)
    when = signing_time_inside_validity(expired_p12, PASSWORD)
    assert when == material.not_after - timedelta(seconds=1)


def test_time_for_future_certificate(future_p12):
    """Not-yet-valid certificates sign one second after not_before."""
    material = load_certificate_material(future_p12, PASSWORD)
    when = signing_time_inside_validity(future_p12, PASSWORD)
    assert when == material.not_before + timedelta(seconds=1)


# ── sign_one ──────────────────────────────────────────────────────


def test_sign_one_pades(tmp_path: Path, pdf_bytes, signer_p12):
    """sign_one writes a verifiable signed PDF."""
    out = tmp_path / "doc_signed.pdf"
    result = sign_one(pdf_bytes, out, signer_p12, PASSWORD)
    assert result.ok
    assert result.output_path == out
    assert result.output_size == out.stat().st_size
    assert verify_embedded_signature(out.read_bytes())["valid"]


def test_sign_one_cms(tmp_path: Path, pdf_bytes, signer_p12):
    out = tmp_path / "doc.pdf.p7s"
    result = sign_one(pdf_bytes, out, signer_p12, PASSWORD, signature_format=SignatureFormat.CMS)
    assert result.ok
    assert out.read_bytes()[0] == 0x30


def test_sign_one_wrong_password(tmp_path: Path, pdf_bytes, signer_p12):
    """Failures are returned as results and nothing is written."""
    out = tmp_path / "doc_signed.pdf"
    result = sign_one(pdf_bytes, out, signer_p12, WRONG_PASSWORD)
    assert not result.ok
    assert result.error_code == "INVALID_PASSWORD"
    assert not out.exists()


def test_sign_one_expired_then_allowed(tmp_path: Path, pdf_bytes, expired_p12):
    out = tmp_path / "doc_signed.pdf"
    refused = sign_one(pdf_bytes, out, expired_p12, PASSWORD)
    assert refused.error_code == "CERTIFICATE_EXPIRED"

    when = signing_time_inside_validity(expired_p12, PASSWORD)
    assert sign_one(pdf_bytes, out, expired_p12, PASSWORD, now=when).ok


def test_sign_one_write_failure(tmp_path: Path, pdf_bytes):
    """Write errors are reported as a failed result."""
    out = tmp_path / "missing-dir" / "doc_signed.pdf"
    with patch("padesign.ui.workflows.sign", return_value=b"%PDF-signed"):
        result = sign_one(pdf_bytes, out, b"p12", PASSWORD)
    assert not result.ok
    assert result.error_code == "SIGNING_ERROR"
    assert "Cannot write" in result.error_message


# ── format_verify_results tests ──────────────────────────────────


def _make_result(
    valid: bool = True,
    signer: str | None = "MARIA DA SILVA",
    reason: str | None = None,
    details: list[str] | None = None,
) -> VerificationResult:
    return {
        "valid": valid,
        "signer_name": signer,
        "signing_time": datetime(2026, 2, 7, 9, 51, 42, tzinfo=timezone.utc),
        "reason": reason,
        "integrity_valid": valid,
        "certificate_valid": valid,
        "covers_whole_document": True,
        "byte_range": [0, 10, 20, 30],
        "details": details or ["Integrity: OK"],
    }


def test_format_single_valid():
    """A valid result lists signer, time, reason and the verdict."""
    vr = format_verify_results([_make_result(reason="Approval")])
    assert vr.all_valid
    assert vr.total_count == 1
    assert vr.failed_count == 0
    lines = vr.entries[0].detail_lines
    assert lines[0] == "Signer: MARIA DA SILVA"
    assert lines[1] == "Signed at: 2026-02-07 09:51:42 UTC"
    assert "Reason: Approval" in lines
    assert lines[-1] == "VALID"


def test_format_mixed_results():
    """Invalid entries are counted and get a fallback signer name."""
    vr = format_verify_results([_make_result(), _make_result(valid=False, signer=None)])
    assert not vr.all_valid
    assert vr.failed_count == 1
    second = vr.entries[1]
    assert second.index == 1
    assert second.total == 2
    assert second.signer_name == "Unknown"
    assert second.detail_lines[-1] == "INVALID"


def test_format_multiline_details_split():
    vr = format_verify_results([_make_result(details=["first\nsecond"])])
    assert "first" in vr.entries[0].detail_lines
    assert "second" in vr.entries[0].detail_lines


def test_format_empty():
    vr = format_verify_results([])
    assert vr.all_valid
    assert vr.entries == []
