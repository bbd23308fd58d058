"""Front-end workflows: sign one file to disk, shape verification reports.

The CLI prints what these return; nothing here talks to the terminal.

Constraints:
- Results are returned, never printed
- Padesign errors become result fields instead of exceptions
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from ..api import SignatureFormat, sign
from ..core.certificates import check_validity_window, load_certificate_material
from ..errors import CertificateExpired, CertificateNotYetValid, ErrorKind, PadesignError
from .helpers import atomic_write

if TYPE_CHECKING:
    from pathlib import Path

    from ..core.pdf import VerificationResult
    from ..core.signing import SignatureMetadata, VisualSignatureConfig

_logger = logging.getLogger(__name__)


# ── Result types ──────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SigningResult:
    """Outcome of signing one document to one output file."""

    ok: bool
    error_code: str | None = None
    error_message: str | None = None
    output_path: Path | None = None
    output_size: int = 0


@dataclass(frozen=True, slots=True)
class VerifyEntry:
    """Display lines for one verified signature."""

    index: int
    total: int
    valid: bool
    signer_name: str
    detail_lines: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class VerifyResult:
    """Display data for every signature checked in one document."""

    all_valid: bool
    total_count: int
    failed_count: int
    entries: list[VerifyEntry]


# ── Error classification ──────────────────────────────────────────


def _classify_error(error: Exception) -> SigningResult:
    """Map an exception to a failed SigningResult carrying its error code."""
    if isinstance(error, PadesignError):
        return SigningResult(ok=False, error_code=error.code.value, error_message=str(error))

    _logger.exception("Unexpected error during signing")
    return SigningResult(
        ok=False,
        error_code=ErrorKind.SIGNING_ERROR.value,
        error_message="Internal error while signing; run with -v for details.",
    )


# ── Validity override ─────────────────────────────────────────────


def signing_time_inside_validity(pkcs12_bytes: bytes, password: str | None) -> datetime | None:
    """Pick a signing time the certificate accepts, for "sign anyway" mode.

    Returns None when the certificate is currently valid (sign with the
    real clock).  An expired certificate signs one second before notAfter;
    a not-yet-valid one signs one second after notBefore.

    Raises:
        PadesignError: If the container cannot be opened.
    """
    material = load_certificate_material(pkcs12_bytes, password)
    try:
        check_validity_window(material)
    except CertificateExpired:
        return material.not_after - timedelta(seconds=1)
    except CertificateNotYetValid:
        return material.not_before + timedelta(seconds=1)
    return None


# ── Signing workflow ──────────────────────────────────────────────


def sign_one(
    pdf_bytes: bytes,
    output_path: Path,
    pkcs12_bytes: bytes,
    password: str | None,
    *,
    signature_format: SignatureFormat = SignatureFormat.PADES,
    metadata: SignatureMetadata | None = None,
    visual: VisualSignatureConfig | None = None,
    signature_size: int | None = None,
    now: datetime | None = None,
) -> SigningResult:
    """Sign one document and write the result atomically.

    Never raises on business errors; all are captured in the result.

    Args:
        pdf_bytes: Document content, already read by the caller.
        output_path: Where to write the signed PDF or the .p7s file.
        pkcs12_bytes: PKCS#12 container content.
        password: Container password.
        signature_format: Embedded PAdES or detached CMS.
        metadata: Reason, location and contact (PAdES only).
        visual: Visible box placement (PAdES only).
        signature_size: Placeholder override (PAdES only).
        now: Signing time override.

    Returns:
        SigningResult; on success it names the written file and its size.
    """
    try:
        output = sign(
            pdf_bytes,
            pkcs12_bytes,
            password,
            signature_format=signature_format,
            metadata=metadata,
            visual=visual,
            signature_size=signature_size,
            now=now,
        )
    except Exception as e:
        return _classify_error(e)

    try:
        atomic_write(output_path, output)
    except OSError as e:
        return SigningResult(
            ok=False,
            error_code=ErrorKind.SIGNING_ERROR.value,
            error_message=f"Cannot write {output_path}: {e}",
        )

    return SigningResult(ok=True, output_path=output_path, output_size=len(output))


# ── Verification workflow ─────────────────────────────────────────


def _format_time(value: datetime | None) -> str:
    if value is None:
        return "unknown"
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def format_verify_results(results: list[VerificationResult]) -> VerifyResult:
    """Turn verifier reports into per-signature display lines.

    Args:
        results: Raw verification results, one per signature.

    Returns:
        VerifyResult with structured entries for display.
    """
    total = len(results)
    entries: list[VerifyEntry] = []
    failed = 0

    for i, result in enumerate(results):
        signer_name = result["signer_name"] or "Unknown"
        valid = result["valid"]
        if not valid:
            failed += 1

        detail_lines = [
            f"Signer: {signer_name}",
            f"Signed at: {_format_time(result['signing_time'])}",
        ]
        if result["reason"]:
            detail_lines.append(f"Reason: {result['reason']}")
        for detail in result["details"]:
            detail_lines.extend(detail.split("\n"))
        detail_lines.append("VALID" if valid else "INVALID")

        entries.append(
            VerifyEntry(
                index=i,
                total=total,
                valid=valid,
                signer_name=signer_name,
                detail_lines=detail_lines,
            )
        )

    return VerifyResult(
        all_valid=(failed == 0),
        total_count=total,
        failed_count=failed,
        entries=entries,
    )
