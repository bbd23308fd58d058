"""
Core signing functions: detached CMS and embedded PAdES-B signatures.

Both entry points take the PKCS#12 container and password directly and
hold all material in memory for the duration of the call only.
"""

from __future__ import annotations

__all__ = [
    "SignatureMetadata",
    "SignaturePosition",
    "VisualSignatureConfig",
    "sign_pdf_detached",
    "sign_pdf_embedded",
]

import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from ..config import get_signature_size
from ..constants import PDF_MAGIC, PDF_WARN_SIZE
from ..errors import (
    InvalidCertificateFormat,
    InvalidDocument,
    InvalidPassword,
    PadesignError,
    VerificationFailed,
)
from . import require_pikepdf
from .certificates import (
    CertificateMaterial,
    check_validity_window,
    extract_signer_display_info,
    load_certificate_material,
)
from .cms import build_signed_data, sign_detached
from .pdf import (
    SIG_HEIGHT,
    SIG_WIDTH,
    SignatureFieldSpec,
    SignaturePosition,
    byterange_content,
    insert_cms,
    prepare_pdf_with_sig_field,
    verify_embedded_signature,
)
from .provider import ensure_crypto_provider_initialized

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureMetadata:
    """Optional signature dictionary entries.

    Empty strings are treated as absent.
    """

    reason: str | None = None
    location: str | None = None
    contact_info: str | None = None


@dataclass(frozen=True)
class VisualSignatureConfig:
    """Placement of the visible signature box.

    Attributes:
        enabled: Draw a visible box; False gives an invisible signature.
        page: 1-based page number.
        position: Corner preset, or CUSTOM to use ``x``/``y``.
        x: Left edge in PDF points (CUSTOM only).
        y: Bottom edge in PDF points (CUSTOM only).
        width: Box width in PDF points.
        height: Box height in PDF points.
    """

    enabled: bool = False
    page: int = 1
    position: SignaturePosition = SignaturePosition.BOTTOM_RIGHT
    x: float | None = None
    y: float | None = None
    width: float = SIG_WIDTH
    height: float = SIG_HEIGHT


def _validate_pdf(pdf_bytes: bytes) -> None:
    """Raise InvalidDocument unless the bytes are a PDF pikepdf can open."""
    if not pdf_bytes or not pdf_bytes.startswith(PDF_MAGIC):
        raise InvalidDocument("Input does not appear to be a PDF file.")
    if len(pdf_bytes) > PDF_WARN_SIZE:
        _logger.warning("Large PDF (%d bytes) is processed fully in memory", len(pdf_bytes))
    pikepdf = require_pikepdf()
    try:
        with pikepdf.open(io.BytesIO(pdf_bytes)):
            pass
    except pikepdf.PdfError as e:
        raise InvalidDocument(f"Cannot parse PDF: {e}") from e


def _load_material(
    pkcs12_bytes: bytes, password: str | None, now: datetime | None
) -> CertificateMaterial:
    """Validate certificate inputs and return material valid at *now*."""
    if not pkcs12_bytes:
        raise InvalidCertificateFormat("Certificate data is empty.")
    if not password:
        raise InvalidPassword("Certificate password is required.")
    material = load_certificate_material(pkcs12_bytes, password)
    check_validity_window(material, now)
    return material


def _clean(value: str | None) -> str | None:
    return value or None


def sign_pdf_detached(
    pdf_bytes: bytes,
    pkcs12_bytes: bytes,
    password: str | None,
    now: datetime | None = None,
) -> bytes:
    """
    Sign a PDF document and return a detached CMS/PKCS#7 signature.

    Args:
        pdf_bytes: Raw PDF file content.
        pkcs12_bytes: PKCS#12 container with the signing key.
        password: Container password.
        now: Signing time (default: current UTC time).

    Returns:
        Detached CMS SignedData (DER-encoded).
    """
    ensure_crypto_provider_initialized()
    _validate_pdf(pdf_bytes)
    material = _load_material(pkcs12_bytes, password, now)

    _logger.info(
        "Signing PDF (detached CMS): %d bytes, signer=%s", len(pdf_bytes), material.common_name
    )
    return sign_detached(pdf_bytes, material, signing_time=now)


def sign_pdf_embedded(
    pdf_bytes: bytes,
    pkcs12_bytes: bytes,
    password: str | None,
    *,
    metadata: SignatureMetadata | None = None,
    visual: VisualSignatureConfig | None = None,
    signature_size: int | None = None,
    now: datetime | None = None,
) -> bytes:
    """
    Sign a PDF with an embedded PAdES-B signature.

    Workflow:
    1. Validate document and certificate (nothing is touched on failure)
    2. Append the signature field with a zeroed placeholder
    3. Patch the ByteRange around the placeholder
    4. Build the CMS over the byte range with PAdES signed attributes
    5. Splice the CMS hex into the placeholder
    6. Verify the signed output

    Args:
        pdf_bytes: Raw PDF file content.
        pkcs12_bytes: PKCS#12 container with the signing key.
        password: Container password.
        metadata: /Reason, /Location, /ContactInfo entries.
        visual: Visible box placement; None or ``enabled=False`` gives an
            invisible signature.
        signature_size: Bytes reserved for the CMS (default from config).
        now: Signing time (default: current UTC time).

    Returns:
        Complete PDF with the embedded signature.

    Raises:
        InvalidDocument, InvalidCertificateFormat, InvalidPassword,
        CertificateExpired, CertificateNotYetValid: On bad input.
        SignatureContainerTooSmall: If the CMS exceeds the reservation.
        VerificationFailed: If the signed output does not verify.
    """
    ensure_crypto_provider_initialized()

    # Step 1: validation
    _validate_pdf(pdf_bytes)
    material = _load_material(pkcs12_bytes, password, now)
    size = get_signature_size(signature_size)
    metadata = metadata or SignatureMetadata()
    visual = visual or VisualSignatureConfig()
    if visual.enabled and (visual.width <= 0 or visual.height <= 0):
        raise InvalidDocument(
            f"Signature dimensions must be positive, got {visual.width}x{visual.height}"
        )

    signing_time = now or datetime.now(timezone.utc)
    if signing_time.tzinfo is None:
        signing_time = signing_time.replace(tzinfo=timezone.utc)

    _logger.info(
        "Signing PDF (PAdES, %s): %d bytes, page=%d, signer=%s",
        "visible" if visual.enabled else "invisible",
        len(pdf_bytes),
        visual.page,
        material.common_name,
    )

    # Step 2: placeholder
    _logger.debug("Step 2: Reserving %d-byte signature placeholder", size)
    field: SignatureFieldSpec = {
        "signing_time": signing_time,
        "name": material.common_name,
        "reason": _clean(metadata.reason),
        "location": _clean(metadata.location),
        "contact_info": _clean(metadata.contact_info),
        "page": visual.page,
    }
    if visual.enabled:
        field.update(
            {
                "position": visual.position,
                "x": visual.x,
                "y": visual.y,
                "width": visual.width,
                "height": visual.height,
                "display": extract_signer_display_info(
                    material.certificate, signing_time.astimezone()
                ),
            }
        )
    prepared = prepare_pdf_with_sig_field(pdf_bytes, field, size)

    # Step 3: byte range
    content = byterange_content(prepared)
    _logger.debug(
        "Step 3: ByteRange %s covers %d bytes", list(prepared["byte_range"]), len(content)
    )

    # Step 4: CMS
    cms_der = build_signed_data(content, material, signing_time=signing_time, bind_certificate=True)
    _logger.debug("Step 4: CMS built, %d bytes", len(cms_der))

    # Step 5: splice
    signed_pdf = insert_cms(prepared, cms_der)
    if len(signed_pdf) != len(prepared["pdf"]):
        raise PadesignError(
            f"Splicing changed the document size: {len(prepared['pdf'])} -> {len(signed_pdf)}"
        )
    _logger.debug("Step 5: CMS spliced into /Contents")

    # Step 6: verify
    result = verify_embedded_signature(signed_pdf)
    if not result["valid"] or not result["covers_whole_document"]:
        detail_str = "\n  ".join(result["details"])
        _logger.error("Post-sign verification failed: %s", detail_str)
        raise VerificationFailed(
            f"Post-sign verification FAILED:\n  {detail_str}\nThe signed PDF was not returned."
        )
    _logger.debug("Step 6: Signature verified")

    _logger.info("Signed PDF complete: %d bytes", len(signed_pdf))
    return signed_pdf
