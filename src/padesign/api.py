"""High-level convenience API for PDF signing and verification.

Provides :func:`sign`, :func:`sign_detached` and :func:`verify`, which
dispatch to the PAdES or CMS engines and the matching verifier.

For lower-level control use :func:`~padesign.core.signing.sign_pdf_embedded`
and :func:`~padesign.core.signing.sign_pdf_detached` directly.
"""

from __future__ import annotations

__all__ = ["SignatureFormat", "sign", "sign_detached", "verify"]

import enum
import logging
from typing import TYPE_CHECKING

from .core.pdf import VerificationResult, verify_detached_signature, verify_embedded_signature
from .core.signing import (
    SignatureMetadata,
    VisualSignatureConfig,
    sign_pdf_detached,
    sign_pdf_embedded,
)
from .errors import ConfigError

if TYPE_CHECKING:
    from datetime import datetime

_logger = logging.getLogger(__name__)


class SignatureFormat(str, enum.Enum):
    """Output format of :func:`sign`."""

    PADES = "pades"  # Signed PDF with the signature embedded
    CMS = "cms"  # Detached .p7s next to the untouched PDF


def sign(
    pdf_bytes: bytes,
    pkcs12_bytes: bytes,
    password: str | None,
    *,
    signature_format: SignatureFormat | str = SignatureFormat.PADES,
    metadata: SignatureMetadata | None = None,
    visual: VisualSignatureConfig | None = None,
    signature_size: int | None = None,
    now: datetime | None = None,
) -> bytes:
    """Sign a PDF in the requested format.

    Args:
        pdf_bytes: Raw PDF file content.
        pkcs12_bytes: PKCS#12 container with the signing key.
        password: Container password.
        signature_format: ``pades`` for an embedded signature (default),
            ``cms`` for a detached one.
        metadata: Reason, location and contact (PAdES only).
        visual: Visible box placement (PAdES only).
        signature_size: Reserved placeholder bytes (PAdES only).
        now: Signing time (default: current UTC time).

    Returns:
        The signed PDF (PAdES) or the DER CMS signature (CMS).

    Raises:
        ConfigError: On an unknown format, or PAdES-only options with CMS.
        PadesignError: Any signing failure (see :mod:`padesign.errors`).
    """
    try:
        fmt = SignatureFormat(signature_format)
    except ValueError:
        valid = ", ".join(f.value for f in SignatureFormat)
        raise ConfigError(f"Unknown signature format {signature_format!r}. Valid: {valid}") from None

    if fmt is SignatureFormat.CMS:
        if visual is not None and visual.enabled:
            raise ConfigError("A visible signature requires the pades format.")
        if metadata is not None or signature_size is not None:
            _logger.warning("Metadata and signature size are ignored for detached signatures")
        return sign_pdf_detached(pdf_bytes, pkcs12_bytes, password, now=now)

    return sign_pdf_embedded(
        pdf_bytes,
        pkcs12_bytes,
        password,
        metadata=metadata,
        visual=visual,
        signature_size=signature_size,
        now=now,
    )


def sign_detached(
    pdf_bytes: bytes,
    pkcs12_bytes: bytes,
    password: str | None,
    *,
    now: datetime | None = None,
) -> bytes:
    """Sign a PDF and return a detached CMS/PKCS#7 signature."""
    return sign_pdf_detached(pdf_bytes, pkcs12_bytes, password, now=now)


def verify(pdf_bytes: bytes, signature: bytes | None = None) -> VerificationResult:
    """Verify an embedded signature, or a detached one when *signature* is given.

    Never raises on a bad signature; inspect ``valid`` and ``details``.
    """
    if signature is None:
        return verify_embedded_signature(pdf_bytes)
    return verify_detached_signature(pdf_bytes, signature)
