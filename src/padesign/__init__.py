"""
padesign: PAdES and CMS signatures for PDF documents.

Signs PDFs with PKCS#12 certificate material, producing either a
detached CMS/PKCS#7 signature or an embedded PAdES-B signature, and
verifies both.
"""

from __future__ import annotations

from .api import SignatureFormat, sign, sign_detached, verify
from .constants import __version__
from .core.certificates import (
    CertificateInfo,
    CertificateMaterial,
    check_expiry,
    describe,
    inspect_certificate,
    load_certificate_material,
    validate_password,
)
from .core.cms import inspect_signer, verify_detached
from .core.pdf import (
    VerificationResult,
    verify_all_embedded_signatures,
    verify_detached_signature,
    verify_embedded_signature,
)
from .core.signing import (
    SignatureMetadata,
    SignaturePosition,
    VisualSignatureConfig,
    sign_pdf_detached,
    sign_pdf_embedded,
)
from .errors import (
    CertificateExpired,
    CertificateNotYetValid,
    ConfigError,
    ErrorKind,
    ExternalServiceUnavailable,
    InvalidCertificateFormat,
    InvalidDocument,
    InvalidPassword,
    PadesignError,
    SignatureContainerTooSmall,
    VerificationFailed,
)
from .network import ItiVerifier, ServiceResponse

__all__ = [
    "CertificateExpired",
    "CertificateInfo",
    "CertificateMaterial",
    "CertificateNotYetValid",
    "ConfigError",
    "ErrorKind",
    "ExternalServiceUnavailable",
    "InvalidCertificateFormat",
    "InvalidDocument",
    "InvalidPassword",
    "ItiVerifier",
    "PadesignError",
    "ServiceResponse",
    "SignatureContainerTooSmall",
    "SignatureFormat",
    "SignatureMetadata",
    "SignaturePosition",
    "VerificationFailed",
    "VerificationResult",
    "VisualSignatureConfig",
    "__version__",
    "check_expiry",
    "describe",
    "inspect_certificate",
    "inspect_signer",
    "load_certificate_material",
    "sign",
    "sign_detached",
    "sign_pdf_detached",
    "sign_pdf_embedded",
    "validate_password",
    "verify",
    "verify_all_embedded_signatures",
    "verify_detached",
    "verify_detached_signature",
    "verify_embedded_signature",
]
