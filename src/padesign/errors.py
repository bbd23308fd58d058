"""padesign error types.

Every error carries a stable machine-readable ``code`` (see :class:`ErrorKind`)
in addition to its human-readable message.  Callers branch on ``code`` or on
the exception class; both are stable.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

__all__ = [
    "CertificateExpired",
    "CertificateNotYetValid",
    "ConfigError",
    "ErrorKind",
    "ExternalServiceUnavailable",
    "InvalidCertificateFormat",
    "InvalidDocument",
    "InvalidPassword",
    "PadesignError",
    "SignatureContainerTooSmall",
    "VerificationFailed",
]


class ErrorKind(str, enum.Enum):
    """Machine-readable error codes."""

    SIGNING_ERROR = "SIGNING_ERROR"
    INVALID_DOCUMENT = "INVALID_DOCUMENT"
    INVALID_CERTIFICATE = "INVALID_CERTIFICATE"
    INVALID_PASSWORD = "INVALID_PASSWORD"
    CERTIFICATE_EXPIRED = "CERTIFICATE_EXPIRED"
    CERTIFICATE_NOT_YET_VALID = "CERTIFICATE_NOT_YET_VALID"
    SIGNATURE_CONTAINER_TOO_SMALL = "SIGNATURE_CONTAINER_TOO_SMALL"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    EXTERNAL_SERVICE_UNAVAILABLE = "EXTERNAL_SERVICE_UNAVAILABLE"
    CONFIG_ERROR = "CONFIG_ERROR"


class PadesignError(Exception):
    """Base error for padesign operations."""

    code: ErrorKind = ErrorKind.SIGNING_ERROR


class InvalidDocument(PadesignError):
    """Document is empty, not a PDF, unreadable, or the page is out of range."""

    code = ErrorKind.INVALID_DOCUMENT


class InvalidCertificateFormat(PadesignError):
    """Certificate container is empty, corrupt, or unsupported."""

    code = ErrorKind.INVALID_CERTIFICATE


class InvalidPassword(PadesignError):
    """Password is missing or does not unlock the private key."""

    code = ErrorKind.INVALID_PASSWORD


class CertificateExpired(PadesignError):
    """Signing certificate is past its notAfter date.

    Args:
        message: Human-readable error description.
        not_after: Expiry timestamp of the certificate, if known.
    """

    code = ErrorKind.CERTIFICATE_EXPIRED

    def __init__(self, message: str, *, not_after: datetime | None = None) -> None:
        super().__init__(message)
        self.not_after = not_after

    def __reduce__(
        self,
    ) -> tuple[type[CertificateExpired], tuple[str], dict[str, datetime | None]]:
        return (type(self), (str(self),), {"not_after": self.not_after})

    def __setstate__(self, state: dict[str, Any] | None) -> None:
        if state is None:
            return
        self.not_after = state.get("not_after")


class CertificateNotYetValid(PadesignError):
    """Signing certificate is before its notBefore date."""

    code = ErrorKind.CERTIFICATE_NOT_YET_VALID


class SignatureContainerTooSmall(PadesignError):
    """Encoded signature does not fit in the reserved placeholder."""

    code = ErrorKind.SIGNATURE_CONTAINER_TOO_SMALL


class VerificationFailed(PadesignError):
    """A signature failed cryptographic verification."""

    code = ErrorKind.VERIFICATION_FAILED


class ExternalServiceUnavailable(PadesignError):
    """The remote verification service could not be reached.

    Args:
        message: Human-readable error description.
        retryable: Whether this error is transient and worth retrying.
            True for timeouts and connection failures;
            False for configuration issues (bad URL, refused redirect).
    """

    code = ErrorKind.EXTERNAL_SERVICE_UNAVAILABLE

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable

    def __reduce__(self) -> tuple[type[ExternalServiceUnavailable], tuple[str], dict[str, bool]]:
        """Preserve retryable flag across pickle/unpickle."""
        return (type(self), (str(self),), {"retryable": self.retryable})

    def __setstate__(self, state: dict[str, Any] | None) -> None:
        if state is None:
            return
        self.retryable = state.get("retryable", False)


class ConfigError(PadesignError):
    """Configuration validation error."""

    code = ErrorKind.CONFIG_ERROR
