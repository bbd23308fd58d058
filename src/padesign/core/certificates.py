# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""
PKCS#12 certificate material: loading, password and validity checks, and
identity extraction for display.

Password correctness is only provable by recovering the private key, so
loading always unwraps the key rather than just parsing the container.
"""

from __future__ import annotations

__all__ = [
    "CertificateInfo",
    "CertificateMaterial",
    "check_expiry",
    "check_validity_window",
    "describe",
    "extract_attribute",
    "extract_national_id",
    "extract_signer_display_info",
    "inspect_certificate",
    "load_certificate_material",
    "to_asn1_certificate",
    "validate_password",
]

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from asn1crypto import core as asn1_core
from asn1crypto import pkcs12 as asn1_pkcs12
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding, pkcs12

from ..errors import (
    CertificateExpired,
    CertificateNotYetValid,
    InvalidCertificateFormat,
    InvalidPassword,
    PadesignError,
)
from .appearance.fields import SignerDisplayInfo
from .provider import ensure_crypto_provider_initialized

_logger = logging.getLogger(__name__)

# ICP-Brasil "dados do titular" OID carrying the holder's national id
_OID_NATIONAL_ID = "2.16.76.1.3.1"

_CN_WITH_ID_PATTERN = re.compile(r"CN=([^:,]+):?(\d{11})?")
_ELEVEN_DIGITS_PATTERN = re.compile(r"(\d{11})")
_NON_DIGITS = re.compile(r"[^0-9]")

# Window inside the DER-wrapped extension value where the id is stored
_EXT_ID_START = 8
_EXT_ID_END = 19
_NATIONAL_ID_DIGITS = 11

_SECONDS_PER_DAY = 86400

# asn1crypto signature_algo names -> conventional display suffix
_SIG_ALGO_NAMES = {
    "rsassa_pkcs1v15": "RSA",
    "rsassa_pss": "RSAandMGF1",
    "ecdsa": "ECDSA",
    "dsa": "DSA",
    "ed25519": "Ed25519",
    "ed448": "Ed448",
}


# ── Certificate material ─────────────────────────────────────────────


def to_asn1_certificate(cert: x509.Certificate) -> asn1_x509.Certificate:
    """Convert a ``cryptography`` certificate to its asn1crypto form."""
    return asn1_x509.Certificate.load(cert.public_bytes(Encoding.DER))


@dataclass(frozen=True)
class CertificateMaterial:
    """Private key plus certificate chain recovered from a PKCS#12 container.

    ``chain[0]`` is always the signing (leaf) certificate.  The private key
    is excluded from ``repr`` and must never be logged or persisted.
    """

    private_key: rsa.RSAPrivateKey = field(repr=False)
    certificate: x509.Certificate
    chain: tuple[x509.Certificate, ...]

    def __post_init__(self) -> None:
        if not self.chain or self.chain[0] != self.certificate:
            raise InvalidCertificateFormat("Certificate chain must start with the leaf certificate")

    @property
    def subject(self) -> str:
        return self.certificate.subject.rfc4514_string()

    @property
    def issuer(self) -> str:
        return self.certificate.issuer.rfc4514_string()

    @property
    def common_name(self) -> str | None:
        return extract_attribute(self.subject, "CN")

    @property
    def serial_number(self) -> str:
        """Serial number as uppercase hex without leading zeros."""
        return format(self.certificate.serial_number, "X")

    @property
    def not_before(self) -> datetime:
        return self.certificate.not_valid_before_utc

    @property
    def not_after(self) -> datetime:
        return self.certificate.not_valid_after_utc

    @property
    def signature_algorithm(self) -> str:
        """Certificate signature algorithm, e.g. ``SHA256withRSA``."""
        algo = to_asn1_certificate(self.certificate)["signature_algorithm"]
        sig_name = _SIG_ALGO_NAMES.get(algo.signature_algo, algo.signature_algo.upper())
        try:
            hash_name = algo.hash_algo
        except ValueError:
            return sig_name
        return f"{hash_name.upper()}with{sig_name}"

    def asn1_chain(self) -> list[asn1_x509.Certificate]:
        """The chain in asn1crypto form, leaf first."""
        return [to_asn1_certificate(c) for c in self.chain]


def _check_container_structure(pkcs12_bytes: bytes) -> None:
    """Reject bytes that are not a PKCS#12 PFX structure at all.

    Distinguishes a corrupt/unsupported container from a wrong password:
    cryptography reports both as the same ValueError.
    """
    try:
        pfx = asn1_pkcs12.Pfx.load(pkcs12_bytes, strict=True)
        version = pfx["version"].native
        content_type = pfx["auth_safe"]["content_type"].native
    except (ValueError, TypeError, KeyError, OSError) as e:
        raise InvalidCertificateFormat(f"Invalid certificate format: {e}") from e
    if version not in ("v3", 3) or content_type not in ("data", "signed_data"):
        raise InvalidCertificateFormat(
            f"Invalid certificate format: unsupported PFX (version={version}, "
            f"content={content_type})"
        )


def load_certificate_material(pkcs12_bytes: bytes, password: str | None) -> CertificateMaterial:
    """
    Load a PKCS#12 container and recover its private key.

    Args:
        pkcs12_bytes: Raw PKCS#12 (.p12/.pfx) container.
        password: Container password.

    Returns:
        CertificateMaterial with the leaf certificate first in the chain.

    Raises:
        InvalidCertificateFormat: Empty, corrupt, or unsupported container.
        InvalidPassword: The container parses but the key cannot be recovered.
    """
    ensure_crypto_provider_initialized()

    if not pkcs12_bytes:
        raise InvalidCertificateFormat("Certificate is empty")

    _check_container_structure(pkcs12_bytes)

    pw = password.encode("utf-8") if password else None
    try:
        key, cert, additional = pkcs12.load_key_and_certificates(pkcs12_bytes, pw)
    except UnsupportedAlgorithm as e:
        raise InvalidCertificateFormat(f"Unsupported certificate encryption: {e}") from e
    except ValueError as e:
        raise InvalidPassword("Incorrect certificate password") from e

    if key is None:
        raise InvalidCertificateFormat("Certificate container holds no private key")
    if cert is None:
        raise InvalidCertificateFormat("Certificate container holds no certificate")
    if not isinstance(key, rsa.RSAPrivateKey):
        raise InvalidCertificateFormat(
            f"Unsupported key type {type(key).__name__}: only RSA keys can sign"
        )

    chain = (cert, *(c for c in additional if c != cert))
    material = CertificateMaterial(private_key=key, certificate=cert, chain=chain)
    _logger.debug(
        "Loaded certificate %s (serial %s, chain length %d)",
        material.subject,
        material.serial_number,
        len(chain),
    )
    return material


def validate_password(pkcs12_bytes: bytes, password: str | None) -> bool:
    """Return True if *password* unlocks the private key; raise otherwise."""
    load_certificate_material(pkcs12_bytes, password)
    return True


# ── Validity window ──────────────────────────────────────────────────


def _utc_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def check_validity_window(material: CertificateMaterial, now: datetime | None = None) -> None:
    """
    Fail if the signing certificate is outside its validity window.

    Raises:
        CertificateExpired: now > notAfter.
        CertificateNotYetValid: now < notBefore.
    """
    current = _utc_now(now)
    if current > material.not_after:
        raise CertificateExpired(
            f"Certificate expired on {material.not_after.isoformat()}",
            not_after=material.not_after,
        )
    if current < material.not_before:
        raise CertificateNotYetValid(
            f"Certificate is not yet valid. Valid from: {material.not_before.isoformat()}"
        )


def check_expiry(pkcs12_bytes: bytes, password: str | None, now: datetime | None = None) -> None:
    """Load the container and check its validity window."""
    check_validity_window(load_certificate_material(pkcs12_bytes, password), now)


# ── Description ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class CertificateInfo:
    """Display descriptor for a certificate.

    ``valid`` is False (with ``error`` set) when the certificate could not
    be read.  It says nothing about the validity window; see ``expired``.
    """

    valid: bool
    subject: str | None = None
    common_name: str | None = None
    issuer: str | None = None
    serial_number: str | None = None
    not_before: datetime | None = None
    not_after: datetime | None = None
    expired: bool = False
    days_until_expiry: int = 0
    algorithm: str | None = None
    error: str | None = None


def describe(material: CertificateMaterial, now: datetime | None = None) -> CertificateInfo:
    """Describe certificate material for pre-flight inspection.

    Never raises: failures are reported via ``error`` on the descriptor.
    """
    try:
        current = _utc_now(now)
        not_after = material.not_after
        days = int((not_after - current).total_seconds() / _SECONDS_PER_DAY)
        expired = current > not_after
        if expired:
            _logger.warning("Certificate has expired (notAfter: %s)", not_after)
        elif current < material.not_before:
            _logger.warning("Certificate is not yet valid (notBefore: %s)", material.not_before)
        return CertificateInfo(
            valid=True,
            subject=material.subject,
            common_name=material.common_name,
            issuer=material.issuer,
            serial_number=material.serial_number,
            not_before=material.not_before,
            not_after=not_after,
            expired=expired,
            days_until_expiry=days,
            algorithm=material.signature_algorithm,
        )
    except (ValueError, TypeError, AttributeError, KeyError) as e:
        _logger.debug("Cannot describe certificate: %s", e)
        return CertificateInfo(valid=False, error=f"Error reading certificate: {e}")


def inspect_certificate(
    pkcs12_bytes: bytes, password: str | None, now: datetime | None = None
) -> CertificateInfo:
    """Load and describe a container; never raises."""
    try:
        material = load_certificate_material(pkcs12_bytes, password)
    except PadesignError as e:
        return CertificateInfo(valid=False, error=str(e))
    return describe(material, now)


# ── Identity extraction ──────────────────────────────────────────────


def extract_attribute(dn: str, attribute: str) -> str | None:
    """Extract one attribute value from an RFC 4514 distinguished name.

    ICP-Brasil CNs have the form ``NAME:ID``; only the part before the
    first ``:`` is returned.

    >>> extract_attribute("CN=MARIA SILVA:12345678901,O=ICP-Brasil", "CN")
    'MARIA SILVA'
    """
    m = re.search(rf"(?:^|,){re.escape(attribute)}=([^,]+)", dn)
    if not m:
        return None
    value = m.group(1)
    if ":" in value:
        value = value.split(":")[0]
    return value


def extract_national_id(cert: x509.Certificate) -> str | None:
    """Extract the holder's 11-digit national id (CPF) from a certificate.

    Tries, in order: ``CN=NAME:ID``, any 11-digit run in the subject, and
    the ICP-Brasil holder-data extension.  This is a heuristic and can
    return false positives on unusual subjects.
    """
    subject = cert.subject.rfc4514_string()

    m = _CN_WITH_ID_PATTERN.search(subject)
    if m and m.group(2) is not None:
        return m.group(2)

    m = _ELEVEN_DIGITS_PATTERN.search(subject)
    if m:
        return m.group(1)

    try:
        ext = cert.extensions.get_extension_for_oid(x509.ObjectIdentifier(_OID_NATIONAL_ID))
    except (x509.ExtensionNotFound, ValueError):
        return None

    raw = getattr(ext.value, "value", None)
    if not isinstance(raw, bytes) or not raw:
        return None
    # Offsets are relative to the DER OCTET STRING wrapping extnValue
    text = asn1_core.OctetString(raw).dump().decode("latin-1")
    if len(text) < _EXT_ID_END:
        return None
    candidate = _NON_DIGITS.sub("", text[_EXT_ID_START:_EXT_ID_END])
    if len(candidate) == _NATIONAL_ID_DIGITS:
        return candidate
    return None


def extract_signer_display_info(
    cert: x509.Certificate, signing_time: datetime | None = None
) -> SignerDisplayInfo:
    """Collect the fields shown in a visible signature."""
    subject = cert.subject.rfc4514_string()
    issuer = cert.issuer.rfc4514_string()
    return SignerDisplayInfo(
        name=extract_attribute(subject, "CN"),
        national_id=extract_national_id(cert),
        organization=extract_attribute(subject, "O"),
        issuer_ca=extract_attribute(issuer, "CN"),
        signing_time=signing_time or datetime.now(timezone.utc),
    )
