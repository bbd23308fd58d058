# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""
CMS/PKCS#7 SignedData: detached signing and verification.

Signatures are SHA-256 over the content, RSA PKCS#1 v1.5 over the DER
signed attributes.  The content is never encapsulated.  PAdES-B callers
additionally bind the signing certificate via ``signing_certificate_v2``.
"""

from __future__ import annotations

__all__ = [
    "CmsVerification",
    "SignerSummary",
    "SignerVerification",
    "build_signed_data",
    "inspect_signer",
    "sign_detached",
    "verify_detached",
    "verify_signed_data",
]

import hashlib
import logging
from datetime import datetime, timezone
from typing import TypedDict

from asn1crypto import algos, cms, tsp, x509 as asn1_x509
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from ..errors import PadesignError
from .certificates import CertificateMaterial, extract_attribute, extract_national_id
from .provider import ensure_crypto_provider_initialized

_logger = logging.getLogger(__name__)

_DIGEST_ALGORITHM = "sha256"

# DER tag of a SET; signed attributes are stored with an implicit [0] tag
# but are signed with their universal SET tag.
_SET_TAG = b"\x31"


class SignerVerification(TypedDict):
    """Verification outcome for one SignerInfo."""

    name: str | None  # Signer CN
    signing_time: datetime | None
    digest_ok: bool  # messageDigest matches content
    signature_ok: bool  # Signature over signed attrs verifies
    certificate_ok: bool  # Cert found, ESS hash binds it, time within validity
    error: str | None


class CmsVerification(TypedDict):
    """Verification outcome for a whole SignedData blob."""

    valid: bool  # All signers verified and at least one present
    integrity_valid: bool  # Every digest and signature checked out
    certificate_valid: bool  # Every signer certificate is bound and in validity
    signers: list[SignerVerification]
    details: list[str]


# ── Signing ──────────────────────────────────────────────────────────


def _cms_time(value: datetime) -> cms.Time:
    # UTCTime only covers 1950-2049
    if 1950 <= value.year < 2050:
        return cms.Time({"utc_time": value})
    return cms.Time({"generalized_time": value})


def _signing_certificate_v2(cert: asn1_x509.Certificate) -> cms.CMSAttribute:
    """ESS signing-certificate-v2 attribute binding *cert* by SHA-256 hash."""
    return cms.CMSAttribute(
        {
            "type": cms.CMSAttributeType("signing_certificate_v2"),
            "values": [
                tsp.SigningCertificateV2(
                    {
                        "certs": [
                            tsp.ESSCertIDv2(
                                {
                                    "hash_algorithm": algos.DigestAlgorithm(
                                        {"algorithm": _DIGEST_ALGORITHM}
                                    ),
                                    "cert_hash": hashlib.sha256(cert.dump()).digest(),
                                    "issuer_serial": tsp.IssuerSerial(
                                        {
                                            "issuer": [
                                                asn1_x509.GeneralName(
                                                    {"directory_name": cert.issuer}
                                                )
                                            ],
                                            "serial_number": cert.serial_number,
                                        }
                                    ),
                                }
                            )
                        ]
                    }
                )
            ],
        }
    )


def build_signed_data(
    content: bytes,
    material: CertificateMaterial,
    *,
    signing_time: datetime | None = None,
    bind_certificate: bool = False,
) -> bytes:
    """
    Build a detached CMS SignedData over *content*.

    Args:
        content: Bytes to sign (whole document or PDF byte range).
        material: Signing key and chain.
        signing_time: Value for the signing-time attribute (default: now, UTC).
        bind_certificate: Add the ESS signing-certificate-v2 attribute.

    Returns:
        DER-encoded ContentInfo.

    Raises:
        PadesignError: If the crypto backend rejects the key or data.
    """
    ensure_crypto_provider_initialized()

    if signing_time is None:
        signing_time = datetime.now(timezone.utc)
    elif signing_time.tzinfo is None:
        signing_time = signing_time.replace(tzinfo=timezone.utc)

    chain = material.asn1_chain()
    leaf = chain[0]
    message_digest = hashlib.sha256(content).digest()

    signed_attrs = [
        cms.CMSAttribute({"type": cms.CMSAttributeType("content_type"), "values": ("data",)}),
        cms.CMSAttribute(
            {"type": cms.CMSAttributeType("message_digest"), "values": (message_digest,)}
        ),
        cms.CMSAttribute(
            {
                "type": cms.CMSAttributeType("signing_time"),
                "values": (_cms_time(signing_time),),
            }
        ),
    ]
    if bind_certificate:
        signed_attrs.append(_signing_certificate_v2(leaf))

    signer = {
        "version": "v1",
        "sid": cms.SignerIdentifier(
            {
                "issuer_and_serial_number": cms.IssuerAndSerialNumber(
                    {"issuer": leaf.issuer, "serial_number": leaf.serial_number}
                )
            }
        ),
        "digest_algorithm": algos.DigestAlgorithm({"algorithm": _DIGEST_ALGORITHM}),
        "signed_attrs": signed_attrs,
        "signature_algorithm": algos.SignedDigestAlgorithm({"algorithm": "rsassa_pkcs1v15"}),
        "signature": b"",
    }

    content_info = cms.ContentInfo(
        {
            "content_type": cms.ContentType("signed_data"),
            "content": cms.SignedData(
                {
                    "version": "v1",
                    "digest_algorithms": cms.DigestAlgorithms(
                        (algos.DigestAlgorithm({"algorithm": _DIGEST_ALGORITHM}),)
                    ),
                    "encap_content_info": {"content_type": "data"},
                    "certificates": chain,
                    "signer_infos": [signer],
                }
            ),
        }
    )

    signer_info = content_info["content"]["signer_infos"][0]
    to_sign = _SET_TAG + signer_info["signed_attrs"].dump()[1:]
    try:
        signature = material.private_key.sign(to_sign, padding.PKCS1v15(), hashes.SHA256())
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise PadesignError(f"CMS signing failed: {e}") from e
    signer_info["signature"] = signature

    der = content_info.dump()
    _logger.debug(
        "Built CMS SignedData: %d bytes, %d certificate(s), ESS binding=%s",
        len(der),
        len(chain),
        bind_certificate,
    )
    return der


def sign_detached(
    document_bytes: bytes,
    material: CertificateMaterial,
    signing_time: datetime | None = None,
) -> bytes:
    """Produce a detached CMS signature over *document_bytes*."""
    if not document_bytes:
        raise PadesignError("Cannot sign empty data.")
    return build_signed_data(document_bytes, material, signing_time=signing_time)


# ── Verification ─────────────────────────────────────────────────────


def _signed_attr(signer_info: cms.SignerInfo, name: str) -> object | None:
    """Return the first value of a signed attribute, or None."""
    attrs = signer_info["signed_attrs"]
    if not attrs:
        return None
    for attr in attrs:
        if attr["type"].native == name:
            values = attr["values"]
            return values[0] if len(values) else None
    return None


def _find_signer_cert(
    signer_info: cms.SignerInfo, certs: list[asn1_x509.Certificate]
) -> asn1_x509.Certificate | None:
    """Locate the certificate named by the SignerInfo's sid."""
    sid = signer_info["sid"]
    if sid.name == "issuer_and_serial_number":
        issuer = sid.chosen["issuer"]
        serial = sid.chosen["serial_number"].native
        for cert in certs:
            if cert.serial_number == serial and cert.issuer == issuer:
                return cert
    elif sid.name == "subject_key_identifier":
        key_id = sid.chosen.native
        for cert in certs:
            if cert.key_identifier == key_id:
                return cert
    return None


def _verify_signature(
    cert: asn1_x509.Certificate,
    signer_info: cms.SignerInfo,
    signed_bytes: bytes,
    hash_name: str,
) -> None:
    """Verify the SignerInfo signature; raises InvalidSignature on mismatch."""
    public_key = x509.load_der_x509_certificate(cert.dump()).public_key()
    signature = signer_info["signature"].native
    hash_algo = getattr(hashes, hash_name.upper())()
    sig_algo = signer_info["signature_algorithm"]

    if isinstance(public_key, rsa.RSAPublicKey):
        if sig_algo.signature_algo == "rsassa_pss":
            params = sig_algo["parameters"]
            pss = padding.PSS(
                mgf=padding.MGF1(hash_algo), salt_length=params["salt_length"].native
            )
            public_key.verify(signature, signed_bytes, pss, hash_algo)
        else:
            public_key.verify(signature, signed_bytes, padding.PKCS1v15(), hash_algo)
    elif isinstance(public_key, ec.EllipticCurvePublicKey):
        public_key.verify(signature, signed_bytes, ec.ECDSA(hash_algo))
    else:
        raise UnsupportedAlgorithm(f"Unsupported signer key type: {type(public_key).__name__}")


def _verify_signer(
    signer_info: cms.SignerInfo,
    certs: list[asn1_x509.Certificate],
    content: bytes,
) -> SignerVerification:
    result: SignerVerification = {
        "name": None,
        "signing_time": None,
        "digest_ok": False,
        "signature_ok": False,
        "certificate_ok": False,
        "error": None,
    }

    cert = _find_signer_cert(signer_info, certs)
    if cert is None:
        result["error"] = "Signer certificate not found in CMS"
        return result
    result["name"] = extract_attribute(_rfc4514(cert), "CN")

    hash_name = signer_info["digest_algorithm"]["algorithm"].native
    if hash_name not in hashlib.algorithms_available or not hasattr(hashes, hash_name.upper()):
        result["error"] = f"Unsupported digest algorithm: {hash_name}"
        return result
    actual_digest = hashlib.new(hash_name, content).digest()

    if signer_info["signed_attrs"]:
        md = _signed_attr(signer_info, "message_digest")
        if md is None:
            result["error"] = "messageDigest attribute missing"
            return result
        result["digest_ok"] = md.native == actual_digest
        signed_bytes = _SET_TAG + signer_info["signed_attrs"].dump()[1:]
        st = _signed_attr(signer_info, "signing_time")
        if st is not None:
            result["signing_time"] = st.native
    else:
        # No signed attributes: the signature covers the content itself
        result["digest_ok"] = True
        signed_bytes = content

    try:
        _verify_signature(cert, signer_info, signed_bytes, hash_name)
        result["signature_ok"] = True
    except InvalidSignature:
        result["error"] = "Signature does not verify with the signer certificate"
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        result["error"] = f"Signature check failed: {e}"

    if not result["digest_ok"] and result["error"] is None:
        result["error"] = "Content digest does not match messageDigest"

    result["certificate_ok"] = _certificate_bound(signer_info, cert, result["signing_time"])
    return result


def _rfc4514(cert: asn1_x509.Certificate) -> str:
    return x509.load_der_x509_certificate(cert.dump()).subject.rfc4514_string()


def _certificate_bound(
    signer_info: cms.SignerInfo, cert: asn1_x509.Certificate, signing_time: datetime | None
) -> bool:
    """Check ESS binding (when present) and validity at signing time."""
    ess = _signed_attr(signer_info, "signing_certificate_v2")
    if ess is not None:
        ess_certs = ess["certs"]
        if not len(ess_certs):
            return False
        first = ess_certs[0]
        algo = first["hash_algorithm"]["algorithm"].native
        if algo not in hashlib.algorithms_available:
            return False
        if hashlib.new(algo, cert.dump()).digest() != first["cert_hash"].native:
            _logger.warning("signing_certificate_v2 hash does not match the signer certificate")
            return False

    when = signing_time or datetime.now(timezone.utc)
    validity = cert["tbs_certificate"]["validity"]
    return validity["not_before"].native <= when <= validity["not_after"].native


def verify_signed_data(cms_bytes: bytes, content: bytes) -> CmsVerification:
    """
    Verify every SignerInfo of a detached SignedData against *content*.

    Never raises on bad input: an unparseable blob or a blob with no
    signers is reported as invalid.
    """
    ensure_crypto_provider_initialized()
    details: list[str] = []
    try:
        content_info = cms.ContentInfo.load(cms_bytes)
        if content_info["content_type"].native != "signed_data":
            raise ValueError(f"content type is {content_info['content_type'].native}")
        signed_data = content_info["content"]
        certs = [c.chosen for c in (signed_data["certificates"] or []) if c.name == "certificate"]
        signer_infos = list(signed_data["signer_infos"])
    except (ValueError, TypeError, KeyError, OSError) as e:
        return {
            "valid": False,
            "integrity_valid": False,
            "certificate_valid": False,
            "signers": [],
            "details": [f"Cannot parse CMS: {e}"],
        }

    if not signer_infos:
        return {
            "valid": False,
            "integrity_valid": False,
            "certificate_valid": False,
            "signers": [],
            "details": ["CMS contains no signers"],
        }

    signers: list[SignerVerification] = []
    for signer_info in signer_infos:
        try:
            outcome = _verify_signer(signer_info, certs, content)
        except (ValueError, TypeError, KeyError) as e:  # noqa: PERF203
            outcome = {
                "name": None,
                "signing_time": None,
                "digest_ok": False,
                "signature_ok": False,
                "certificate_ok": False,
                "error": f"Malformed SignerInfo: {e}",
            }
        signers.append(outcome)
        label = outcome["name"] or "unknown signer"
        if outcome["error"]:
            details.append(f"{label}: {outcome['error']}")
        else:
            details.append(f"{label}: signature OK")

    integrity = all(s["digest_ok"] and s["signature_ok"] for s in signers)
    certificate = all(s["certificate_ok"] for s in signers)
    return {
        "valid": integrity,
        "integrity_valid": integrity,
        "certificate_valid": certificate,
        "signers": signers,
        "details": details,
    }


def verify_detached(cms_bytes: bytes, document_bytes: bytes) -> bool:
    """True only if at least one signer is present and all of them verify."""
    return verify_signed_data(cms_bytes, document_bytes)["valid"]


# ── Inspection ───────────────────────────────────────────────────────


class SignerSummary(TypedDict):
    """Signer certificate summary of a CMS blob (no content needed)."""

    name: str | None
    organization: str | None
    national_id: str | None
    subject: str | None
    issuer: str | None
    serial_number: str | None
    digest_algorithm: str | None
    signing_time: datetime | None
    certificate_count: int
    cms_size: int
    details: list[str]


def inspect_signer(cms_bytes: bytes) -> SignerSummary:
    """Summarize the first signer of a CMS blob for reports.

    Never raises; unreadable input yields an empty summary whose
    ``details`` explain what went wrong.
    """
    summary: SignerSummary = {
        "name": None,
        "organization": None,
        "national_id": None,
        "subject": None,
        "issuer": None,
        "serial_number": None,
        "digest_algorithm": None,
        "signing_time": None,
        "certificate_count": 0,
        "cms_size": len(cms_bytes),
        "details": [],
    }
    try:
        signed_data = cms.ContentInfo.load(cms_bytes)["content"]
        certs = [c.chosen for c in (signed_data["certificates"] or []) if c.name == "certificate"]
        signer_infos = list(signed_data["signer_infos"])
    except (ValueError, TypeError, KeyError) as e:
        summary["details"].append(f"Cannot parse CMS: {e}")
        return summary

    summary["certificate_count"] = len(certs)
    summary["details"].append(f"CMS blob: {len(cms_bytes)} bytes, {len(certs)} certificate(s)")
    if not signer_infos:
        summary["details"].append("CMS contains no signers")
        return summary

    signer_info = signer_infos[0]
    summary["digest_algorithm"] = signer_info["digest_algorithm"]["algorithm"].native
    st = _signed_attr(signer_info, "signing_time")
    if st is not None:
        summary["signing_time"] = st.native

    cert = _find_signer_cert(signer_info, certs)
    if cert is None:
        summary["details"].append("Signer certificate not found in CMS")
        return summary

    crypto_cert = x509.load_der_x509_certificate(cert.dump())
    subject = crypto_cert.subject.rfc4514_string()
    summary["subject"] = subject
    summary["issuer"] = crypto_cert.issuer.rfc4514_string()
    summary["serial_number"] = format(crypto_cert.serial_number, "X")
    summary["name"] = extract_attribute(subject, "CN")
    summary["organization"] = extract_attribute(subject, "O")
    summary["national_id"] = extract_national_id(crypto_cert)

    if summary["name"]:
        summary["details"].append(f"Signer: {summary['name']}")
    if summary["organization"]:
        summary["details"].append(f"Organization: {summary['organization']}")
    summary["details"].append(f"Digest algorithm: {summary['digest_algorithm'].upper()}")
    return summary
