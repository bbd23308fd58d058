"""Shared test fixtures for the padesign test suite.

Certificates and PDFs are generated on the fly: a self-signed RSA signer,
expired and not-yet-valid variants, a two-level CA chain, and one- and
five-page documents.
"""

from __future__ import annotations

import io
from datetime import datetime, timedelta, timezone

import pikepdf
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

PASSWORD = "test1234"
WRONG_PASSWORD = "test1235"
SIGNER_CN = "MARIA DA SILVA:12345678901"


def _name(cn: str, org: str = "ICP-Brasil") -> x509.Name:
    return x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "BR"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, org),
            x509.NameAttribute(NameOID.COMMON_NAME, cn),
        ]
    )


def make_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def make_cert(
    key: rsa.RSAPrivateKey,
    subject: x509.Name,
    *,
    not_before: datetime,
    not_after: datetime,
    issuer: x509.Name | None = None,
    issuer_key: rsa.RSAPrivateKey | None = None,
    ca: bool = False,
) -> x509.Certificate:
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer or subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
    )
    return builder.sign(issuer_key or key, hashes.SHA256())


def make_p12(
    key: rsa.RSAPrivateKey,
    cert: x509.Certificate,
    cas: list[x509.Certificate] | None = None,
    password: str = PASSWORD,
) -> bytes:
    return pkcs12.serialize_key_and_certificates(
        name=b"padesign-test",
        key=key,
        cert=cert,
        cas=cas,
        encryption_algorithm=serialization.BestAvailableEncryption(password.encode()),
    )


def make_pdf(pages: int = 1, page_size: tuple[float, float] = (612, 792)) -> bytes:
    """Blank PDF with *pages* pages, saved by pikepdf."""
    pdf = pikepdf.Pdf.new()
    for _ in range(pages):
        pdf.add_blank_page(page_size=page_size)
    buf = io.BytesIO()
    pdf.save(buf)
    return buf.getvalue()


# ── Keys and certificates ─────────────────────────────────────────────


@pytest.fixture(scope="session")
def now() -> datetime:
    return datetime.now(timezone.utc)


@pytest.fixture(scope="session")
def signer_key() -> rsa.RSAPrivateKey:
    return make_key()


@pytest.fixture(scope="session")
def signer_cert(signer_key, now) -> x509.Certificate:
    return make_cert(
        signer_key,
        _name(SIGNER_CN),
        not_before=now - timedelta(days=1),
        not_after=now + timedelta(days=365),
    )


@pytest.fixture(scope="session")
def signer_p12(signer_key, signer_cert) -> bytes:
    """Valid self-signed signer, protected by ``test1234``."""
    return make_p12(signer_key, signer_cert)


@pytest.fixture(scope="session")
def expired_p12(signer_key, now) -> bytes:
    cert = make_cert(
        signer_key,
        _name("EXPIRED SIGNER"),
        not_before=now - timedelta(days=730),
        not_after=now - timedelta(days=365),
    )
    return make_p12(signer_key, cert)


@pytest.fixture(scope="session")
def future_p12(signer_key, now) -> bytes:
    cert = make_cert(
        signer_key,
        _name("FUTURE SIGNER"),
        not_before=now + timedelta(days=30),
        not_after=now + timedelta(days=395),
    )
    return make_p12(signer_key, cert)


@pytest.fixture(scope="session")
def chain_p12(signer_key, now) -> bytes:
    """Leaf issued by a test CA; the container carries the CA too."""
    ca_key = make_key()
    ca_name = _name("PADESIGN TEST CA", org="Test Authority")
    ca_cert = make_cert(
        ca_key,
        ca_name,
        not_before=now - timedelta(days=10),
        not_after=now + timedelta(days=3650),
        ca=True,
    )
    leaf = make_cert(
        signer_key,
        _name("JOAO CHAIN:98765432100"),
        not_before=now - timedelta(days=1),
        not_after=now + timedelta(days=365),
        issuer=ca_name,
        issuer_key=ca_key,
    )
    return make_p12(signer_key, leaf, cas=[ca_cert])


# ── Documents ─────────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def pdf_bytes() -> bytes:
    """One-page Letter PDF."""
    return make_pdf(1)


@pytest.fixture(scope="session")
def pdf_5_pages() -> bytes:
    return make_pdf(5)


@pytest.fixture
def signed_pdf(pdf_bytes, signer_p12) -> bytes:
    from padesign import sign_pdf_embedded

    return sign_pdf_embedded(pdf_bytes, signer_p12, PASSWORD)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Tests never see the developer's padesign environment."""
    for var in (
        "PADESIGN_PASSWORD",
        "PADESIGN_SIGNATURE_SIZE",
        "PADESIGN_VERIFIER_URL",
        "PADESIGN_VERIFIER_STAGING",
        "PADESIGN_VERIFIER_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
