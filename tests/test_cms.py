"""Tests for padesign.core.cms: detached SignedData build, verify, inspect."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone

import pytest
from asn1crypto import cms as asn1_cms
from conftest import PASSWORD

from padesign.core.certificates import load_certificate_material
from padesign.core.cms import (
    build_signed_data,
    inspect_signer,
    sign_detached,
    verify_detached,
    verify_signed_data,
)
from padesign.errors import PadesignError

DOCUMENT = b"%PDF-1.7\nhello padesign\n%%EOF\n"


@pytest.fixture(scope="module")
def material(signer_p12):
    return load_certificate_material(signer_p12, PASSWORD)


@pytest.fixture(scope="module")
def chain_material(chain_p12):
    return load_certificate_material(chain_p12, PASSWORD)


def _signer_info(der: bytes) -> asn1_cms.SignerInfo:
    return asn1_cms.ContentInfo.load(der)["content"]["signer_infos"][0]


def _attr_types(signer_info: asn1_cms.SignerInfo) -> list[str]:
    return [attr["type"].native for attr in signer_info["signed_attrs"]]


# ── Structure ─────────────────────────────────────────────────────────


def test_signed_data_structure(material):
    """Detached SignedData with SHA-256, RSA and the three basic attributes."""
    der = build_signed_data(DOCUMENT, material)
    content_info = asn1_cms.ContentInfo.load(der)
    assert content_info["content_type"].native == "signed_data"

    signed_data = content_info["content"]
    assert signed_data["encap_content_info"]["content"].native is None  # detached
    assert len(signed_data["certificates"]) == 1

    signer_info = signed_data["signer_infos"][0]
    assert signer_info["digest_algorithm"]["algorithm"].native == "sha256"
    assert signer_info["signature_algorithm"]["algorithm"].native == "rsassa_pkcs1v15"
    assert signer_info["sid"].name == "issuer_and_serial_number"
    assert sorted(_attr_types(signer_info)) == [
        "content_type",
        "message_digest",
        "signing_time",
    ]


def test_message_digest_is_sha256_of_content(material):
    """message-digest is the SHA-256 of the signed content."""
    signer_info = _signer_info(build_signed_data(DOCUMENT, material))
    digest = next(
        attr["values"][0].native
        for attr in signer_info["signed_attrs"]
        if attr["type"].native == "message_digest"
    )
    assert digest == hashlib.sha256(DOCUMENT).digest()


def test_signing_time_attribute(material):
    when = datetime(2026, 3, 1, 12, 30, 0, tzinfo=timezone.utc)
    der = build_signed_data(DOCUMENT, material, signing_time=when)
    check = verify_signed_data(der, DOCUMENT)
    assert check["signers"][0]["signing_time"] == when


@pytest.mark.parametrize(
    ("year", "choice"),
    [(2049, "utc_time"), (2050, "generalized_time"), (1949, "generalized_time")],
)
def test_signing_time_encoding_by_year(material, year, choice):
    """Times outside 1950-2049 are encoded as GeneralizedTime."""
    when = datetime(year, 6, 1, 8, 0, 0, tzinfo=timezone.utc)
    der = build_signed_data(DOCUMENT, material, signing_time=when)
    attr = next(
        a for a in _signer_info(der)["signed_attrs"] if a["type"].native == "signing_time"
    )
    assert attr["values"][0].name == choice

    check = verify_signed_data(der, DOCUMENT)
    assert check["integrity_valid"]
    assert check["signers"][0]["signing_time"] == when


def test_bind_certificate_adds_ess_attribute(material):
    """bind_certificate adds signing-certificate-v2."""
    der = build_signed_data(DOCUMENT, material, bind_certificate=True)
    assert "signing_certificate_v2" in _attr_types(_signer_info(der))


def test_chain_is_embedded_leaf_first(chain_material):
    """The signer certificate precedes the CA in the certificate set."""
    der = build_signed_data(DOCUMENT, chain_material)
    certs = asn1_cms.ContentInfo.load(der)["content"]["certificates"]
    assert len(certs) == 2
    assert "JOAO CHAIN" in certs[0].chosen.subject.human_friendly


def test_sign_detached_rejects_empty(material):
    with pytest.raises(PadesignError, match="empty"):
        sign_detached(b"", material)


# ── Verification ──────────────────────────────────────────────────────


def test_round_trip(material):
    """A detached signature verifies against its own content."""
    der = sign_detached(DOCUMENT, material)
    assert verify_detached(der, DOCUMENT)

    check = verify_signed_data(der, DOCUMENT)
    assert check["valid"]
    assert check["integrity_valid"]
    assert check["certificate_valid"]
    assert check["signers"][0]["name"] == "MARIA DA SILVA"


def test_round_trip_with_ess_binding(chain_material):
    der = build_signed_data(DOCUMENT, chain_material, bind_certificate=True)
    check = verify_signed_data(der, DOCUMENT)
    assert check["valid"]
    assert check["certificate_valid"]


def test_tampered_content_fails(material):
    """Changing one byte of the content breaks integrity."""
    der = sign_detached(DOCUMENT, material)
    tampered = DOCUMENT.replace(b"hello", b"HELLO")
    assert not verify_detached(der, tampered)

    signer = verify_signed_data(der, tampered)["signers"][0]
    assert not signer["digest_ok"]
    assert signer["signature_ok"]
    assert "digest" in signer["error"]


def test_tampered_signature_fails(material):
    """A corrupted signature value breaks integrity."""
    der = bytearray(sign_detached(DOCUMENT, material))
    der[-10] ^= 0xFF  # inside the RSA signature value
    check = verify_signed_data(bytes(der), DOCUMENT)
    assert not check["valid"]
    assert not check["signers"][0]["signature_ok"]


@pytest.mark.parametrize("junk", [b"", b"garbage", b"\x30\x00"], ids=["empty", "text", "seq"])
def test_garbage_never_raises(junk):
    """Verification of junk returns False instead of raising."""
    check = verify_signed_data(junk, DOCUMENT)
    assert not check["valid"]
    assert check["details"]


def test_no_signers_is_invalid(material):
    der = build_signed_data(DOCUMENT, material)
    content_info = asn1_cms.ContentInfo.load(der)
    content_info["content"]["signer_infos"] = []
    check = verify_signed_data(content_info.dump(force=True), DOCUMENT)
    assert not check["valid"]
    assert check["signers"] == []


def test_signing_time_outside_validity_breaks_binding(material):
    """A signing time outside the certificate validity fails the binding check."""
    too_early = datetime(2000, 1, 1, tzinfo=timezone.utc)
    der = build_signed_data(DOCUMENT, material, signing_time=too_early)
    check = verify_signed_data(der, DOCUMENT)
    assert check["integrity_valid"]
    assert not check["certificate_valid"]


# ── Inspection ────────────────────────────────────────────────────────


def test_inspect_signer(material):
    """inspect_signer reports the signer without checking the signature."""
    der = sign_detached(DOCUMENT, material)
    summary = inspect_signer(der)
    assert summary["name"] == "MARIA DA SILVA"
    assert summary["organization"] == "ICP-Brasil"
    assert summary["national_id"] == "12345678901"
    assert summary["digest_algorithm"] == "sha256"
    assert summary["certificate_count"] == 1
    assert summary["cms_size"] == len(der)
    assert summary["signing_time"] is not None


def test_inspect_signer_garbage():
    summary = inspect_signer(b"not cms")
    assert summary["name"] is None
    assert summary["cms_size"] == 7
    assert any("Cannot parse" in d for d in summary["details"])
