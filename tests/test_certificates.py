"""Tests for padesign.core.certificates: loading, validity, identity."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from conftest import PASSWORD, WRONG_PASSWORD

from padesign.core.certificates import (
    check_expiry,
    check_validity_window,
    describe,
    extract_attribute,
    extract_national_id,
    extract_signer_display_info,
    inspect_certificate,
    load_certificate_material,
    validate_password,
)
from padesign.errors import (
    CertificateExpired,
    CertificateNotYetValid,
    InvalidCertificateFormat,
    InvalidPassword,
)

# ── load_certificate_material ────────────────────────────────────────


def test_load_valid_container(signer_p12):
    """A good container should yield key, leaf and subject details."""
    material = load_certificate_material(signer_p12, PASSWORD)
    assert material.common_name == "MARIA DA SILVA"
    assert material.chain[0] == material.certificate
    assert len(material.chain) == 1
    assert "ICP-Brasil" in material.subject


def test_load_chain_puts_leaf_first(chain_p12):
    """The signer certificate should come before its issuers."""
    material = load_certificate_material(chain_p12, PASSWORD)
    assert len(material.chain) == 2
    assert material.chain[0] == material.certificate
    assert material.common_name == "JOAO CHAIN"
    assert "PADESIGN TEST CA" in material.issuer


def test_wrong_password(signer_p12):
    """A bad password raises InvalidPassword, not a format error."""
    with pytest.raises(InvalidPassword):
        load_certificate_material(signer_p12, WRONG_PASSWORD)


def test_missing_password(signer_p12):
    """An empty or missing password is rejected up front."""
    with pytest.raises(InvalidPassword):
        load_certificate_material(signer_p12, None)


def test_empty_container():
    with pytest.raises(InvalidCertificateFormat):
        load_certificate_material(b"", PASSWORD)


@pytest.mark.parametrize(
    "junk",
    [b"not a certificate", b"\x00" * 64],
    ids=["text", "zeros"],
)
def test_corrupt_container(junk):
    """Bytes that are not PKCS#12 should raise InvalidCertificateFormat."""
    with pytest.raises(InvalidCertificateFormat):
        load_certificate_material(junk, PASSWORD)


def test_private_key_not_in_repr(signer_p12):
    """The private key must never leak through repr()."""
    material = load_certificate_material(signer_p12, PASSWORD)
    assert "private_key" not in repr(material)


def test_serial_number_is_uppercase_hex(signer_p12, signer_cert):
    material = load_certificate_material(signer_p12, PASSWORD)
    assert material.serial_number == format(signer_cert.serial_number, "X")


def test_signature_algorithm(signer_p12):
    material = load_certificate_material(signer_p12, PASSWORD)
    assert material.signature_algorithm == "SHA256withRSA"


def test_validate_password(signer_p12):
    """validate_password returns True for the right password and raises for a wrong one."""
    assert validate_password(signer_p12, PASSWORD) is True
    with pytest.raises(InvalidPassword):
        validate_password(signer_p12, WRONG_PASSWORD)


# ── Validity window ──────────────────────────────────────────────────


def test_check_expiry_valid(signer_p12):
    check_expiry(signer_p12, PASSWORD)


def test_check_expiry_expired(expired_p12):
    """An expired certificate raises with its not_after attached."""
    with pytest.raises(CertificateExpired) as exc_info:
        check_expiry(expired_p12, PASSWORD)
    assert exc_info.value.not_after is not None


def test_check_expiry_not_yet_valid(future_p12):
    """A certificate from the future raises CertificateNotYetValid."""
    with pytest.raises(CertificateNotYetValid):
        check_expiry(future_p12, PASSWORD)


def test_validity_window_with_explicit_time(expired_p12):
    material = load_certificate_material(expired_p12, PASSWORD)
    inside = material.not_after - timedelta(days=1)
    check_validity_window(material, inside)


def test_validity_window_naive_time_is_utc(signer_p12):
    """Naive datetimes are treated as UTC."""
    material = load_certificate_material(signer_p12, PASSWORD)
    naive = datetime.now(timezone.utc).replace(tzinfo=None)
    check_validity_window(material, naive)


# ── describe / inspect_certificate ───────────────────────────────────


def test_describe_valid(signer_p12):
    """describe() should summarize a valid certificate."""
    info = describe(load_certificate_material(signer_p12, PASSWORD))
    assert info.valid
    assert info.common_name == "MARIA DA SILVA"
    assert not info.expired
    assert 360 <= info.days_until_expiry <= 365
    assert info.algorithm == "SHA256withRSA"


def test_describe_expired_warns(expired_p12, caplog):
    """Describing an expired certificate logs a warning but still succeeds."""
    info = describe(load_certificate_material(expired_p12, PASSWORD))
    assert info.valid
    assert info.expired
    assert info.days_until_expiry < 0
    assert "expired" in caplog.text


def test_inspect_certificate_wrong_password(signer_p12):
    info = inspect_certificate(signer_p12, WRONG_PASSWORD)
    assert not info.valid
    assert info.error


# ── Identity extraction ──────────────────────────────────────────────


@pytest.mark.parametrize(
    ("dn", "attr", "expected"),
    [
        ("CN=MARIA SILVA:12345678901,O=ICP-Brasil,C=BR", "CN", "MARIA SILVA"),
        ("CN=MARIA SILVA:12345678901,O=ICP-Brasil,C=BR", "O", "ICP-Brasil"),
        ("CN=Plain Name,C=BR", "CN", "Plain Name"),
        ("O=Org Only", "CN", None),
    ],
)
def test_extract_attribute(dn, attr, expected):
    """DN attribute lookup by short name."""
    assert extract_attribute(dn, attr) == expected


def test_extract_national_id_from_cn(signer_cert):
    """The CPF after the colon in the CN should be found first."""
    assert extract_national_id(signer_cert) == "12345678901"


def test_extract_national_id_absent(expired_p12):
    """No CPF anywhere in the certificate gives None."""
    material = load_certificate_material(expired_p12, PASSWORD)
    assert extract_national_id(material.certificate) is None


def test_extract_signer_display_info(signer_cert):
    when = datetime(2026, 2, 7, 9, 51, 42, tzinfo=timezone.utc)
    info = extract_signer_display_info(signer_cert, when)
    assert info.name == "MARIA DA SILVA"
    assert info.national_id == "12345678901"
    assert info.organization == "ICP-Brasil"
    assert info.issuer_ca == "MARIA DA SILVA"
    assert info.signing_time == when
