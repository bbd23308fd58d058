"""
Verification of embedded PDF signatures.

Re-extracts each ByteRange and CMS blob, verifies the CMS over the
covered bytes, and reports signer, signing time and reason from the
matching signature dictionary.  Supports multi-signature PDFs.
"""

from __future__ import annotations

import io
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import TypedDict

from ...errors import InvalidDocument, PadesignError
from .. import require_pikepdf as _require_pikepdf
from ..cms import CmsVerification, verify_signed_data
from .cms_extraction import ByteRange, extract_cms, find_signature_byteranges, signed_content

_logger = logging.getLogger(__name__)


class VerificationResult(TypedDict):
    """Result of verifying one signature."""

    valid: bool  # Integrity and certificate binding both hold
    signer_name: str | None
    signing_time: datetime | None  # /M of the signature dictionary, else CMS signing-time
    reason: str | None
    integrity_valid: bool  # Digest and signature over the byte range verify
    certificate_valid: bool  # Signer cert present, bound, valid at signing time
    covers_whole_document: bool  # Byte range ends at EOF
    byte_range: list[int] | None
    details: list[str]  # Human-readable messages


class _SigDictInfo(TypedDict):
    name: str | None
    reason: str | None
    signing_time: datetime | None


_PDF_DATE = re.compile(
    r"D:(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?"
    r"(?:([Zz+\-])(\d{2})?'?(\d{2})?'?)?"
)


def parse_pdf_date(value: str) -> datetime | None:
    """Parse a PDF date string (``D:YYYYMMDDHHmmSSOHH'mm'``).

    >>> parse_pdf_date("D:20260207095142+00'00'")
    datetime.datetime(2026, 2, 7, 9, 51, 42, tzinfo=datetime.timezone.utc)

    Missing fields default to their minimum; a missing offset means UTC.
    Returns None when the string is not a PDF date.
    """
    m = _PDF_DATE.match(value.strip())
    if not m:
        return None
    year, month, day, hour, minute, second, sign, off_h, off_m = m.groups()
    tz = timezone.utc
    if sign in ("+", "-"):
        delta = timedelta(hours=int(off_h or 0), minutes=int(off_m or 0))
        tz = timezone(delta if sign == "+" else -delta)
    try:
        return datetime(
            int(year),
            int(month or 1),
            int(day or 1),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
            tzinfo=tz,
        )
    except ValueError:
        return None


def _signature_dictionaries(pdf_bytes: bytes) -> dict[ByteRange, _SigDictInfo]:
    """Map each signature dictionary's /ByteRange to its /Name, /Reason, /M.

    Best effort: an unreadable document yields an empty mapping.
    """
    pikepdf = _require_pikepdf()
    found: dict[ByteRange, _SigDictInfo] = {}
    try:
        with pikepdf.open(io.BytesIO(pdf_bytes)) as pdf:
            for obj in pdf.objects:
                if not isinstance(obj, pikepdf.Dictionary) or "/ByteRange" not in obj:
                    continue
                br = obj["/ByteRange"]
                if len(br) != 4:
                    continue
                key = (int(br[0]), int(br[1]), int(br[2]), int(br[3]))
                found[key] = {
                    "name": str(obj["/Name"]) if "/Name" in obj else None,
                    "reason": str(obj["/Reason"]) if "/Reason" in obj else None,
                    "signing_time": parse_pdf_date(str(obj["/M"])) if "/M" in obj else None,
                }
    except (ValueError, RuntimeError, OSError, pikepdf.PdfError) as e:
        _logger.warning("Cannot read signature dictionaries (non-fatal): %s", e)
    return found


def _failed(details: list[str], byte_range: ByteRange | None = None) -> VerificationResult:
    return {
        "valid": False,
        "signer_name": None,
        "signing_time": None,
        "reason": None,
        "integrity_valid": False,
        "certificate_valid": False,
        "covers_whole_document": False,
        "byte_range": list(byte_range) if byte_range is not None else None,
        "details": details,
    }


def _from_cms(
    check: CmsVerification,
    details: list[str],
    byte_range: ByteRange | None,
    covers_whole_document: bool,
    sig_dict: _SigDictInfo | None,
) -> VerificationResult:
    signer = check["signers"][0] if check["signers"] else None
    signer_name = signer["name"] if signer else None
    signing_time = signer["signing_time"] if signer else None
    reason = None
    if sig_dict is not None:
        signer_name = signer_name or sig_dict["name"]
        signing_time = sig_dict["signing_time"] or signing_time
        reason = sig_dict["reason"]

    details.extend(check["details"])
    details.append("Integrity: OK" if check["integrity_valid"] else "Integrity: FAILED")
    details.append(
        "Certificate binding: OK" if check["certificate_valid"] else "Certificate binding: FAILED"
    )
    return {
        "valid": check["integrity_valid"] and check["certificate_valid"],
        "signer_name": signer_name,
        "signing_time": signing_time,
        "reason": reason,
        "integrity_valid": check["integrity_valid"],
        "certificate_valid": check["certificate_valid"],
        "covers_whole_document": covers_whole_document,
        "byte_range": list(byte_range) if byte_range is not None else None,
        "details": details,
    }


def _verify_byterange(
    pdf_bytes: bytes,
    byte_range: ByteRange,
    sig_dicts: dict[ByteRange, _SigDictInfo],
) -> VerificationResult:
    """Verify the signature located by one ByteRange."""
    try:
        content = signed_content(pdf_bytes, byte_range)
        cms_der = extract_cms(pdf_bytes, byte_range)
    except InvalidDocument as e:
        return _failed([f"Structure error: {e}"], byte_range)

    details = [
        f"ByteRange {list(byte_range)}: {len(content)} signed bytes",
        f"CMS blob: {len(cms_der)} bytes",
    ]
    covers = byte_range[2] + byte_range[3] == len(pdf_bytes)
    if not covers:
        details.append("Signature does not cover the whole document (later revisions appended)")

    check = verify_signed_data(cms_der, content)
    return _from_cms(check, details, byte_range, covers, sig_dicts.get(byte_range))


_UNREADABLE_BYTERANGE = "Signature dictionary has no readable /ByteRange"


def verify_embedded_signature(pdf_bytes: bytes) -> VerificationResult:
    """
    Verify the last embedded signature of a PDF.

    The last signature dictionary in the file is authoritative; if its
    /ByteRange is unreadable the result is invalid, whatever earlier
    signatures say.  Never raises on verification failure: a document
    without a signature, a malformed ByteRange or a bad CMS all return
    ``valid=False`` with details.
    """
    byte_ranges = find_signature_byteranges(pdf_bytes)
    if not byte_ranges:
        return _failed(["No /ByteRange found in PDF -- not a signed PDF?"])

    last = byte_ranges[-1]
    if last is None:
        result = _failed([_UNREADABLE_BYTERANGE])
    else:
        result = _verify_byterange(pdf_bytes, last, _signature_dictionaries(pdf_bytes))
    _logger.info(
        "Verified embedded signature: valid=%s signer=%s",
        result["valid"],
        result["signer_name"],
    )
    return result


def verify_all_embedded_signatures(pdf_bytes: bytes) -> list[VerificationResult]:
    """
    Verify every embedded signature, in file order.

    Raises:
        InvalidDocument: If the PDF has no embedded signatures.
    """
    byte_ranges = find_signature_byteranges(pdf_bytes)
    if not byte_ranges:
        raise InvalidDocument("No /ByteRange found in PDF -- not a signed PDF?")

    sig_dicts = _signature_dictionaries(pdf_bytes)
    results: list[VerificationResult] = []
    for br in byte_ranges:
        if br is None:
            results.append(_failed([_UNREADABLE_BYTERANGE]))
        else:
            results.append(_verify_byterange(pdf_bytes, br, sig_dicts))
    return results


# ── Detached signature verification ──────────────────────────────


def verify_detached_signature(data_bytes: bytes, cms_der: bytes) -> VerificationResult:
    """Verify a detached CMS signature against the original data.

    Report form of :func:`padesign.core.cms.verify_detached`.
    """
    if not data_bytes:
        raise PadesignError("Cannot verify a signature over empty data.")
    details = [f"CMS blob: {len(cms_der)} bytes", f"Data: {len(data_bytes)} bytes"]
    check = verify_signed_data(cms_der, data_bytes)
    if not check["signers"]:
        return _failed(details + check["details"])
    return _from_cms(check, details, None, True, None)
