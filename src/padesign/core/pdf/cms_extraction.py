"""ByteRange parsing and CMS extraction from signed PDFs."""

from __future__ import annotations

__all__ = [
    "BYTERANGE_PATTERN",
    "ByteRange",
    "extract_cms",
    "find_byteranges",
    "find_signature_byteranges",
    "signed_content",
]

import re

from ...errors import InvalidDocument
from .asn1 import der_from_padded_hex

BYTERANGE_PATTERN = rb"/ByteRange\s*\[\s*(\d+)\s+(\d+)\s+(\d+)\s+(\d+)\s*\]"
SIG_DICT_PATTERN = rb"/Type\s*/Sig(?![A-Za-z0-9])"

ByteRange = tuple[int, int, int, int]


def find_byteranges(pdf_bytes: bytes) -> list[ByteRange]:
    """All /ByteRange arrays in file order (later revisions last)."""
    return [
        (int(m.group(1)), int(m.group(2)), int(m.group(3)), int(m.group(4)))
        for m in re.finditer(BYTERANGE_PATTERN, pdf_bytes)
    ]


def find_signature_byteranges(pdf_bytes: bytes) -> list[ByteRange | None]:
    """The /ByteRange of every signature dictionary, in file order.

    A ``/Type /Sig`` object whose /ByteRange cannot be parsed yields
    None in its slot, so a damaged later signature is never skipped in
    favour of an earlier one.  /Type is optional in a signature
    dictionary, so /ByteRange arrays outside any such object count too.
    """
    byterange_re = re.compile(BYTERANGE_PATTERN)
    slots: list[tuple[int, ByteRange | None]] = []
    spans: list[tuple[int, int]] = []

    for m in re.finditer(SIG_DICT_PATTERN, pdf_bytes):
        if spans and m.start() < spans[-1][1]:
            continue
        start = pdf_bytes.rfind(b"obj", 0, m.start())
        end = pdf_bytes.find(b"endobj", m.end())
        start = start if start >= 0 else m.start()
        end = end if end >= 0 else len(pdf_bytes)
        br = byterange_re.search(pdf_bytes, start, end)
        slots.append((m.start(), _to_byterange(br) if br else None))
        spans.append((start, end))

    for br in byterange_re.finditer(pdf_bytes):
        if not any(start <= br.start() < end for start, end in spans):
            slots.append((br.start(), _to_byterange(br)))

    slots.sort(key=lambda slot: slot[0])
    return [byte_range for _, byte_range in slots]


def _to_byterange(m: re.Match[bytes]) -> ByteRange:
    return (int(m.group(1)), int(m.group(2)), int(m.group(3)), int(m.group(4)))


def _check_byterange(pdf_bytes: bytes, byte_range: ByteRange) -> None:
    start0, len0, start1, len1 = byte_range
    if start0 != 0:
        raise InvalidDocument(f"ByteRange must start at offset 0, got {start0}")
    if len0 <= 0:
        raise InvalidDocument(f"ByteRange first length must be positive, got {len0}")
    if start1 <= len0 + 1:
        raise InvalidDocument(f"ByteRange second offset ({start1}) overlaps the first range")
    if start1 + len1 > len(pdf_bytes):
        raise InvalidDocument(
            f"ByteRange extends beyond end of file: {start1}+{len1} > {len(pdf_bytes)}"
        )


def signed_content(pdf_bytes: bytes, byte_range: ByteRange) -> bytes:
    """Concatenate the two covered ranges.

    Raises:
        InvalidDocument: If the ranges are inconsistent with the file.
    """
    _check_byterange(pdf_bytes, byte_range)
    start0, len0, start1, len1 = byte_range
    return pdf_bytes[start0 : start0 + len0] + pdf_bytes[start1 : start1 + len1]


def extract_cms(pdf_bytes: bytes, byte_range: ByteRange) -> bytes:
    """Extract the DER CMS blob stored in the gap between the two ranges.

    The gap is ``<hex>``; the hex is zero-padded to the reserved size.

    Raises:
        InvalidDocument: If the gap is not a hex string or the DER is malformed.
    """
    _check_byterange(pdf_bytes, byte_range)
    _, len0, start1, _ = byte_range

    if pdf_bytes[len0 : len0 + 1] != b"<":
        raise InvalidDocument(f"Expected '<' at offset {len0}")
    if pdf_bytes[start1 - 1 : start1] != b">":
        raise InvalidDocument(f"Expected '>' at offset {start1 - 1}")

    try:
        hex_str = pdf_bytes[len0 + 1 : start1 - 1].decode("ascii").strip()
        return der_from_padded_hex(hex_str)
    except (UnicodeDecodeError, ValueError) as e:
        raise InvalidDocument(f"Invalid signature contents: {e}") from e
