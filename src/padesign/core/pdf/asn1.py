"""DER length parsing for CMS blobs stored as zero-padded hex."""

from __future__ import annotations

__all__ = ["ASN1_SEQUENCE_TAG", "der_from_padded_hex"]

# First byte of every DER-encoded ContentInfo
ASN1_SEQUENCE_TAG = 0x30

# Upper bound on a DER blob we are willing to decode (16 MiB)
_MAX_DER_BYTES = 16 * 1024 * 1024


def _der_header(hex_str: str) -> tuple[int, int]:
    """Return (header_len, content_len) of the leading TLV, in bytes."""
    if len(hex_str) < 4:
        raise ValueError("hex data too short for a DER header")

    tag = int(hex_str[0:2], 16)
    if tag != ASN1_SEQUENCE_TAG:
        raise ValueError(f"expected a DER SEQUENCE (0x30), found 0x{tag:02x}")

    first = int(hex_str[2:4], 16)
    if first < 0x80:
        return 2, first
    if first == 0x80:
        raise ValueError("indefinite length is not allowed in DER")

    n_octets = first & 0x7F
    if n_octets > 4:
        raise ValueError(f"DER length uses {n_octets} octets")
    end = 4 + 2 * n_octets
    if len(hex_str) < end:
        raise ValueError("hex data truncated inside the DER length")
    return 2 + n_octets, int(hex_str[4:end], 16)


def der_from_padded_hex(hex_str: str) -> bytes:
    """Decode the DER blob at the start of *hex_str*, ignoring trailing padding.

    The blob length comes from its own header, so trailing zero bytes that
    belong to the blob are kept.

    Raises:
        ValueError: On malformed hex or a length that exceeds the data.
    """
    header_len, content_len = _der_header(hex_str)
    total = header_len + content_len
    if total > _MAX_DER_BYTES:
        raise ValueError(f"DER length {total} exceeds the {_MAX_DER_BYTES} byte limit")
    if total * 2 > len(hex_str):
        raise ValueError(
            f"DER length ({total} bytes) exceeds the reserved space ({len(hex_str) // 2} bytes)"
        )
    return bytes.fromhex(hex_str[: total * 2])
