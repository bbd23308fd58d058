"""Display fields for the visible signature box.

Resolves signer identity into the strings rendered on the page:
masked national id, truncated name and issuer, formatted date.
"""

from __future__ import annotations

__all__ = [
    "SignerDisplayInfo",
    "build_display_lines",
    "format_signing_time",
    "mask_national_id",
    "truncate_display",
]

import re
from dataclasses import dataclass
from datetime import datetime

MASK_PREFIX = "***.***.***-"

# Values longer than this are cut to _TRUNCATE_KEEP chars plus an ellipsis
_MAX_DISPLAY_LEN = 35
_TRUNCATE_KEEP = 32
_ELLIPSIS = "..."

_NATIONAL_ID_LEN = 11
_NOT_AVAILABLE = "N/A"

TITLE = "ASSINADO DIGITALMENTE"


def mask_national_id(national_id: str | None) -> str | None:
    """Mask a national id, keeping only the check digits visible.

    >>> mask_national_id("12345678901")
    '***.***.***-01'
    >>> mask_national_id("123.456.789-01")
    '***.***.***-01'

    Values that are too short or carry fewer than 11 digits are returned
    unchanged.
    """
    if national_id is None or len(national_id) < _NATIONAL_ID_LEN:
        return national_id
    digits = re.sub(r"[^0-9]", "", national_id)
    if len(digits) >= _NATIONAL_ID_LEN:
        return MASK_PREFIX + digits[9:11]
    return national_id


def truncate_display(value: str | None) -> str:
    """Shorten long values with an ellipsis; None renders as 'N/A'."""
    if value is None:
        return _NOT_AVAILABLE
    if len(value) > _MAX_DISPLAY_LEN:
        return value[:_TRUNCATE_KEEP] + _ELLIPSIS
    return value


def format_signing_time(dt: datetime) -> str:
    """Format as ``dd/mm/yyyy HH:MM:SS`` in the datetime's own timezone."""
    return dt.strftime("%d/%m/%Y %H:%M:%S")


@dataclass(frozen=True)
class SignerDisplayInfo:
    """Signer identity as shown in the visible signature box."""

    name: str | None
    national_id: str | None
    organization: str | None
    issuer_ca: str | None
    signing_time: datetime

    @property
    def masked_national_id(self) -> str | None:
        return mask_national_id(self.national_id)


def build_display_lines(info: SignerDisplayInfo) -> list[str]:
    """Detail lines under the title, top to bottom.

    The id line is omitted when no national id was found.
    """
    lines = [f"Nome: {truncate_display(info.name)}"]
    masked = info.masked_national_id
    if masked is not None:
        lines.append(f"CPF: {masked}")
    lines.append(f"AC: {truncate_display(info.issuer_ca)}")
    lines.append(f"Data: {format_signing_time(info.signing_time)}")
    return lines
