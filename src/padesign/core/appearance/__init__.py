"""Signature visual appearance: display fields and content stream."""

from .fields import (
    SignerDisplayInfo,
    build_display_lines,
    format_signing_time,
    mask_national_id,
    truncate_display,
)
from .stream import BODY_FONT, TITLE_FONT, AppearanceData, build_appearance_stream

__all__ = [
    "BODY_FONT",
    "TITLE_FONT",
    "AppearanceData",
    "SignerDisplayInfo",
    "build_appearance_stream",
    "build_display_lines",
    "format_signing_time",
    "mask_national_id",
    "truncate_display",
]
