"""
Signature widget placement and page geometry helpers.

Computes the widget rectangle on a page from a corner preset or from
explicit coordinates.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

from ...errors import InvalidDocument

if TYPE_CHECKING:
    import pikepdf

_logger = logging.getLogger(__name__)

# ── Placement defaults ────────────────────────────────────────────────

SIG_WIDTH = 200
SIG_HEIGHT = 80
SIG_MARGIN = 20


class SignaturePosition(str, enum.Enum):
    """Where the visible signature box is anchored on the page."""

    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"
    CUSTOM = "custom"


# Short forms accepted on the command line
POSITION_ALIASES = {
    "tl": SignaturePosition.TOP_LEFT,
    "tr": SignaturePosition.TOP_RIGHT,
    "bl": SignaturePosition.BOTTOM_LEFT,
    "br": SignaturePosition.BOTTOM_RIGHT,
}


def resolve_position(position: SignaturePosition | str) -> SignaturePosition:
    """Normalize a position name or alias.

    >>> resolve_position("br")
    <SignaturePosition.BOTTOM_RIGHT: 'bottom-right'>
    >>> resolve_position("Top-Left")
    <SignaturePosition.TOP_LEFT: 'top-left'>

    Raises InvalidDocument for unknown names.
    """
    if isinstance(position, SignaturePosition):
        return position
    name = position.lower().strip()
    if name in POSITION_ALIASES:
        return POSITION_ALIASES[name]
    try:
        return SignaturePosition(name)
    except ValueError:
        valid = [p.value for p in SignaturePosition] + sorted(POSITION_ALIASES)
        raise InvalidDocument(
            f"Unknown position {position!r}. Valid: {', '.join(valid)}"
        ) from None


def compute_sig_rect(
    page_width: float,
    page_height: float,
    position: SignaturePosition | str = SignaturePosition.BOTTOM_RIGHT,
    sig_w: float = SIG_WIDTH,
    sig_h: float = SIG_HEIGHT,
    x: float | None = None,
    y: float | None = None,
    margin: float = SIG_MARGIN,
) -> tuple[float, float, float, float]:
    """Compute the widget rectangle as (x, y, w, h) in PDF points.

    Origin is the bottom-left corner of the page.  ``custom`` uses the
    explicit *x*/*y* and falls back to bottom-right when either is missing.

    Raises:
        InvalidDocument: If the page or box dimensions are not positive.
    """
    if page_width <= 0 or page_height <= 0:
        raise InvalidDocument(f"Invalid page dimensions: {page_width:.1f} x {page_height:.1f} pt")
    if sig_w <= 0 or sig_h <= 0:
        raise InvalidDocument(f"Invalid signature dimensions: {sig_w:.1f} x {sig_h:.1f} pt")

    position = resolve_position(position)

    if position is SignaturePosition.CUSTOM:
        if x is not None and y is not None:
            return x, y, sig_w, sig_h
        _logger.warning("Custom position without x/y, using bottom-right")
        position = SignaturePosition.BOTTOM_RIGHT

    if position in (SignaturePosition.TOP_LEFT, SignaturePosition.BOTTOM_LEFT):
        rx = margin
    else:
        rx = page_width - sig_w - margin

    if position in (SignaturePosition.TOP_LEFT, SignaturePosition.TOP_RIGHT):
        ry = page_height - sig_h - margin
    else:
        ry = margin

    if rx < 0 or ry < 0:
        _logger.warning(
            "Signature box %.0fx%.0f pt does not fit a %.0fx%.0f pt page",
            sig_w,
            sig_h,
            page_width,
            page_height,
        )
    return rx, ry, sig_w, sig_h


def get_page_dimensions(pdf: pikepdf.Pdf, page_index: int) -> tuple[float, float]:
    """Effective (width, height) of a page, honoring CropBox and /Rotate."""
    page = pdf.pages[page_index]

    crop_box = page.get("/CropBox")
    box = crop_box if crop_box is not None else page.MediaBox
    x0, y0, x1, y1 = (float(box[i]) for i in range(4))
    w = abs(x1 - x0)
    h = abs(y1 - y0)

    # /Rotate is clockwise degrees; quarter turns swap the axes
    rotate_val = page.get("/Rotate")
    rotate = (int(rotate_val) if rotate_val is not None else 0) % 360
    if rotate in (90, 270):
        w, h = h, w

    return w, h


def resolve_page_index(pdf: pikepdf.Pdf, page: int) -> int:
    """Convert a 1-based page number to a validated 0-based index.

    Raises:
        InvalidDocument: If the page is outside the document.
    """
    total = len(pdf.pages)
    if page < 1 or page > total:
        raise InvalidDocument(f"Page {page} out of range (document has {total} page(s)).")
    return page - 1
