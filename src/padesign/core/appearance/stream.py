"""
Visual appearance stream for PDF signature fields.

Generates the /AP /N content stream shown inside the signature widget
rectangle.  Fixed layout, standard Helvetica fonts (no embedding):

  +----------------------------------------+
  | ASSINADO DIGITALMENTE                  |
  | -------------------------------------- |
  | Nome: MARIA DA SILVA                   |
  | CPF: ***.***.***-01                    |
  | AC: AC EXEMPLO v5                      |
  | Data: 07/02/2026 09:51:42              |
  +----------------------------------------+
"""

from __future__ import annotations

__all__ = ["AppearanceData", "build_appearance_stream"]

import logging
from typing import TypedDict

from .fields import TITLE, SignerDisplayInfo, build_display_lines

_logger = logging.getLogger(__name__)


class AppearanceData(TypedDict):
    """Data returned by build_appearance_stream."""

    stream: bytes  # Raw content stream for /AP /N
    bbox: tuple[float, float, float, float]  # BBox (x0, y0, x1, y1)
    fonts: dict[str, str]  # resource name -> standard BaseFont
    lines: list[str]  # Detail lines as rendered (for logging/tests)


# ── Appearance layout constants ────────────────────────────────────────

TITLE_FONT = "Helvetica-Bold"
BODY_FONT = "Helvetica"
_TITLE_FONT_SIZE = 9
_BODY_FONT_SIZE = 7
_BODY_LEADING = 10

_BORDER_WIDTH = 0.5
_BORDER_INSET = 1
_TEXT_X = 5
_TITLE_BASELINE_FROM_TOP = 14
_SEPARATOR_FROM_TOP = 18
_BODY_START_FROM_TOP = 30

_MIN_HEIGHT = 40


def build_appearance_stream(width: float, height: float, info: SignerDisplayInfo) -> AppearanceData:
    """
    Build the content stream for a bordered signature information box.

    Args:
        width: Widget width in PDF points.
        height: Widget height in PDF points.
        info: Signer fields to render.

    Returns:
        AppearanceData with the stream bytes and required font resources.
    """
    from ..pdf.objects import pdf_string

    lines = build_display_lines(info)

    needed = _BODY_START_FROM_TOP + (len(lines) - 1) * _BODY_LEADING
    if height < max(_MIN_HEIGHT, needed):
        _logger.warning(
            "Signature box height %.1f pt is below the %.1f pt layout; lines will be clipped",
            height,
            max(_MIN_HEIGHT, needed),
        )

    ops: list[str] = []

    # Clip everything to the widget box
    ops.append("q")
    ops.append(f"0 0 {width:.2f} {height:.2f} re W n")

    # 1. Border
    ops.append("0 0 0 RG")
    ops.append(f"{_BORDER_WIDTH} w")
    ops.append(
        f"{_BORDER_INSET} {_BORDER_INSET} "
        f"{width - 2 * _BORDER_INSET:.2f} {height - 2 * _BORDER_INSET:.2f} re"
    )
    ops.append("S")

    # 2. Title
    ops.append("BT")
    ops.append("0 g")
    ops.append(f"/F2 {_TITLE_FONT_SIZE} Tf")
    ops.append(f"{_TEXT_X} {height - _TITLE_BASELINE_FROM_TOP:.2f} Td")
    ops.append(f"({pdf_string(TITLE)}) Tj")
    ops.append("ET")

    # 3. Separator
    sep_y = height - _SEPARATOR_FROM_TOP
    ops.append(f"{_TEXT_X} {sep_y:.2f} m")
    ops.append(f"{width - _TEXT_X:.2f} {sep_y:.2f} l")
    ops.append("S")

    # 4. Detail lines
    ops.append("BT")
    ops.append(f"/F1 {_BODY_FONT_SIZE} Tf")
    ops.append(f"{_BODY_LEADING} TL")
    ops.append(f"{_TEXT_X} {height - _BODY_START_FROM_TOP:.2f} Td")
    for i, line in enumerate(lines):
        if i > 0:
            ops.append("T*")
        ops.append(f"({pdf_string(line)}) Tj")
    ops.append("ET")

    ops.append("Q")

    return {
        "stream": "\n".join(ops).encode("latin-1"),
        "bbox": (0, 0, width, height),
        "fonts": {"F1": BODY_FONT, "F2": TITLE_FONT},
        "lines": lines,
    }
