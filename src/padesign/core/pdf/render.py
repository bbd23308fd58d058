"""Raw PDF objects for a signature field.

Builds the signature dictionary, the widget annotation and the
appearance form XObject.  Called by builder.py.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ...constants import SIG_FILTER, SIG_SUBFILTER, __version__
from ...errors import PadesignError
from .objects import (
    ANNOT_FLAGS_SIG_WIDGET,
    BYTERANGE_PLACEHOLDER_STR,
    SigObjectNums,
    pdf_string,
)

if TYPE_CHECKING:
    from ..appearance import AppearanceData


def pdf_date(dt: datetime) -> str:
    """Format a datetime as a PDF date string in UTC (``D:YYYYMMDDHHmmSS+00'00'``)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("D:%Y%m%d%H%M%S+00'00'")


def build_sig_dict(
    obj_num: int,
    hex_size: int,
    signing_time: datetime,
    name: str | None = None,
    reason: str | None = None,
    location: str | None = None,
    contact_info: str | None = None,
) -> str:
    """Build the /Type /Sig dictionary with a zeroed /Contents placeholder."""
    optional = ""
    for key, value in (
        ("/Name", name),
        ("/Reason", reason),
        ("/Location", location),
        ("/ContactInfo", contact_info),
    ):
        if value:
            optional += f"  {key} ({pdf_string(value)})\n"

    return (
        f"{obj_num} 0 obj\n"
        f"<<\n"
        f"  /Type /Sig\n"
        f"  /Filter /{SIG_FILTER}\n"
        f"  /SubFilter /{SIG_SUBFILTER}\n"
        f"  {BYTERANGE_PLACEHOLDER_STR}\n"
        f"  /Contents <{'0' * hex_size}>\n"
        f"  /M ({pdf_date(signing_time)})\n"
        f"{optional}"
        f"  /Prop_Build << /App << /Name /padesign /REx ({__version__}) >> "
        f"/Filter << /Name /{SIG_FILTER} >> >>\n"
        f">>\n"
        f"endobj\n"
    )


def _font_resource(base_font: str) -> str:
    return f"<< /Type /Font /Subtype /Type1 /BaseFont /{base_font} /Encoding /WinAnsiEncoding >>"


def build_appearance_xobject(obj_nums: SigObjectNums, ap_info: AppearanceData) -> bytes:
    """Build the /AP /N form XObject holding the appearance stream.

    Fonts are the standard 14 faces named in *ap_info*, referenced as
    direct dictionaries.
    """
    ap = obj_nums["ap"]
    if ap is None:
        raise PadesignError("Appearance object number was not allocated")

    x0, y0, x1, y1 = ap_info["bbox"]
    fonts = " ".join(f"/{res} {_font_resource(base)}" for res, base in ap_info["fonts"].items())
    stream = ap_info["stream"]
    header = (
        f"{ap} 0 obj\n"
        f"<< /Type /XObject /Subtype /Form /FormType 1\n"
        f"   /BBox [{x0:.2f} {y0:.2f} {x1:.2f} {y1:.2f}]\n"
        f"   /Resources << /Font << {fonts} >> >>\n"
        f"   /Length {len(stream)}\n"
        f">>\nstream\n"
    )
    return header.encode("latin-1") + stream + b"\nendstream\nendobj\n"


def build_annot_widget(
    obj_nums: SigObjectNums,
    page_obj_num: int,
    rect: tuple[float, float, float, float] | None,
    page_gen: int = 0,
) -> str:
    """Build the signature widget annotation.

    With *rect* = (x, y, w, h) the widget shows the appearance form;
    without it the widget is invisible (/Rect [0 0 0 0], no /AP).
    """
    sig = obj_nums["sig"]
    annot = obj_nums["annot"]
    if rect is None:
        rect_entry = "  /Rect [0 0 0 0]\n"
        ap_entry = ""
    else:
        x, y, w, h = rect
        if obj_nums["ap"] is None:
            raise PadesignError("Visible widget requires an appearance object")
        rect_entry = f"  /Rect [{x:.2f} {y:.2f} {x + w:.2f} {y + h:.2f}]\n"
        ap_entry = f"  /AP << /N {obj_nums['ap']} 0 R >>\n"
    # /Border [0 0 0] suppresses the viewer-drawn border; the stream draws its own
    return (
        f"{annot} 0 obj\n"
        f"<<\n"
        f"  /Type /Annot\n"
        f"  /Subtype /Widget\n"
        f"  /FT /Sig\n"
        f"{rect_entry}"
        f"  /V {sig} 0 R\n"
        f"  /T (Signature_{annot})\n"
        f"  /F {ANNOT_FLAGS_SIG_WIDGET}\n"
        f"  /P {page_obj_num} {page_gen} R\n"
        f"{ap_entry}"
        f"  /Border [0 0 0]\n"
        f">>\n"
        f"endobj\n"
    )
