"""PDF signature field preparation.

Prepares a document with an empty signature field (placeholder) as a
true incremental update, hashes the byte range, and splices the CMS
container into the reserved /Contents.

Low-level object building is in objects.py and render.py; document
analysis and update assembly in incremental.py.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TypedDict

from ...errors import InvalidDocument, SignatureContainerTooSmall
from ..appearance import SignerDisplayInfo, build_appearance_stream
from .cms_extraction import ByteRange
from .incremental import analyze_document, assemble_incremental_update, patch_byterange
from .objects import allocate_sig_objects, build_catalog_override, build_page_override
from .position import SIG_HEIGHT, SIG_WIDTH, SignaturePosition, compute_sig_rect
from .render import build_annot_widget, build_appearance_xobject, build_sig_dict

_logger = logging.getLogger(__name__)


class SignatureFieldSpec(TypedDict, total=False):
    """What goes into the signature dictionary and widget.

    Only ``signing_time`` is required.  ``display`` turns the widget
    visible; without it the signature has no page appearance.
    """

    signing_time: datetime
    name: str | None
    reason: str | None
    location: str | None
    contact_info: str | None
    page: int  # 1-based, default 1
    position: SignaturePosition | str
    x: float | None
    y: float | None
    width: float
    height: float
    display: SignerDisplayInfo | None


class PreparedDocument(TypedDict):
    """A document with a patched ByteRange and a zeroed /Contents."""

    pdf: bytes
    byte_range: ByteRange
    hex_size: int  # Reserved hex characters inside <...>
    page_index: int  # 0-based page carrying the widget
    rect: tuple[float, float, float, float] | None  # (x, y, w, h) of a visible widget


def _to_bytes(raw: str | bytes) -> bytes:
    return raw if isinstance(raw, bytes) else raw.encode("latin-1")


def prepare_pdf_with_sig_field(
    pdf_bytes: bytes,
    field: SignatureFieldSpec,
    signature_size: int,
) -> PreparedDocument:
    """
    Append an empty signature field to *pdf_bytes*.

    The original bytes are preserved exactly; the signature dictionary,
    widget, optional appearance form, page override and catalog override
    are appended after the original %%EOF.

    Args:
        pdf_bytes: Raw PDF content.
        field: Signature dictionary entries and widget placement.
        signature_size: Bytes reserved for the CMS container.

    Returns:
        PreparedDocument with the patched ByteRange.

    Raises:
        InvalidDocument: If the document cannot be analyzed or the page
            is out of range.
    """
    layout = analyze_document(pdf_bytes, field.get("page", 1))
    hex_size = signature_size * 2
    display = field.get("display")

    obj_nums = allocate_sig_objects(layout["size"], visible=display is not None)
    page_num, page_gen = layout["page"]
    root_num, root_gen = layout["root"]

    sig_raw = build_sig_dict(
        obj_nums["sig"],
        hex_size,
        field["signing_time"],
        name=field.get("name"),
        reason=field.get("reason"),
        location=field.get("location"),
        contact_info=field.get("contact_info"),
    )

    rect = None
    ap_raw = b""
    if display is not None:
        page_w, page_h = layout["page_size"]
        rect = compute_sig_rect(
            page_w,
            page_h,
            field.get("position", SignaturePosition.BOTTOM_RIGHT),
            field.get("width", SIG_WIDTH),
            field.get("height", SIG_HEIGHT),
            x=field.get("x"),
            y=field.get("y"),
        )
        ap_info = build_appearance_stream(rect[2], rect[3], display)
        ap_raw = build_appearance_xobject(obj_nums, ap_info)

    annot_raw = build_annot_widget(obj_nums, page_num, rect, page_gen=page_gen)
    page_override = build_page_override(
        pdf_bytes, page_num, page_gen, [*layout["page_annots"], f"{obj_nums['annot']} 0 R"]
    )
    catalog_override = build_catalog_override(
        pdf_bytes,
        root_num,
        root_gen,
        layout["form_fields"],
        obj_nums["annot"],
        layout["form_extra"],
    )

    raw_objects: list[tuple[bytes, int, int]] = [
        (_to_bytes(sig_raw), obj_nums["sig"], 0),
        (_to_bytes(annot_raw), obj_nums["annot"], 0),
    ]
    if obj_nums["ap"] is not None:
        raw_objects.append((ap_raw, obj_nums["ap"], 0))
    raw_objects.append((_to_bytes(page_override), page_num, page_gen))
    if (root_num, root_gen) != (page_num, page_gen):
        raw_objects.append((_to_bytes(catalog_override), root_num, root_gen))

    full_pdf = assemble_incremental_update(pdf_bytes, raw_objects, obj_nums["new_size"], layout)
    patched, byte_range = patch_byterange(full_pdf, len(pdf_bytes), hex_size)
    _logger.debug(
        "Placeholder reserved: %d hex chars, ByteRange %s, page index %d, visible=%s",
        hex_size,
        list(byte_range),
        layout["page_index"],
        rect is not None,
    )
    return {
        "pdf": patched,
        "byte_range": byte_range,
        "hex_size": hex_size,
        "page_index": layout["page_index"],
        "rect": rect,
    }


def byterange_content(prepared: PreparedDocument) -> bytes:
    """The bytes covered by the ByteRange (everything except ``<hex>``)."""
    pdf = prepared["pdf"]
    _, len0, start1, len1 = prepared["byte_range"]
    if pdf[len0 : len0 + 1] != b"<" or pdf[start1 - 1 : start1] != b">":
        raise InvalidDocument("Malformed Contents placeholder around the ByteRange gap")
    return pdf[:len0] + pdf[start1 : start1 + len1]


def insert_cms(prepared: PreparedDocument, cms_der: bytes) -> bytes:
    """Splice the CMS DER, hex-encoded and zero-padded, into /Contents.

    Raises:
        SignatureContainerTooSmall: If the CMS does not fit the reservation.
    """
    hex_size = prepared["hex_size"]
    cms_hex = cms_der.hex()
    if len(cms_hex) > hex_size:
        raise SignatureContainerTooSmall(
            f"CMS signature needs {len(cms_der)} bytes but only {hex_size // 2} were reserved"
        )

    hex_start = prepared["byte_range"][1] + 1
    result = bytearray(prepared["pdf"])
    result[hex_start : hex_start + hex_size] = cms_hex.ljust(hex_size, "0").encode("ascii")
    return bytes(result)
