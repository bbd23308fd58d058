"""PDF structure analysis and incremental update assembly.

Reads the existing document structure (catalog, target page, form
fields, trailer) and appends new objects as an incremental update
(xref section, trailer, ByteRange patching).  The original bytes are
never modified.

Object-level construction is in objects.py; orchestration in builder.py.
"""

from __future__ import annotations

import io
import re
from typing import TYPE_CHECKING, TypedDict

from ...errors import InvalidDocument
from .. import require_pikepdf as _require_pikepdf
from .cms_extraction import ByteRange
from .objects import (
    BYTERANGE_PLACEHOLDER,
    CONTENTS_PREFIX,
    serialize_array_items,
    serialize_pikepdf_obj,
)
from .position import get_page_dimensions, resolve_page_index

if TYPE_CHECKING:
    import pikepdf


class DocumentLayout(TypedDict):
    """Read-only facts about the document needed to append a signature."""

    root: tuple[int, int]  # Catalog (obj, gen)
    page: tuple[int, int]  # Target page (obj, gen)
    page_index: int  # 0-based
    page_size: tuple[float, float]  # Effective (width, height) in points
    page_annots: list[str]  # Existing /Annots entries, raw
    form_fields: list[str]  # Existing /AcroForm /Fields entries, raw
    form_extra: list[str]  # Other /AcroForm entries to carry over, raw
    prev_xref: int
    size: int  # Trailer /Size
    trailer_extra: list[str]  # /Info, /ID to carry forward


# ── PDF structure analysis ───────────────────────────────────────────


def find_prev_startxref(pdf_bytes: bytes) -> int:
    """Offset of the last cross-reference section.

    The last ``startxref`` is authoritative in a file with incremental
    updates.  Trailing junk after %%EOF is tolerated.
    """
    matches = list(re.finditer(rb"startxref\s+(\d+)\s+%%EOF", pdf_bytes))
    if not matches:
        raise InvalidDocument("Cannot find startxref in PDF.")
    return int(matches[-1].group(1))


def _trailer_entries(pdf: pikepdf.Pdf) -> list[str]:
    """Raw /Info and /ID entries of the current trailer.

    Works for both classic trailers and cross-reference streams.
    """
    trailer = pdf.trailer
    entries: list[str] = []
    if "/Info" in trailer:
        info = trailer["/Info"]
        if info.is_indirect:
            entries.append(f"/Info {info.objgen[0]} {info.objgen[1]} R")
    if "/ID" in trailer:
        entries.append(f"/ID {trailer['/ID'].unparse(resolved=True).decode('latin-1')}")
    return entries


def analyze_document(pdf_bytes: bytes, page: int) -> DocumentLayout:
    """Collect everything needed to append a signature to *page* (1-based).

    Uses pikepdf for reading only; the document is never saved.

    Raises:
        InvalidDocument: If the document cannot be parsed, is encrypted,
            or the page is out of range.
    """
    pikepdf = _require_pikepdf()
    prev_xref = find_prev_startxref(pdf_bytes)
    try:
        pdf_ctx = pikepdf.open(io.BytesIO(pdf_bytes))
    except pikepdf.PdfError as e:
        raise InvalidDocument(f"Cannot parse PDF: {e}") from e

    with pdf_ctx as pdf:
        if pdf.is_encrypted:
            raise InvalidDocument("Encrypted PDFs cannot be signed.")

        root = pdf.trailer["/Root"]
        if not root.is_indirect:
            raise InvalidDocument("PDF catalog is not an indirect object.")

        page_index = resolve_page_index(pdf, page)
        page_obj = pdf.pages[page_index].obj

        page_annots: list[str] = []
        if "/Annots" in page_obj:
            page_annots = serialize_array_items(page_obj["/Annots"])

        form_fields: list[str] = []
        form_extra: list[str] = []
        if "/AcroForm" in root:
            acroform = root["/AcroForm"]
            for key in list(acroform.keys()):
                if key == "/Fields":
                    form_fields = serialize_array_items(acroform["/Fields"])
                elif key != "/SigFlags":
                    form_extra.append(f"{key} {serialize_pikepdf_obj(acroform[key])}")

        try:
            size = int(pdf.trailer["/Size"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidDocument(f"Cannot determine /Size from PDF trailer: {e}") from e

        return {
            "root": root.objgen,
            "page": page_obj.objgen,
            "page_index": page_index,
            "page_size": get_page_dimensions(pdf, page_index),
            "page_annots": page_annots,
            "form_fields": form_fields,
            "form_extra": form_extra,
            "prev_xref": prev_xref,
            "size": size,
            "trailer_extra": _trailer_entries(pdf),
        }


# ── Incremental update assembly ─────────────────────────────────────


def assemble_incremental_update(
    pdf_bytes: bytes,
    raw_objects: list[tuple[bytes, int, int]],
    new_size: int,
    layout: DocumentLayout,
) -> bytes:
    """Append *raw_objects* (bytes, obj_num, gen) plus xref and trailer."""
    base = pdf_bytes if pdf_bytes.endswith(b"\n") else pdf_bytes + b"\n"

    xref_entries: dict[int, tuple[int, int]] = {}
    offset = len(base)
    for raw, obj_num, gen in raw_objects:
        xref_entries[obj_num] = (offset, gen)
        offset += len(raw)

    body = b"".join(raw for raw, _, _ in raw_objects)
    xref = build_xref_and_trailer(
        xref_entries=xref_entries,
        new_size=new_size,
        prev_xref=layout["prev_xref"],
        root=layout["root"],
        trailer_extra=layout["trailer_extra"],
        xref_offset=len(base) + len(body),
    )
    return base + body + xref


def patch_byterange(full_pdf: bytes, original_len: int, hex_size: int) -> tuple[bytes, ByteRange]:
    """Fill in the /ByteRange placeholder of the appended signature.

    The range covers the whole file except ``<hex>`` of the /Contents
    placeholder.  The patched array has the same width as the
    placeholder, so no offsets move.

    Returns:
        (patched_pdf, byte_range)
    """
    marker = CONTENTS_PREFIX + b"0" * hex_size + b">"
    contents_pos = full_pdf.find(marker, original_len)
    if contents_pos == -1:
        raise InvalidDocument("Cannot find Contents placeholder in prepared PDF.")

    gap_start = contents_pos + len(CONTENTS_PREFIX) - 1  # the "<"
    gap_end = gap_start + 1 + hex_size + 1  # just past the ">"
    byte_range = (0, gap_start, gap_end, len(full_pdf) - gap_end)

    patched = (
        f"/ByteRange [{byte_range[0]:>10d} {byte_range[1]:>10d} "
        f"{byte_range[2]:>10d} {byte_range[3]:>10d}]"
    ).encode("latin-1")
    if len(patched) != len(BYTERANGE_PLACEHOLDER):
        raise InvalidDocument("Document too large for the ByteRange placeholder.")

    br_pos = full_pdf.find(BYTERANGE_PLACEHOLDER, original_len)
    if br_pos == -1:
        raise InvalidDocument("Cannot find ByteRange placeholder in incremental update.")
    full_pdf = full_pdf[:br_pos] + patched + full_pdf[br_pos + len(BYTERANGE_PLACEHOLDER) :]
    return full_pdf, byte_range


# ── Xref table builder ──────────────────────────────────────────────


def build_xref_and_trailer(
    xref_entries: dict[int, tuple[int, int]],
    new_size: int,
    prev_xref: int,
    root: tuple[int, int],
    trailer_extra: list[str],
    xref_offset: int,
) -> bytes:
    """Build the xref section and trailer of an incremental update.

    Args:
        xref_entries: Object number to (byte offset, generation).
        new_size: /Size value.
        prev_xref: /Prev value.
        root: Catalog (obj, gen).
        trailer_extra: Entries carried from the previous trailer.
        xref_offset: Byte offset where this xref section starts.
    """
    if not xref_entries:
        raise InvalidDocument("Cannot build xref table: no objects to reference.")

    # Consecutive object numbers share one subsection
    groups: list[list[int]] = []
    for n in sorted(xref_entries):
        if groups and n == groups[-1][-1] + 1:
            groups[-1].append(n)
        else:
            groups.append([n])

    lines = ["xref"]
    for group in groups:
        lines.append(f"{group[0]} {len(group)}")
        # Each entry is exactly 20 bytes: 18 chars + "\r" + "\n" from the join
        for n in group:
            off, gen = xref_entries[n]
            lines.append(f"{off:010d} {gen:05d} n\r")

    lines.extend(
        [
            "trailer",
            "<<",
            f"  /Size {new_size}",
            f"  /Prev {prev_xref}",
            f"  /Root {root[0]} {root[1]} R",
        ]
    )
    lines.extend(f"  {extra}" for extra in trailer_extra)
    lines.extend([">>", "startxref", str(xref_offset), "%%EOF", ""])
    return "\n".join(lines).encode("latin-1")
