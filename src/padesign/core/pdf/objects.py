"""Low-level PDF object construction.

Types, constants, and helpers for the raw objects written in a signature
incremental update: string escaping, object overrides, object number
allocation.

Structure analysis and update assembly live in incremental.py; the
signature dictionary, widget and appearance objects in render.py.
"""

from __future__ import annotations

import io
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, TypedDict

if TYPE_CHECKING:
    import pikepdf

from .. import require_pikepdf as _require_pikepdf

_logger = logging.getLogger(__name__)


class SigObjectNums(TypedDict):
    """Object numbers allocated for the new signature objects.

    ``ap`` is None for an invisible signature.
    """

    sig: int
    annot: int
    ap: int | None
    new_size: int


# ── Constants ────────────────────────────────────────────────────────

BYTERANGE_PLACEHOLDER = b"/ByteRange [         0          0          0          0]"
BYTERANGE_PLACEHOLDER_STR = BYTERANGE_PLACEHOLDER.decode("ascii")

CONTENTS_PREFIX = b"/Contents <"

# Annotation flags (/F): Print (4) | Locked (128)
_ANNOT_FLAG_PRINT = 4
_ANNOT_FLAG_LOCKED = 128
ANNOT_FLAGS_SIG_WIDGET = _ANNOT_FLAG_PRINT | _ANNOT_FLAG_LOCKED

# /SigFlags: SignaturesExist (1) | AppendOnly (2)
ACROFORM_SIG_FLAGS = 3


# ── PDF string/object helpers ────────────────────────────────────────


def pdf_string(text: str) -> str:
    """Escape text for a PDF literal string.

    Backslash, parentheses and control characters are escaped.  Characters
    outside Latin-1 cannot be represented and become '?', with a warning.
    """
    result: list[str] = []
    replaced = 0
    for char in text:
        code = ord(char)
        if char in "\\()":
            result.append("\\" + char)
        elif char == "\n":
            result.append("\\n")
        elif char == "\r":
            result.append("\\r")
        elif char == "\t":
            result.append("\\t")
        elif code < 0x20 or code == 0x7F:
            result.append(f"\\{code:03o}")
        elif code > 0xFF:
            result.append("?")
            replaced += 1
        else:
            result.append(char)
    if replaced:
        _logger.warning("%d non-Latin-1 character(s) replaced with '?' in %r", replaced, text)
    return "".join(result)


def serialize_pikepdf_obj(obj: None | bool | int | float | Decimal | pikepdf.Object) -> str:
    """Serialize a pikepdf value as raw PDF syntax.

    Indirect objects are emitted as references; everything else goes
    through pikepdf's unparse().
    """
    if obj is None:
        return "null"
    if isinstance(obj, bool):
        return "true" if obj else "false"
    if isinstance(obj, int):
        return str(obj)
    if isinstance(obj, float):
        return str(int(obj)) if obj.is_integer() else f"{obj:.6f}"
    if isinstance(obj, Decimal):
        return format(obj, "f")
    pikepdf = _require_pikepdf()
    if isinstance(obj, pikepdf.Object) and obj.is_indirect:
        return f"{obj.objgen[0]} {obj.objgen[1]} R"
    return obj.unparse(resolved=True).decode("latin-1")


def serialize_array_items(array: pikepdf.Array) -> list[str]:
    """Serialize each element of a pikepdf array."""
    return [serialize_pikepdf_obj(array[i]) for i in range(len(array))]


# ── Object override builders ─────────────────────────────────────────


def build_object_override(
    pdf_bytes: bytes,
    obj_num: int,
    gen: int,
    replace: dict[str, str],
) -> str:
    """Rewrite an existing dictionary object with some entries replaced.

    Every entry of the original object is kept, except the keys in
    *replace*, which are written with their new raw values.

    Args:
        pdf_bytes: Raw PDF content.
        obj_num: Target object number.
        gen: Target generation number.
        replace: Key (e.g. "/Annots") to raw PDF value.

    Returns:
        Raw PDF object definition.
    """
    pikepdf = _require_pikepdf()
    with pikepdf.open(io.BytesIO(pdf_bytes)) as pdf:
        obj = pdf.get_object((obj_num, gen))
        # pikepdf dicts iterate over values; keys() gives the names
        entries = [
            f"  {key} {serialize_pikepdf_obj(obj[key])}"
            for key in list(obj.keys())
            if key not in replace
        ]

    entries.extend(f"  {key} {value}" for key, value in replace.items())
    body = "\n".join(entries)
    return f"{obj_num} {gen} obj\n<<\n{body}\n>>\nendobj\n"


def build_page_override(
    pdf_bytes: bytes, page_obj_num: int, page_gen: int, annots: list[str]
) -> str:
    """Override of the page object with a new /Annots array."""
    return build_object_override(
        pdf_bytes,
        page_obj_num,
        page_gen,
        {"/Annots": f"[{' '.join(annots)}]"},
    )


def build_catalog_override(
    pdf_bytes: bytes,
    root_obj_num: int,
    root_gen: int,
    existing_fields: list[str],
    annot_obj_num: int,
    acroform_extra: list[str] | None = None,
) -> str:
    """Override of the catalog with an /AcroForm holding the new field.

    Fields of an existing form are kept ahead of the new one, and its
    other entries (e.g. /DR, /DA) are carried over from *acroform_extra*.
    """
    fields = [*existing_fields, f"{annot_obj_num} 0 R"]
    extra = "".join(f" {entry}" for entry in acroform_extra or [])
    acroform = f"<< /Fields [{' '.join(fields)}] /SigFlags {ACROFORM_SIG_FLAGS}{extra} >>"
    return build_object_override(pdf_bytes, root_obj_num, root_gen, {"/AcroForm": acroform})


# ── Object number allocation ────────────────────────────────────────


def allocate_sig_objects(prev_size: int, visible: bool = True) -> SigObjectNums:
    """Allocate object numbers for the new objects, starting at *prev_size*.

    A visible signature gets a signature dictionary, a widget and one
    appearance form XObject; an invisible one skips the form.
    """
    sig = prev_size
    annot = prev_size + 1
    if not visible:
        return {"sig": sig, "annot": annot, "ap": None, "new_size": prev_size + 2}
    return {"sig": sig, "annot": annot, "ap": prev_size + 2, "new_size": prev_size + 3}
