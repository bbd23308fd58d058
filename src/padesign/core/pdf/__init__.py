"""PDF preparation, verification, and incremental update assembly."""

from .builder import (
    PreparedDocument,
    SignatureFieldSpec,
    byterange_content,
    insert_cms,
    prepare_pdf_with_sig_field,
)
from .cms_extraction import (
    BYTERANGE_PATTERN,
    ByteRange,
    extract_cms,
    find_byteranges,
    find_signature_byteranges,
    signed_content,
)
from .incremental import (
    DocumentLayout,
    analyze_document,
    assemble_incremental_update,
    build_xref_and_trailer,
    find_prev_startxref,
    patch_byterange,
)
from .objects import (
    ANNOT_FLAGS_SIG_WIDGET,
    BYTERANGE_PLACEHOLDER_STR,
    SigObjectNums,
    allocate_sig_objects,
    build_catalog_override,
    build_page_override,
    pdf_string,
)
from .position import (
    POSITION_ALIASES,
    SIG_HEIGHT,
    SIG_MARGIN,
    SIG_WIDTH,
    SignaturePosition,
    compute_sig_rect,
    get_page_dimensions,
    resolve_page_index,
    resolve_position,
)
from .verify import (
    VerificationResult,
    parse_pdf_date,
    verify_all_embedded_signatures,
    verify_detached_signature,
    verify_embedded_signature,
)

__all__ = [
    "ANNOT_FLAGS_SIG_WIDGET",
    "BYTERANGE_PATTERN",
    "BYTERANGE_PLACEHOLDER_STR",
    "POSITION_ALIASES",
    "SIG_HEIGHT",
    "SIG_MARGIN",
    "SIG_WIDTH",
    "ByteRange",
    "DocumentLayout",
    "PreparedDocument",
    "SigObjectNums",
    "SignatureFieldSpec",
    "SignaturePosition",
    "VerificationResult",
    "allocate_sig_objects",
    "analyze_document",
    "assemble_incremental_update",
    "build_catalog_override",
    "build_page_override",
    "build_xref_and_trailer",
    "byterange_content",
    "compute_sig_rect",
    "extract_cms",
    "find_byteranges",
    "find_signature_byteranges",
    "find_prev_startxref",
    "get_page_dimensions",
    "insert_cms",
    "parse_pdf_date",
    "patch_byterange",
    "pdf_string",
    "prepare_pdf_with_sig_field",
    "resolve_page_index",
    "resolve_position",
    "signed_content",
    "verify_all_embedded_signatures",
    "verify_detached_signature",
    "verify_embedded_signature",
]
