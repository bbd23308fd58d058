"""Signing command handler for the padesign CLI."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from ...api import SignatureFormat
from ...constants import BYTES_PER_MB, PDF_WARN_SIZE, __version__
from ...core.pdf import SignaturePosition, resolve_position
from ...core.signing import SignatureMetadata, VisualSignatureConfig
from ...errors import ErrorKind
from ..helpers import (
    default_detached_output_path,
    default_output_path,
    format_size_kb,
    resolve_password,
    safe_read_file,
)
from ..workflows import SigningResult, sign_one, signing_time_inside_validity

if TYPE_CHECKING:
    from datetime import datetime

# Failures caused by the certificate itself; every remaining file would fail too
_FATAL_CODES = frozenset(
    {
        ErrorKind.INVALID_CERTIFICATE.value,
        ErrorKind.INVALID_PASSWORD.value,
        ErrorKind.CERTIFICATE_EXPIRED.value,
        ErrorKind.CERTIFICATE_NOT_YET_VALID.value,
    }
)


def _build_metadata(args: argparse.Namespace) -> SignatureMetadata | None:
    reason = getattr(args, "reason", None)
    location = getattr(args, "location", None)
    contact = getattr(args, "contact", None)
    if not (reason or location or contact):
        return None
    return SignatureMetadata(reason=reason, location=location, contact_info=contact)


def _build_visual(args: argparse.Namespace) -> VisualSignatureConfig | None:
    """Visible box settings from the command line; None for invisible."""
    if not getattr(args, "visible", False):
        return None

    x, y = args.x, args.y
    if args.position:
        position = resolve_position(args.position)
    elif x is not None and y is not None:
        position = SignaturePosition.CUSTOM
    else:
        position = SignaturePosition.BOTTOM_RIGHT

    return VisualSignatureConfig(
        enabled=True,
        page=args.page,
        position=position,
        x=x,
        y=y,
        width=args.width,
        height=args.height,
    )


def _sign_one_cli(
    pdf_path_str: str,
    output_path: str | None,
    pkcs12_bytes: bytes,
    password: str | None,
    signature_format: SignatureFormat,
    *,
    metadata: SignatureMetadata | None,
    visual: VisualSignatureConfig | None,
    signature_size: int | None,
    now: datetime | None,
) -> SigningResult:
    """Sign a single PDF and print progress."""
    pdf_path = Path(pdf_path_str)

    pdf_bytes = safe_read_file(pdf_path, "PDF")
    if pdf_bytes is None:
        return SigningResult(ok=False, error_message="File not found or unreadable")

    if len(pdf_bytes) > PDF_WARN_SIZE:
        size_mb = len(pdf_bytes) / BYTES_PER_MB
        print(f"  Warning: {pdf_path.name} is {size_mb:.0f} MB.", file=sys.stderr)

    if output_path:
        out = Path(output_path)
    elif signature_format is SignatureFormat.CMS:
        out = default_detached_output_path(pdf_path)
    else:
        out = default_output_path(pdf_path)

    print(f"  Signing {pdf_path.name} ({format_size_kb(len(pdf_bytes))})...", end=" ", flush=True)
    result = sign_one(
        pdf_bytes,
        out,
        pkcs12_bytes,
        password,
        signature_format=signature_format,
        metadata=metadata,
        visual=visual,
        signature_size=signature_size,
        now=now,
    )

    if result.ok:
        print(f"OK -> {out.name} ({format_size_kb(result.output_size)})")
    else:
        print("FAILED")
        print(f"Error [{result.error_code}]: {result.error_message}", file=sys.stderr)
    return result


def cmd_sign(args: argparse.Namespace) -> None:
    """Handle the 'sign' subcommand."""
    files = args.files
    if args.output and len(files) > 1:
        print("Error: -o/--output can only be used with a single input file.", file=sys.stderr)
        sys.exit(1)

    pkcs12_bytes = safe_read_file(Path(args.cert), "certificate")
    if pkcs12_bytes is None:
        sys.exit(1)
    password = resolve_password(args.password)

    signature_format = SignatureFormat(args.format)
    metadata = _build_metadata(args)
    visual = _build_visual(args)

    now = None
    if args.allow_expired:
        now = signing_time_inside_validity(pkcs12_bytes, password)
        if now is not None:
            print(
                "Warning: certificate is outside its validity window; "
                f"signing with time {now.isoformat()}",
                file=sys.stderr,
            )

    print(f"padesign v{__version__}")
    print(f"Format: {signature_format.value}")
    if visual is not None:
        print(f"Visible: page {visual.page}, {visual.position.value}")
    print()

    success = 0
    failed = 0
    for pdf_file in files:
        result = _sign_one_cli(
            pdf_file,
            args.output,
            pkcs12_bytes,
            password,
            signature_format,
            metadata=metadata,
            visual=visual,
            signature_size=args.signature_size,
            now=now,
        )
        if result.ok:
            success += 1
            continue
        failed += 1
        if result.error_code in _FATAL_CODES:
            remaining = len(files) - success - failed
            if remaining > 0:
                print(f"\n  Stopping: {remaining} file(s) skipped.", file=sys.stderr)
            break

    print()
    if failed:
        print(f"Done: {success} signed, {failed} failed.")
        sys.exit(1)
    print(f"Done: {success} signed.")
