"""
Verification and inspection command handlers.

cmd_verify checks a detached .p7s or the last embedded signature locally.
cmd_info and cmd_cert_info inspect signature and certificate files.
cmd_remote_verify submits a document to the ITI verification service.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from ...api import verify
from ...core.certificates import inspect_certificate
from ...core.cms import inspect_signer
from ...network import ItiVerifier
from ..helpers import default_detached_output_path, resolve_password, safe_read_file
from ..workflows import format_verify_results

if TYPE_CHECKING:
    import argparse


def _print_lines(lines: list[str], indent: str = "  ") -> None:
    for line in lines:
        print(f"{indent}{line}")


def cmd_verify(args: argparse.Namespace) -> None:
    """Verify a detached signature, or the last embedded one when there is no .p7s."""
    pdf_path = Path(args.pdf)
    pdf_bytes = safe_read_file(pdf_path, "PDF")
    if pdf_bytes is None:
        sys.exit(1)

    sig_bytes = None
    if args.signature:
        sig_bytes = safe_read_file(Path(args.signature), "signature")
        if sig_bytes is None:
            sys.exit(1)
    else:
        default_sig = default_detached_output_path(pdf_path)
        if default_sig.is_file():
            sig_bytes = safe_read_file(default_sig, "signature")

    if sig_bytes is None:
        print(f"Verifying embedded signature in {pdf_path.name}...")
    else:
        print(f"Verifying {pdf_path.name} against its detached signature...")

    result = verify(pdf_bytes, sig_bytes)
    entry = format_verify_results([result]).entries[0]
    _print_lines(entry.detail_lines)
    if not result["valid"]:
        sys.exit(1)


def cmd_info(args: argparse.Namespace) -> None:
    """Show the signer summary of a CMS signature file."""
    sig_path = Path(args.signature)
    sig_bytes = safe_read_file(sig_path, "signature")
    if sig_bytes is None:
        sys.exit(1)

    summary = inspect_signer(sig_bytes)
    print(f"Signature: {sig_path.name} ({summary['cms_size']} bytes)")
    if summary["subject"] is None:
        _print_lines(summary["details"])
        sys.exit(1)

    print(f"  Signer:       {summary['name'] or 'Unknown'}")
    if summary["organization"]:
        print(f"  Organization: {summary['organization']}")
    if summary["national_id"]:
        print(f"  National ID:  {summary['national_id']}")
    print(f"  Subject:      {summary['subject']}")
    print(f"  Issuer:       {summary['issuer']}")
    print(f"  Serial:       {summary['serial_number']}")
    print(f"  Digest:       {summary['digest_algorithm']}")
    if summary["signing_time"] is not None:
        print(f"  Signed at:    {summary['signing_time'].isoformat()}")
    print(f"  Certificates: {summary['certificate_count']}")


def cmd_cert_info(args: argparse.Namespace) -> None:
    """Show the details of a PKCS#12 certificate container."""
    cert_path = Path(args.cert)
    pkcs12_bytes = safe_read_file(cert_path, "certificate")
    if pkcs12_bytes is None:
        sys.exit(1)

    info = inspect_certificate(pkcs12_bytes, resolve_password(args.password))
    if not info.valid:
        print(f"Error: {info.error}", file=sys.stderr)
        sys.exit(1)

    print(f"Certificate: {cert_path.name}")
    print(f"  Name:      {info.common_name or 'Unknown'}")
    print(f"  Subject:   {info.subject}")
    print(f"  Issuer:    {info.issuer}")
    print(f"  Serial:    {info.serial_number}")
    print(f"  Algorithm: {info.algorithm}")
    if info.not_before is not None and info.not_after is not None:
        print(f"  Valid:     {info.not_before.isoformat()} - {info.not_after.isoformat()}")
    if info.expired:
        print("  Status:    EXPIRED")
    else:
        print(f"  Status:    valid, {info.days_until_expiry} day(s) left")


def cmd_remote_verify(args: argparse.Namespace) -> None:
    """Submit a signed PDF (or PDF plus .p7s) to the verification service."""
    doc_path = Path(args.file)
    doc_bytes = safe_read_file(doc_path, "document")
    if doc_bytes is None:
        sys.exit(1)

    verifier = ItiVerifier(timeout=args.timeout, staging=args.staging or None)
    print(f"Submitting {doc_path.name} to {verifier.url}...")

    if args.signature:
        sig_path = Path(args.signature)
        sig_bytes = safe_read_file(sig_path, "signature")
        if sig_bytes is None:
            sys.exit(1)
        response = verifier.verify_detached_signature(
            sig_bytes, doc_bytes, signature_filename=sig_path.name, document_filename=doc_path.name
        )
    else:
        response = verifier.verify_embedded_signature(doc_bytes, filename=doc_path.name)

    print(f"  {response}")
    if not response.ok:
        sys.exit(1)
