"""
Command-line interface for padesign.

Argument parsing, dispatch, and the multi-signature check.
Signing lives in ``sign``; verification and inspection in ``verify``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ...api import SignatureFormat
from ...constants import __version__
from ...core.pdf import SIG_HEIGHT, SIG_WIDTH, verify_all_embedded_signatures
from ...errors import PadesignError
from ..helpers import format_size_kb, print_error, safe_read_file
from ..workflows import format_verify_results
from .sign import cmd_sign
from .verify import cmd_cert_info, cmd_info, cmd_remote_verify, cmd_verify

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _cmd_check(args: argparse.Namespace) -> None:
    """Check all embedded PDF signatures."""
    pdf_path = Path(args.pdf)
    pdf_bytes = safe_read_file(pdf_path, "PDF")
    if pdf_bytes is None:
        sys.exit(1)

    print(f"Checking {pdf_path.name} ({format_size_kb(len(pdf_bytes))})...")

    vr = format_verify_results(verify_all_embedded_signatures(pdf_bytes))

    for entry in vr.entries:
        if vr.total_count > 1:
            print(f"\n  Signature {entry.index + 1}/{entry.total} ({entry.signer_name}):")
            indent = "    "
        else:
            indent = "  "
        for line in entry.detail_lines:
            print(f"{indent}{line}")

    print()
    if vr.all_valid:
        sig_word = "signature" if vr.total_count == 1 else f"all {vr.total_count} signatures"
        print(f"  RESULT: {sig_word.capitalize()} VALID")
    else:
        print(f"  RESULT: {vr.failed_count} of {vr.total_count} signature(s) FAILED")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="padesign",
        description="Sign and verify PDF documents with PAdES and CMS signatures.",
        epilog=(
            "Environment variables:\n"
            "  PADESIGN_PASSWORD           Certificate password\n"
            "  PADESIGN_SIGNATURE_SIZE     Bytes reserved for the embedded signature\n"
            "  PADESIGN_VERIFIER_URL       Verification service endpoint\n"
            "  PADESIGN_VERIFIER_STAGING   Use the staging verification service\n"
            "  PADESIGN_VERIFIER_TIMEOUT   Verification service timeout in seconds\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-V", "--version", action="version", version=f"padesign {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=False, help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # sign
    p_sign = sub.add_parser("sign", help="Sign PDF document(s)")
    p_sign.add_argument("files", nargs="+", help="PDF file(s) to sign")
    p_sign.add_argument("-c", "--cert", required=True, help="PKCS#12 certificate (.p12/.pfx)")
    p_sign.add_argument(
        "-p", "--password", default=None, help="Certificate password (default: PADESIGN_PASSWORD)"
    )
    p_sign.add_argument(
        "--format",
        choices=[f.value for f in SignatureFormat],
        default=SignatureFormat.PADES.value,
        help="pades: embedded signature (default); cms: detached .p7s",
    )
    p_sign.add_argument("-o", "--output", help="Output file path (single file only)")
    p_sign.add_argument("--reason", default=None, help="Reason for signing")
    p_sign.add_argument("--location", default=None, help="Signing location")
    p_sign.add_argument("--contact", default=None, help="Signer contact information")
    p_sign.add_argument(
        "--visible", action="store_true", default=False, help="Draw a visible signature box"
    )
    p_sign.add_argument("--page", type=int, default=1, help="1-based page for the box")
    p_sign.add_argument(
        "--position",
        default=None,
        help=(
            "Box position: bottom-right (br, default), bottom-left (bl), "
            "top-right (tr), top-left (tl), custom (with --x/--y)"
        ),
    )
    p_sign.add_argument("--x", type=float, default=None, help="Box left edge in points")
    p_sign.add_argument("--y", type=float, default=None, help="Box bottom edge in points")
    p_sign.add_argument("--width", type=float, default=SIG_WIDTH, help="Box width in points")
    p_sign.add_argument("--height", type=float, default=SIG_HEIGHT, help="Box height in points")
    p_sign.add_argument(
        "--signature-size",
        type=int,
        default=None,
        help="Bytes reserved for the embedded signature (default: 32768)",
    )
    p_sign.add_argument(
        "--allow-expired",
        action="store_true",
        default=False,
        help="Sign with a certificate outside its validity window (warns)",
    )

    # verify
    p_verify = sub.add_parser("verify", help="Verify a detached or embedded signature")
    p_verify.add_argument("pdf", help="PDF file")
    p_verify.add_argument("-s", "--signature", help="Signature file (default: <pdf>.p7s if present)")

    # check
    p_check = sub.add_parser("check", help="Check all embedded PDF signatures")
    p_check.add_argument("pdf", help="Signed PDF file")

    # info
    p_info = sub.add_parser("info", help="Show signature file details")
    p_info.add_argument("signature", help="CMS signature file (.p7s)")

    # cert-info
    p_cert = sub.add_parser("cert-info", help="Show certificate container details")
    p_cert.add_argument("cert", help="PKCS#12 certificate (.p12/.pfx)")
    p_cert.add_argument("-p", "--password", default=None, help="Certificate password")

    # remote-verify
    p_remote = sub.add_parser("remote-verify", help="Verify with the ITI verification service")
    p_remote.add_argument("file", help="Signed PDF, or original PDF with -s")
    p_remote.add_argument("-s", "--signature", help="Detached signature file (.p7s)")
    p_remote.add_argument(
        "--staging", action="store_true", default=False, help="Use the staging service"
    )
    p_remote.add_argument("--timeout", type=int, default=None, help="Timeout in seconds")

    return parser


_COMMANDS = {
    "sign": cmd_sign,
    "verify": cmd_verify,
    "check": _cmd_check,
    "info": cmd_info,
    "cert-info": cmd_cert_info,
    "remote-verify": cmd_remote_verify,
}


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=_LOG_FORMAT,
    )

    handler = _COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        handler(args)
    except PadesignError as e:
        print_error(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
