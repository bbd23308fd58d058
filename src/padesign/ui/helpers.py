"""
Common CLI helper functions for padesign.

File access, output naming and password resolution shared by the
subcommands.
"""

from __future__ import annotations

import getpass
import os
import sys
import tempfile
from pathlib import Path

from ..constants import ENV_PASSWORD
from ..errors import PadesignError

__all__ = [
    "atomic_write",
    "default_detached_output_path",
    "default_output_path",
    "format_size_kb",
    "print_error",
    "resolve_password",
    "safe_read_file",
]

_BYTES_PER_KB = 1024


def format_size_kb(size_bytes: int) -> str:
    """Format a byte count as a human-readable KB string (e.g. '123.4 KB')."""
    return f"{size_bytes / _BYTES_PER_KB:.1f} KB"


def default_output_path(pdf_path: Path) -> Path:
    """Default output path for a signed PDF: '<stem>_signed.pdf'."""
    return pdf_path.with_name(f"{pdf_path.stem}_signed.pdf")


def default_detached_output_path(pdf_path: Path) -> Path:
    """Default output path for a detached signature: '<name>.pdf.p7s'."""
    return pdf_path.with_name(f"{pdf_path.stem}.pdf.p7s")


def safe_read_file(path: Path, kind: str = "file") -> bytes | None:
    """
    Read a file with uniform error handling.

    Args:
        path: Path to the file to read.
        kind: Descriptive name for error messages (e.g., "PDF", "certificate").

    Returns:
        File contents, or None if the file doesn't exist or can't be read
        (an error line has been printed to stderr).
    """
    if not path.is_file():
        print(f"Error: {kind} not found: {path}", file=sys.stderr)
        return None

    try:
        return path.read_bytes()
    except OSError as e:
        print(f"Error reading {kind}: {e}", file=sys.stderr)
        return None


def resolve_password(explicit: str | None, *, interactive: bool = True) -> str | None:
    """Resolve the certificate password.

    Priority: explicit argument > ``PADESIGN_PASSWORD`` > interactive prompt.
    Returns None when nothing was supplied and prompting is not possible.
    """
    if explicit:
        return explicit
    env_value = os.environ.get(ENV_PASSWORD, "")
    if env_value:
        return env_value
    if not interactive or not sys.stdin.isatty():
        return None
    try:
        return getpass.getpass("Certificate password: ")
    except (EOFError, KeyboardInterrupt):
        print()
        return None


def atomic_write(path: Path, data: bytes) -> None:
    """Write data to a file atomically using temp file + rename.

    An interrupted write never leaves a truncated output file behind.
    """
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        os.write(fd, data)
        os.fsync(fd)
        os.close(fd)
        fd = -1
        tmp.replace(path)
    except BaseException:
        if fd >= 0:
            os.close(fd)
        tmp.unlink(missing_ok=True)
        raise


def print_error(error: PadesignError) -> None:
    """Print an error as ``Error [CODE]: message`` to stderr."""
    print(f"Error [{error.code.value}]: {error}", file=sys.stderr)
