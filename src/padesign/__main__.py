"""
Entry point for `python -m padesign`.

Usage:
    python -m padesign sign document.pdf -c cert.p12
    python -m padesign verify document_signed.pdf
    python -m padesign cert-info cert.p12
"""

from .ui.cli import main

main()
