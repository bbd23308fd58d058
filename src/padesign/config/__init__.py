"""
Runtime configuration.

Import from this package directly rather than from its submodules.
"""

from __future__ import annotations

from .config import VerifierConfig, get_signature_size, get_verifier_config

__all__ = [
    "VerifierConfig",
    "get_signature_size",
    "get_verifier_config",
]
