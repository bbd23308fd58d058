"""Core signing, certificate, and PDF operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import PadesignError
from .provider import ensure_crypto_provider_initialized, is_crypto_provider_initialized

if TYPE_CHECKING:
    import types

__all__ = [
    "ensure_crypto_provider_initialized",
    "is_crypto_provider_initialized",
    "require_pikepdf",
]


def require_pikepdf() -> types.ModuleType:
    """Lazily import pikepdf to avoid loading the C extension at startup.

    pikepdf is a required dependency; this defers the import for
    startup performance, not optionality.
    """
    try:
        import pikepdf
    except ImportError as exc:
        raise PadesignError(
            "pikepdf is required for this operation.\nInstall with: pip install pikepdf"
        ) from exc
    else:
        return pikepdf
