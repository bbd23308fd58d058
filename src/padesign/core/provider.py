"""One-time cryptographic provider initialization.

The ``cryptography`` OpenSSL backend is process-wide.  Every public entry
point calls :func:`ensure_crypto_provider_initialized` before first use;
the check runs once and is read-only afterwards.
"""

from __future__ import annotations

__all__ = ["ensure_crypto_provider_initialized", "is_crypto_provider_initialized"]

import logging
import threading

from ..errors import PadesignError

_logger = logging.getLogger(__name__)

_lock = threading.Lock()
_initialized = False

# Odd 521-bit modulus; loading it exercises the backend RSA key path
_SELF_TEST_MODULUS = 2**521 - 1


def is_crypto_provider_initialized() -> bool:
    """Return True once the provider check has succeeded in this process."""
    return _initialized


def ensure_crypto_provider_initialized() -> None:
    """Verify the crypto backend can do RSA/SHA-256, once per process.

    Safe to call from any thread and any number of times.

    Raises:
        PadesignError: If the backend is unusable (broken OpenSSL build).
    """
    global _initialized
    if _initialized:
        return
    with _lock:
        if _initialized:
            return
        try:
            from cryptography.exceptions import UnsupportedAlgorithm
            from cryptography.hazmat import backends
            from cryptography.hazmat.primitives import hashes
            from cryptography.hazmat.primitives.asymmetric import rsa
        except ImportError as exc:
            raise PadesignError(f"Cryptographic provider initialization failed: {exc}") from exc
        try:
            backend = backends.default_backend()
            digest = hashes.Hash(hashes.SHA256())
            digest.update(b"padesign")
            digest.finalize()
            rsa.RSAPublicNumbers(65537, _SELF_TEST_MODULUS).public_key()
            version = backend.openssl_version_text()
        except (UnsupportedAlgorithm, AttributeError, ValueError) as exc:
            raise PadesignError(f"Cryptographic provider initialization failed: {exc}") from exc
        _logger.debug("Crypto provider ready: %s", version)
        _initialized = True
