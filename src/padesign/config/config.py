"""
Runtime configuration for padesign.

Resolves overridable defaults from environment variables.  Nothing is
persisted: padesign never writes a preferences file.

Priority: explicit argument > env var > built-in default.
"""

from __future__ import annotations

__all__ = [
    "VerifierConfig",
    "get_signature_size",
    "get_verifier_config",
]

import logging
import os
from dataclasses import dataclass

from ..constants import (
    DEFAULT_SIGNATURE_SIZE,
    DEFAULT_TIMEOUT_VERIFIER,
    ENV_SIGNATURE_SIZE,
    ENV_VERIFIER_STAGING,
    ENV_VERIFIER_TIMEOUT,
    ENV_VERIFIER_URL,
    MAX_SIGNATURE_SIZE,
    MAX_TIMEOUT,
    MIN_SIGNATURE_SIZE,
    MIN_TIMEOUT,
    VERIFIER_PRODUCTION_URL,
    VERIFIER_STAGING_URL,
)
from ..errors import ConfigError

_logger = logging.getLogger(__name__)

_TRUTHY = frozenset(("1", "true", "yes", "on"))


@dataclass(frozen=True)
class VerifierConfig:
    """Resolved endpoint settings for the remote verification service."""

    url: str
    timeout: int


def _env_int(name: str, default: int, low: int, high: int) -> int:
    """Read an integer env var, falling back to *default* on bad values."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        _logger.warning("Invalid %s value %r, using default", name, raw)
        return default
    if value < low or value > high:
        _logger.warning(
            "%s=%d out of range [%d, %d], using default",
            name,
            value,
            low,
            high,
        )
        return default
    return value


# ── Signature container ──────────────────────────────────────────────


def get_signature_size(explicit: int | None = None) -> int:
    """Resolve the placeholder size in bytes.

    Args:
        explicit: Caller-supplied size. Validated strictly: an out-of-range
            explicit value is a caller bug, not something to paper over.

    Raises:
        ConfigError: If *explicit* is outside the accepted range.
    """
    if explicit is not None:
        if explicit < MIN_SIGNATURE_SIZE or explicit > MAX_SIGNATURE_SIZE:
            raise ConfigError(
                f"Signature size must be between {MIN_SIGNATURE_SIZE} and "
                f"{MAX_SIGNATURE_SIZE} bytes, got {explicit}"
            )
        return explicit
    return _env_int(
        ENV_SIGNATURE_SIZE, DEFAULT_SIGNATURE_SIZE, MIN_SIGNATURE_SIZE, MAX_SIGNATURE_SIZE
    )


# ── Verification service ─────────────────────────────────────────────


def get_verifier_config(
    url: str | None = None,
    timeout: int | None = None,
    staging: bool | None = None,
) -> VerifierConfig:
    """
    Resolve the verification service URL and timeout.

    Args:
        url: Explicit endpoint. Wins over everything else.
        timeout: Explicit timeout in seconds.
        staging: Use the staging endpoint. If None, reads the env flag.

    Returns:
        VerifierConfig with the effective url and timeout.

    Raises:
        ConfigError: If an explicit timeout is out of range.
    """
    if timeout is not None and (timeout < MIN_TIMEOUT or timeout > MAX_TIMEOUT):
        raise ConfigError(
            f"Timeout must be between {MIN_TIMEOUT} and {MAX_TIMEOUT} seconds, got {timeout}"
        )

    if not url:
        url = os.environ.get(ENV_VERIFIER_URL, "").strip()

    if not url:
        if staging is None:
            staging = os.environ.get(ENV_VERIFIER_STAGING, "").strip().lower() in _TRUTHY
        url = VERIFIER_STAGING_URL if staging else VERIFIER_PRODUCTION_URL

    if timeout is None:
        timeout = _env_int(ENV_VERIFIER_TIMEOUT, DEFAULT_TIMEOUT_VERIFIER, MIN_TIMEOUT, MAX_TIMEOUT)

    return VerifierConfig(url=url, timeout=timeout)
