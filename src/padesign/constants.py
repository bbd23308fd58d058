"""
Application-wide constants for padesign.

Placeholder sizes, appearance defaults, timeouts, and other magic numbers
are centralized here for easy maintenance and configuration.
"""

from __future__ import annotations

import importlib.metadata

try:
    __version__ = importlib.metadata.version("padesign")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.3.0"

__all__ = [
    "BYTES_PER_MB",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_BACKOFF",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_SIGNATURE_SIZE",
    "DEFAULT_TIMEOUT_VERIFIER",
    "ENV_PASSWORD",
    "ENV_SIGNATURE_SIZE",
    "ENV_VERIFIER_STAGING",
    "ENV_VERIFIER_TIMEOUT",
    "ENV_VERIFIER_URL",
    "MAX_RESPONSE_SIZE",
    "MAX_SIGNATURE_SIZE",
    "MAX_TIMEOUT",
    "MIN_SIGNATURE_SIZE",
    "MIN_TIMEOUT",
    "PDF_MAGIC",
    "PDF_WARN_SIZE",
    "RECV_BUFFER_SIZE",
    "SIG_FILTER",
    "SIG_SUBFILTER",
    "VERIFIER_PRODUCTION_URL",
    "VERIFIER_STAGING_URL",
    "__version__",
]

# ── Signature container ───────────────────────────────────────────────

# Bytes reserved for the CMS blob inside /Contents (hex doubles this).
# A leaf plus two intermediates stays well under this; longer chains
# should pass a larger signature_size.
DEFAULT_SIGNATURE_SIZE = 32768

# Accepted range for caller/env overrides
MIN_SIGNATURE_SIZE = 1024
MAX_SIGNATURE_SIZE = 1024 * 1024

# Signature dictionary filter entries for PAdES-B
SIG_FILTER = "Adobe.PPKLite"
SIG_SUBFILTER = "ETSI.CAdES.detached"


# ── Timeout values (seconds) ──────────────────────────────────────────

# Remote verification service timeout
DEFAULT_TIMEOUT_VERIFIER = 30

MIN_TIMEOUT = 1
MAX_TIMEOUT = 3600


# ── Size units ────────────────────────────────────────────────────────

BYTES_PER_MB = 1024 * 1024


# ── Size limits (bytes) ───────────────────────────────────────────────

# Maximum response body accepted from the verification service (50 MB)
MAX_RESPONSE_SIZE = 50 * 1024 * 1024

# Read chunk size for HTTP responses
RECV_BUFFER_SIZE = 8192

# Documents are held fully in memory; warn above this size (100 MB)
PDF_WARN_SIZE = 100 * 1024 * 1024


# ── Retry configuration ───────────────────────────────────────────────

DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_RETRY_BACKOFF = 2.0


# ── Verification service ──────────────────────────────────────────────

VERIFIER_PRODUCTION_URL = "https://verificador.iti.gov.br/report"
VERIFIER_STAGING_URL = "https://verificador.staging.iti.br/report"


# ── Environment variable names ────────────────────────────────────────

ENV_SIGNATURE_SIZE = "PADESIGN_SIGNATURE_SIZE"
ENV_VERIFIER_URL = "PADESIGN_VERIFIER_URL"
ENV_VERIFIER_STAGING = "PADESIGN_VERIFIER_STAGING"
ENV_VERIFIER_TIMEOUT = "PADESIGN_VERIFIER_TIMEOUT"
ENV_PASSWORD = "PADESIGN_PASSWORD"


# ── Document defaults ─────────────────────────────────────────────────

# PDF file magic bytes
PDF_MAGIC = b"%PDF-"
