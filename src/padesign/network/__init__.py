"""HTTPS transport and the remote verification service client."""

from __future__ import annotations

from .transport import HttpResponse, http_post
from .verifier import ItiVerifier, ServiceResponse

__all__ = ["HttpResponse", "ItiVerifier", "ServiceResponse", "http_post"]
