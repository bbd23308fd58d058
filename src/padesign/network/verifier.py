"""
Client for the ITI Verificador report service.

The service validates ICP-Brasil signatures and returns a JSON report.
Requests are ``multipart/form-data`` POSTs; the report body is returned
as-is for the caller to interpret.
"""

from __future__ import annotations

__all__ = ["ItiVerifier", "ServiceResponse"]

import logging
import uuid
from dataclasses import dataclass

from ..config import get_verifier_config
from .transport import http_post

_logger = logging.getLogger(__name__)

_CRLF = b"\r\n"

# Markers that appear in a report approving at least one signature
_APPROVAL_MARKERS = ('"aprovado"', '"valido"', '"valid"')


@dataclass(frozen=True)
class ServiceResponse:
    """Raw response of the verification service."""

    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def signature_valid(self) -> bool:
        """Rough approval check on the JSON report; parse ``body`` for detail."""
        return self.ok and any(marker in self.body for marker in _APPROVAL_MARKERS)

    def __str__(self) -> str:
        preview = self.body if len(self.body) <= 200 else self.body[:200] + "..."
        return f"HTTP {self.status_code} ({'ok' if self.ok else 'error'}): {preview}"


def _quote(filename: str) -> str:
    return filename.replace("\\", "\\\\").replace('"', '\\"')


class _MultipartBody:
    """Incremental builder for a multipart/form-data request body."""

    def __init__(self) -> None:
        self.boundary = "----Boundary" + uuid.uuid4().hex
        self._parts: list[bytes] = []

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def field(self, name: str, value: str) -> None:
        self._parts.append(
            f"--{self.boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
            f"{value}\r\n".encode()
        )

    def file(self, name: str, filename: str, data: bytes, content_type: str) -> None:
        header = (
            f"--{self.boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"; filename="{_quote(filename)}"\r\n'
            f"Content-Type: {content_type}\r\n\r\n"
        ).encode()
        self._parts.append(header + data + _CRLF)

    def finish(self) -> bytes:
        return b"".join(self._parts) + f"--{self.boundary}--\r\n".encode()


class ItiVerifier:
    """
    ITI Verificador client.

    Args:
        url: Report endpoint.  Defaults to configuration (production unless
            staging is selected).
        timeout: Socket timeout in seconds.  Defaults to configuration.
        staging: Use the staging endpoint when *url* is not given.
    """

    def __init__(
        self, url: str | None = None, timeout: int | None = None, staging: bool | None = None
    ) -> None:
        config = get_verifier_config(url=url, timeout=timeout, staging=staging)
        self.url = config.url
        self.timeout = config.timeout

    def _post(self, body: _MultipartBody) -> ServiceResponse:
        payload = body.finish()
        response = http_post(
            self.url,
            payload,
            headers={"Content-Type": body.content_type, "Accept": "application/json"},
            timeout=self.timeout,
        )
        result = ServiceResponse(response.status, response.body.decode("utf-8", errors="replace"))
        _logger.info("Verification service %s answered HTTP %d", self.url, result.status_code)
        return result

    def verify_detached_signature(
        self,
        signature_bytes: bytes,
        document_bytes: bytes,
        signature_filename: str = "document.pdf.p7s",
        document_filename: str = "document.pdf",
    ) -> ServiceResponse:
        """Submit a detached .p7s together with the document it signs.

        Raises:
            ExternalServiceUnavailable: If the service cannot be reached.
        """
        body = _MultipartBody()
        body.field("report_type", "json")
        body.file(
            "signature_files[]", signature_filename, signature_bytes, "application/octet-stream"
        )
        body.file("detached_files[]", document_filename, document_bytes, "application/pdf")
        body.field("verify_incremental_updates", "true")
        return self._post(body)

    def verify_embedded_signature(
        self, signed_pdf_bytes: bytes, filename: str = "document_signed.pdf"
    ) -> ServiceResponse:
        """Submit a PDF carrying embedded signatures.

        Raises:
            ExternalServiceUnavailable: If the service cannot be reached.
        """
        body = _MultipartBody()
        body.field("report_type", "json")
        body.file("signature_files[]", filename, signed_pdf_bytes, "application/pdf")
        body.field("verify_incremental_updates", "true")
        return self._post(body)
