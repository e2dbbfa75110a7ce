"""Multipart form-data body builder for file uploads."""

import secrets
from collections.abc import Mapping
from io import BytesIO

from courier.errors import MultipartFinalizedError


_FILE_CONTENT_TYPE = "application/octet-stream"
_CRLF = b"\r\n"


def _escape_quotes(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class MultipartFile:
    """Writes form fields and files into a multipart body, in call order.

    The body can be produced once; after that the writer is closed.
    """

    def __init__(self) -> None:
        self._boundary = secrets.token_hex(16)
        self._buffer = BytesIO()
        self._finalized = False

    @property
    def boundary(self) -> str:
        """Multipart boundary token."""
        return self._boundary

    def add_file(self, field: str, filename: str, data: bytes) -> None:
        """Add a file part.

        Args:
            field: Form field name.
            filename: File name sent to the server.
            data: File content.

        Raises:
            MultipartFinalizedError: If the body was already produced.
        """
        disposition = (
            f'form-data; name="{_escape_quotes(field)}"; '
            f'filename="{_escape_quotes(filename)}"'
        )
        self._write_part(disposition, data, content_type=_FILE_CONTENT_TYPE)

    def add_fields(self, fields: Mapping[str, str]) -> None:
        """Add plain form fields.

        Raises:
            MultipartFinalizedError: If the body was already produced.
        """
        for key, value in fields.items():
            disposition = f'form-data; name="{_escape_quotes(key)}"'
            self._write_part(disposition, value.encode("utf-8"))

    def form_data_content_type(self) -> str:
        """Content-Type header value, including the boundary."""
        return f"multipart/form-data; boundary={self._boundary}"

    def bytes(self) -> bytes:
        """Close the writer and return the encoded body.

        Raises:
            MultipartFinalizedError: If called more than once.
        """
        self._ensure_open()
        self._finalized = True
        self._buffer.write(f"--{self._boundary}--".encode("ascii") + _CRLF)
        return self._buffer.getvalue()

    def _write_part(
        self,
        disposition: str,
        data: bytes,
        content_type: str | None = None,
    ) -> None:
        self._ensure_open()
        lines = [
            f"--{self._boundary}",
            f"Content-Disposition: {disposition}",
        ]
        if content_type:
            lines.append(f"Content-Type: {content_type}")
        header = "\r\n".join(lines).encode("utf-8")
        self._buffer.write(header + _CRLF + _CRLF + data + _CRLF)

    def _ensure_open(self) -> None:
        if self._finalized:
            raise MultipartFinalizedError
