"""Opaque image handles passed between the UI and the core."""

import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class ImageHandle:
    """Acquired image bytes with their content type."""

    data: bytes
    content_type: str

    @property
    def is_empty(self) -> bool:
        """Return True when the handle carries no image data."""
        return not self.data

    def to_data_url(self) -> str:
        """Encode the image as a base64 data URL."""
        encoded = base64.b64encode(self.data).decode("utf-8")
        return f"data:{self.content_type};base64,{encoded}"

    @classmethod
    def from_bytes(cls, data: bytes, content_type: str | None = None) -> "ImageHandle":
        """Build a handle, sniffing the content type when none is given."""
        return cls(data=data, content_type=content_type or sniff_content_type(data))


def sniff_content_type(data: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
