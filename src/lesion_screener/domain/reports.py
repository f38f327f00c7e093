"""Domain models for exported reports."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ReportArtifact:
    """Exportable report bytes with delivery metadata."""

    data: bytes
    mime_type: str
    suggested_filename: str
    generated_at: datetime
