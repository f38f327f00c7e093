"""Domain models for the screening session."""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from lesion_screener.domain.consent import ConsentRecord
from lesion_screener.domain.images import ImageHandle
from lesion_screener.domain.predictions import CalibratedPrediction


class SessionPhase(Enum):
    """Phases of the screening state machine."""

    AWAITING_CONSENT = "awaiting_consent"
    READY = "ready"
    CAPTURING = "capturing"
    ANALYZING = "analyzing"
    RESULTS = "results"
    ERROR = "error"


class ErrorKind(Enum):
    """Named failure conditions surfaced by the core."""

    ILLEGAL_TRANSITION = "illegal_transition"
    SESSION_BUSY = "session_busy"
    INVALID_IMAGE = "invalid_image"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    BACKEND_TIMEOUT = "backend_timeout"
    NO_SCORES = "no_scores"
    DEGENERATE_SCORES = "degenerate_scores"
    ASSEMBLY_FAILED = "assembly_failed"


@dataclass(frozen=True)
class Session:
    """Snapshot of the single active screening session."""

    id: UUID
    generation: int
    phase: SessionPhase
    consent: ConsentRecord | None = None
    image: ImageHandle | None = None
    aux_visual: ImageHandle | None = None
    predictions: list[CalibratedPrediction] = field(default_factory=list)
    error: ErrorKind | None = None
