"""Models for raw model scores and calibrated predictions."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

from lesion_screener.domain.images import ImageHandle

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.6


class RawScore(BaseModel):
    """Unnormalized per-class weight returned by an inference backend."""

    class_id: str
    weight: float = Field(ge=0.0)


class InferenceResult(BaseModel):
    """Structured output of a single backend analysis."""

    scores: list[RawScore]
    aux_visual: ImageHandle | None = None


class ConfidenceBand(Enum):
    """Coarse confidence buckets shown next to the top prediction."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def for_confidence(cls, confidence: float) -> "ConfidenceBand":
        if confidence >= HIGH_CONFIDENCE:
            return cls.HIGH
        if confidence >= MEDIUM_CONFIDENCE:
            return cls.MEDIUM
        return cls.LOW


@dataclass(frozen=True)
class CalibratedPrediction:
    """User-presentable prediction with a calibrated confidence."""

    class_id: str
    label: str
    description: str
    confidence: float

    @property
    def band(self) -> ConfidenceBand:
        return ConfidenceBand.for_confidence(self.confidence)


def is_low_confidence(predictions: list[CalibratedPrediction]) -> bool:
    """Return True when the top prediction falls below medium confidence."""
    return bool(predictions) and predictions[0].confidence < MEDIUM_CONFIDENCE


def is_sorted_descending(predictions: list[CalibratedPrediction]) -> bool:
    """Return True when confidences never increase along the sequence."""
    return all(
        earlier.confidence >= later.confidence
        for earlier, later in zip(predictions, predictions[1:], strict=False)
    )
