"""Request and response models for the HTTP API."""

from uuid import UUID

from pydantic import BaseModel

from lesion_screener.domain.consent import ConsentRecord
from lesion_screener.domain.predictions import CalibratedPrediction, is_low_confidence
from lesion_screener.domain.sessions import Session


class ConsentPayload(BaseModel):
    """Acknowledgements submitted from the consent dialog."""

    terms: bool = False
    privacy: bool = False
    limitations: bool = False

    def to_record(self) -> ConsentRecord:
        return ConsentRecord(
            terms=self.terms, privacy=self.privacy, limitations=self.limitations
        )


class PredictionView(BaseModel):
    """Calibrated prediction as rendered by the UI."""

    class_id: str
    label: str
    description: str
    confidence: float
    band: str

    @classmethod
    def from_prediction(cls, prediction: CalibratedPrediction) -> "PredictionView":
        return cls(
            class_id=prediction.class_id,
            label=prediction.label,
            description=prediction.description,
            confidence=prediction.confidence,
            band=prediction.band.value,
        )


class SessionView(BaseModel):
    """Public snapshot of the active session."""

    id: UUID
    generation: int
    phase: str
    consent: ConsentPayload | None
    error: str | None
    predictions: list[PredictionView]
    low_confidence: bool
    has_image: bool
    has_aux_visual: bool

    @classmethod
    def from_session(cls, session: Session) -> "SessionView":
        consent = None
        if session.consent is not None:
            consent = ConsentPayload(
                terms=session.consent.terms,
                privacy=session.consent.privacy,
                limitations=session.consent.limitations,
            )
        return cls(
            id=session.id,
            generation=session.generation,
            phase=session.phase.value,
            consent=consent,
            error=session.error.value if session.error else None,
            predictions=[
                PredictionView.from_prediction(item) for item in session.predictions
            ],
            low_confidence=is_low_confidence(session.predictions),
            has_image=session.image is not None,
            has_aux_visual=session.aux_visual is not None,
        )
