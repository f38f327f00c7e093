"""Session state machine for consent, acquisition, analysis and results."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from uuid import UUID, uuid4

from pydantic import ValidationError

from lesion_screener.domain.catalog import HAM10000_CATALOG, ClassCatalog
from lesion_screener.domain.consent import ConsentRecord
from lesion_screener.domain.images import ImageHandle
from lesion_screener.domain.predictions import InferenceResult
from lesion_screener.domain.reports import ReportArtifact
from lesion_screener.domain.sessions import ErrorKind, Session, SessionPhase
from lesion_screener.errors import (
    AssemblyFailed,
    BackendTimeout,
    IllegalTransition,
    InvalidImage,
    ScreeningError,
    SessionBusy,
)
from lesion_screener.services.calibration import DEFAULT_FLOOR, calibrate
from lesion_screener.services.inference import CancelToken, InferenceBackend
from lesion_screener.services.reports import ReportAssembler

_logger = logging.getLogger(__name__)

_RESETTABLE = {SessionPhase.RESULTS, SessionPhase.ERROR, SessionPhase.ANALYZING}


@dataclass
class SessionController:
    """Owns the single active session and sequences every transition.

    Transitions are synchronous; the backend call is the only suspension
    point and runs as a task tagged with the generation that started it.
    Every acquire and reset bumps the generation, and a backend outcome
    whose generation is no longer current is dropped.
    """

    backend: InferenceBackend
    report_assembler: ReportAssembler
    calibration_floor: float = DEFAULT_FLOOR
    max_predictions: int | None = None
    catalog: ClassCatalog = field(default=HAM10000_CATALOG)
    backend_timeout_seconds: float | None = 30.0
    id_factory: Callable[[], UUID] = field(default=uuid4)
    _session: Session = field(init=False)
    _cancel_token: CancelToken | None = field(init=False, default=None)
    _tasks: set[asyncio.Task[None]] = field(init=False, default_factory=set)

    def __post_init__(self) -> None:
        self._session = Session(
            id=self.id_factory(),
            generation=0,
            phase=SessionPhase.AWAITING_CONSENT,
        )

    @property
    def session(self) -> Session:
        """Return the current session snapshot."""
        return self._session

    @property
    def consent(self) -> ConsentRecord | None:
        return self._session.consent

    def submit_consent(self, record: ConsentRecord) -> Session:
        """Record consent and unlock acquisition when fully granted."""
        self._require("submit_consent", SessionPhase.AWAITING_CONSENT)
        if not record.granted:
            _logger.info("Consent declined, staying in %s", self._session.phase.value)
            return self._session
        self._session = replace(self._session, consent=record, phase=SessionPhase.READY)
        _logger.info("Consent granted, session %s ready", self._session.id)
        return self._session

    def acquire(self, image: ImageHandle | None) -> "asyncio.Task[None]":
        """Store the image, enter ANALYZING and schedule the backend call.

        Must be called from a running event loop. Returns the analysis task
        so callers can await completion.
        """
        if self._session.phase is SessionPhase.ANALYZING:
            _logger.warning("Rejected acquire: analysis already in flight")
            raise SessionBusy("An analysis is already in progress")
        self._require("acquire", SessionPhase.READY)

        generation = self._session.generation + 1
        session = Session(
            id=self.id_factory(),
            generation=generation,
            phase=SessionPhase.ANALYZING,
            consent=self._session.consent,
        )
        if image is None or image.is_empty:
            self._session = replace(
                session, phase=SessionPhase.ERROR, error=ErrorKind.INVALID_IMAGE
            )
            _logger.warning("Rejected empty image for session %s", session.id)
            raise InvalidImage("Received an empty image")

        loop = asyncio.get_running_loop()
        self._session = replace(session, image=image)
        token = CancelToken()
        self._cancel_token = token
        task = loop.create_task(self._analyze(generation, image, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        _logger.info(
            "Analyzing session %s (generation=%s, content_type=%s, bytes=%s)",
            session.id,
            generation,
            image.content_type,
            len(image.data),
        )
        return task

    def reset(self) -> Session:
        """Clear the analysis and return to READY, cancelling any in-flight call."""
        phase = self._session.phase
        if phase is SessionPhase.READY:
            return self._session
        if phase not in _RESETTABLE:
            _logger.warning("Rejected reset in phase %s", phase.value)
            raise IllegalTransition("reset", phase)
        if self._cancel_token is not None:
            self._cancel_token.cancel()
            self._cancel_token = None
        self._session = Session(
            id=self.id_factory(),
            generation=self._session.generation + 1,
            phase=SessionPhase.READY,
            consent=self._session.consent,
        )
        _logger.info(
            "Session reset from %s (generation=%s)",
            phase.value,
            self._session.generation,
        )
        return self._session

    def export(self) -> ReportArtifact:
        """Assemble a report for the current results without changing phase."""
        self._require("export", SessionPhase.RESULTS)
        session = self._session
        try:
            return self.report_assembler.assemble(
                session.image, session.aux_visual, session.predictions
            )
        except AssemblyFailed as exc:
            _logger.warning("Export failed for session %s: %s", session.id, exc)
            raise

    async def close(self) -> None:
        """Cancel and await any outstanding analysis.

        The generation moves on first, so an outcome raised while the
        analysis winds down is dropped as stale.
        """
        self._session = replace(
            self._session, generation=self._session.generation + 1
        )
        if self._cancel_token is not None:
            self._cancel_token.cancel()
            self._cancel_token = None
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _analyze(
        self, generation: int, image: ImageHandle, token: CancelToken
    ) -> None:
        try:
            async with asyncio.timeout(self.backend_timeout_seconds):
                raw = await self.backend.analyze(image, token)
            result = InferenceResult.model_validate(raw)
        except Exception as exc:
            if self._is_stale(generation, "failure"):
                return
            self._fail(exc)
            return

        if self._is_stale(generation, "result"):
            return
        try:
            predictions = calibrate(
                result.scores,
                self.calibration_floor,
                catalog=self.catalog,
                class_order=self.catalog.class_ids(),
                limit=self.max_predictions,
            )
        except Exception as exc:
            self._fail(exc)
            return

        self._cancel_token = None
        self._session = replace(
            self._session,
            phase=SessionPhase.RESULTS,
            predictions=predictions,
            aux_visual=result.aux_visual,
        )
        _logger.info(
            "Session %s results: top=%s confidence=%.3f",
            self._session.id,
            predictions[0].class_id,
            predictions[0].confidence,
        )

    def _is_stale(self, generation: int, outcome: str) -> bool:
        if generation == self._session.generation:
            return False
        _logger.debug(
            "Discarding stale %s (generation=%s, current=%s)",
            outcome,
            generation,
            self._session.generation,
        )
        return True

    def _fail(self, exc: Exception) -> None:
        kind = _error_kind_for(exc)
        if isinstance(exc, ScreeningError | TimeoutError | ValidationError):
            _logger.warning("Analysis failed for session %s: %s", self._session.id, exc)
        else:
            _logger.exception("Unexpected analysis failure for %s", self._session.id)
        self._cancel_token = None
        self._session = replace(self._session, phase=SessionPhase.ERROR, error=kind)

    def _require(self, operation: str, phase: SessionPhase) -> None:
        if self._session.phase is not phase:
            _logger.warning(
                "Rejected %s in phase %s", operation, self._session.phase.value
            )
            raise IllegalTransition(operation, self._session.phase)


def _error_kind_for(exc: Exception) -> ErrorKind:
    """Map a backend or calibration failure to the session error kind."""
    if isinstance(exc, InvalidImage):
        return ErrorKind.INVALID_IMAGE
    if isinstance(exc, BackendTimeout | TimeoutError):
        return ErrorKind.BACKEND_TIMEOUT
    return ErrorKind.BACKEND_UNAVAILABLE
