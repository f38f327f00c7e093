"""Shared test fixtures."""

import asyncio
import io
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from itertools import count
from uuid import UUID

import pytest
from PIL import Image

from lesion_screener.config import Settings
from lesion_screener.containers import AppContainer
from lesion_screener.domain.consent import ConsentRecord
from lesion_screener.domain.images import ImageHandle
from lesion_screener.domain.predictions import InferenceResult
from lesion_screener.services.inference import CancelToken, InferenceBackend
from lesion_screener.services.reports import ReportAssembler
from lesion_screener.services.sessions import SessionController

FIXED_TIME = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)

GRANTED = ConsentRecord(terms=True, privacy=True, limitations=True)


def make_png(color: tuple[int, int, int] = (200, 120, 90)) -> bytes:
    """Render a tiny solid-colour PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (12, 8), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_image(color: tuple[int, int, int] = (200, 120, 90)) -> ImageHandle:
    return ImageHandle(data=make_png(color), content_type="image/png")


def sequential_ids() -> Callable[[], UUID]:
    counter = count(1)
    return lambda: UUID(int=next(counter))


@dataclass
class ScriptedBackend(InferenceBackend):
    """Backend that returns a fixed payload or raises a fixed error."""

    payload: InferenceResult | dict[str, object] | None = None
    error: Exception | None = None
    calls: list[ImageHandle] = field(default_factory=list)

    async def analyze(
        self, image: ImageHandle, cancel_token: CancelToken
    ) -> InferenceResult:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return self.payload  # type: ignore[return-value]

    async def close(self) -> None:
        return None


@dataclass
class PendingCall:
    """A backend call the test resolves by hand."""

    image: ImageHandle
    cancel_token: CancelToken
    future: "asyncio.Future[object]"

    def resolve(self, payload: object) -> None:
        self.future.set_result(payload)

    def fail(self, error: Exception) -> None:
        self.future.set_exception(error)


@dataclass
class ManualBackend(InferenceBackend):
    """Backend whose calls stay pending until the test resolves them."""

    calls: list[PendingCall] = field(default_factory=list)

    async def analyze(
        self, image: ImageHandle, cancel_token: CancelToken
    ) -> InferenceResult:
        future = asyncio.get_running_loop().create_future()
        self.calls.append(PendingCall(image, cancel_token, future))
        return await future  # type: ignore[return-value]

    async def close(self) -> None:
        return None


async def wait_for_calls(backend: ManualBackend, expected: int) -> None:
    """Yield to the loop until the backend has seen enough calls."""
    for _ in range(100):
        if len(backend.calls) >= expected:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"Backend saw {len(backend.calls)} calls, wanted {expected}")


def make_controller(backend: InferenceBackend, **kwargs: object) -> SessionController:
    return SessionController(
        backend=backend,
        report_assembler=ReportAssembler(clock=lambda: FIXED_TIME),
        id_factory=sequential_ids(),
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        inference_backend="http",
        inference_base_url="http://inference.test",
        max_image_bytes=64 * 1024,
    )


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend(
        payload={
            "scores": [
                {"class_id": "nv", "weight": 0.6},
                {"class_id": "mel", "weight": 0.25},
                {"class_id": "bkl", "weight": 0.15},
            ]
        }
    )


@pytest.fixture
def container(settings: Settings, backend: ScriptedBackend) -> AppContainer:
    report_assembler = ReportAssembler(
        title=settings.report_title, clock=lambda: FIXED_TIME
    )
    session_controller = SessionController(
        backend=backend,
        report_assembler=report_assembler,
        calibration_floor=settings.calibration_floor,
        max_predictions=settings.max_predictions,
        backend_timeout_seconds=settings.backend_timeout_seconds,
        id_factory=sequential_ids(),
    )

    async def close_resources() -> None:
        await session_controller.close()

    return AppContainer(
        settings=settings,
        inference_backend=backend,
        report_assembler=report_assembler,
        session_controller=session_controller,
        close_resources=close_resources,
    )
