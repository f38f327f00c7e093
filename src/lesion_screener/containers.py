"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from lesion_screener.adapters.http_inference_backend import HttpxInferenceBackend
from lesion_screener.adapters.openai_inference_backend import OpenAIInferenceBackend
from lesion_screener.config import Settings
from lesion_screener.services.inference import InferenceBackend
from lesion_screener.services.reports import ReportAssembler
from lesion_screener.services.sessions import SessionController


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    inference_backend: InferenceBackend
    report_assembler: ReportAssembler
    session_controller: SessionController
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    backend: HttpxInferenceBackend | OpenAIInferenceBackend
    if resolved_settings.inference_backend == "http":
        backend = HttpxInferenceBackend.create(
            base_url=resolved_settings.inference_base_url,
            timeout_seconds=resolved_settings.backend_timeout_seconds,
        )
    elif resolved_settings.inference_backend == "openai":
        if not resolved_settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY is required for the openai backend")
        backend = OpenAIInferenceBackend.create(
            api_key=resolved_settings.openai_api_key,
            model=resolved_settings.openai_model,
            reasoning_effort=resolved_settings.openai_reasoning_effort,
            store=resolved_settings.openai_store,
        )
    else:
        raise ValueError(
            f"Unknown inference backend: {resolved_settings.inference_backend}"
        )

    report_assembler = ReportAssembler(title=resolved_settings.report_title)
    session_controller = SessionController(
        backend=backend,
        report_assembler=report_assembler,
        calibration_floor=resolved_settings.calibration_floor,
        max_predictions=resolved_settings.max_predictions,
        backend_timeout_seconds=resolved_settings.backend_timeout_seconds,
    )

    async def close_resources() -> None:
        await session_controller.close()
        await backend.close()

    return AppContainer(
        settings=resolved_settings,
        inference_backend=backend,
        report_assembler=report_assembler,
        session_controller=session_controller,
        close_resources=close_resources,
    )
