"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from lesion_screener.api.models import ConsentPayload, SessionView
from lesion_screener.app_logging import configure_logging
from lesion_screener.containers import AppContainer
from lesion_screener.domain.images import ImageHandle
from lesion_screener.domain.sessions import ErrorKind
from lesion_screener.errors import ScreeningError

_ERROR_STATUS = {
    ErrorKind.ILLEGAL_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.SESSION_BUSY: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_IMAGE: status.HTTP_422_UNPROCESSABLE_CONTENT,
    ErrorKind.ASSEMBLY_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ScreeningError)
    async def screening_error_handler(
        request: Request, exc: ScreeningError
    ) -> JSONResponse:
        status_code = _ERROR_STATUS.get(exc.kind, status.HTTP_502_BAD_GATEWAY)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.kind.value, "detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session")
    async def get_session(request: Request) -> SessionView:
        """Return the current session snapshot."""
        state_container: AppContainer = request.app.state.container
        return SessionView.from_session(state_container.session_controller.session)

    @app.post("/session/consent")
    async def submit_consent(payload: ConsentPayload, request: Request) -> SessionView:
        """Record the consent dialog acknowledgements."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_controller.submit_consent(
            payload.to_record()
        )
        return SessionView.from_session(session)

    @app.post("/session/acquire")
    async def acquire(request: Request, wait: bool = False) -> SessionView:
        """Start analysis of the uploaded image body."""
        state_container: AppContainer = request.app.state.container
        content_type = request.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail="Please upload an image file",
            )
        body = await request.body()
        max_bytes = state_container.settings.max_image_bytes
        if len(body) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_CONTENT_TOO_LARGE,
                detail=f"Image size must be at most {max_bytes} bytes",
            )

        controller = state_container.session_controller
        task = controller.acquire(ImageHandle(data=body, content_type=content_type))
        if wait:
            await task
        return SessionView.from_session(controller.session)

    @app.post("/session/reset")
    async def reset(request: Request) -> SessionView:
        """Discard the current analysis and return to the ready state."""
        state_container: AppContainer = request.app.state.container
        return SessionView.from_session(state_container.session_controller.reset())

    @app.get("/session/report")
    async def report(request: Request) -> Response:
        """Download the PDF report for the current results."""
        state_container: AppContainer = request.app.state.container
        artifact = state_container.session_controller.export()
        return Response(
            content=artifact.data,
            media_type=artifact.mime_type,
            headers={
                "Content-Disposition": (
                    f'attachment; filename="{artifact.suggested_filename}"'
                )
            },
        )

    return app
