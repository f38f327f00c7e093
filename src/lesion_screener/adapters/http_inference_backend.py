"""HTTP model-server client implementing the inference backend."""

import base64
import binascii
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from lesion_screener.domain.images import ImageHandle
from lesion_screener.domain.predictions import InferenceResult
from lesion_screener.errors import BackendTimeout, BackendUnavailable, InvalidImage
from lesion_screener.services.inference import (
    CancelToken,
    InferenceBackend,
    run_cancellable,
)

_INVALID_IMAGE_STATUSES = {400, 413, 415, 422}


@dataclass
class HttpxInferenceBackend(InferenceBackend):
    """HTTPX-backed client for a lesion classification server."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 30.0

    @classmethod
    def create(
        cls, base_url: str, timeout_seconds: float = 30.0
    ) -> "HttpxInferenceBackend":
        """Create a backend with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def analyze(
        self, image: ImageHandle, cancel_token: CancelToken
    ) -> InferenceResult:
        """POST the image bytes and parse the returned scores."""
        try:
            response = await run_cancellable(
                self.http_client.post(
                    f"{self.base_url}/analyze",
                    content=image.data,
                    headers={"Content-Type": image.content_type},
                    timeout=self.timeout_seconds,
                ),
                cancel_token,
            )
        except httpx.TimeoutException as exc:
            raise BackendTimeout("Inference server timed out") from exc
        except httpx.HTTPError as exc:
            raise BackendUnavailable(f"Inference server unreachable: {exc}") from exc

        if response.status_code in _INVALID_IMAGE_STATUSES:
            raise InvalidImage(f"Inference server rejected image: {response.text}")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BackendUnavailable(
                f"Inference server returned {response.status_code}"
            ) from exc

        try:
            return _parse_payload(response.json())
        except (ValueError, ValidationError) as exc:
            raise BackendUnavailable(f"Malformed inference response: {exc}") from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _parse_payload(payload: object) -> InferenceResult:
    """Build an inference result, decoding a base64 auxiliary visual."""
    if not isinstance(payload, dict):
        raise ValueError("Expected a JSON object")
    aux_visual = None
    encoded = payload.get("aux_visual")
    if isinstance(encoded, str) and encoded:
        try:
            data = base64.b64decode(encoded, validate=True)
        except binascii.Error as exc:
            raise ValueError("aux_visual is not valid base64") from exc
        content_type = payload.get("aux_visual_content_type")
        aux_visual = ImageHandle.from_bytes(
            data, content_type if isinstance(content_type, str) else None
        )
    return InferenceResult(
        scores=payload.get("scores", []),
        aux_visual=aux_visual,
    )
