"""OpenAI Responses API client implementing the inference backend."""

import json
from dataclasses import dataclass, field

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from lesion_screener.domain.catalog import HAM10000_CATALOG, ClassCatalog
from lesion_screener.domain.images import ImageHandle
from lesion_screener.domain.predictions import InferenceResult
from lesion_screener.errors import BackendTimeout, BackendUnavailable, InvalidImage
from lesion_screener.services.inference import (
    CancelToken,
    InferenceBackend,
    run_cancellable,
)


def scores_schema(catalog: ClassCatalog) -> dict[str, object]:
    """JSON schema for one weight per catalog class."""
    return {
        "type": "object",
        "properties": {
            "scores": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "class_id": {"type": "string", "enum": catalog.class_ids()},
                        "weight": {"type": "number", "minimum": 0.0},
                    },
                    "required": ["class_id", "weight"],
                    "additionalProperties": False,
                },
            }
        },
        "required": ["scores"],
        "additionalProperties": False,
    }


def build_prompt(catalog: ClassCatalog) -> str:
    """Describe the classes the model should score."""
    lines = [f"- {info.class_id}: {info.label}" for info in catalog]
    classes = "\n".join(lines)
    return (
        "You are scoring a close-up photo of a skin lesion. "
        "For every class below return a non-negative weight reflecting how well "
        "the image matches it. Weights do not need to sum to one.\n"
        f"{classes}"
    )


@dataclass
class OpenAIInferenceBackend(InferenceBackend):
    """Inference backend that asks an OpenAI vision model for class weights."""

    client: AsyncOpenAI
    model: str
    reasoning_effort: str | None = None
    store: bool = False
    catalog: ClassCatalog = field(default=HAM10000_CATALOG)

    @classmethod
    def create(
        cls,
        api_key: str,
        model: str,
        reasoning_effort: str | None = None,
        store: bool = False,
    ) -> "OpenAIInferenceBackend":
        """Create an OpenAI-backed inference backend."""
        return cls(
            client=AsyncOpenAI(api_key=api_key),
            model=model,
            reasoning_effort=reasoning_effort,
            store=store,
        )

    async def analyze(
        self, image: ImageHandle, cancel_token: CancelToken
    ) -> InferenceResult:
        """Call the Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": self.model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": build_prompt(self.catalog)},
                        {"type": "input_image", "image_url": image.to_data_url()},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "lesion_scores",
                    "strict": True,
                    "schema": scores_schema(self.catalog),
                }
            },
            "store": self.store,
        }
        if self.reasoning_effort:
            request_payload["reasoning"] = {"effort": self.reasoning_effort}

        try:
            response = await run_cancellable(
                self.client.responses.create(**request_payload), cancel_token
            )
        except openai.APITimeoutError as exc:
            raise BackendTimeout("OpenAI request timed out") from exc
        except openai.BadRequestError as exc:
            raise InvalidImage(f"OpenAI rejected the image: {exc}") from exc
        except openai.APIError as exc:
            raise BackendUnavailable(f"OpenAI request failed: {exc}") from exc

        output_text = response.output_text
        if not output_text:
            raise BackendUnavailable("OpenAI returned an empty response")
        try:
            return InferenceResult.model_validate(json.loads(output_text))
        except (ValueError, ValidationError) as exc:
            raise BackendUnavailable(f"Malformed OpenAI response: {exc}") from exc

    async def close(self) -> None:
        """Close the underlying OpenAI client."""
        await self.client.close()
