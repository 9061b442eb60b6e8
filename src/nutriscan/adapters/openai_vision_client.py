"""OpenAI Responses API client for label and package analysis."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from nutriscan.domain.errors import MalformedResponseError
from nutriscan.services.vision import VisionClient


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIVisionClient":
        """Create an OpenAI vision client; retries are handled by the caller."""
        return cls(client=AsyncOpenAI(api_key=api_key, max_retries=0))

    async def analyze(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        prompt: str,
        timeout_seconds: float,
    ) -> str:
        """Send one multimodal request and return the reply text."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_data_url},
                    ],
                }
            ],
            "store": store,
            "timeout": timeout_seconds,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise MalformedResponseError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
