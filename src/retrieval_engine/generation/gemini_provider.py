"""Google Gemini text generation using the google-genai SDK."""

from __future__ import annotations

from google import genai
from google.genai import types

from retrieval_engine.exceptions import GenerationError
from retrieval_engine.observability.logger import get_logger

logger = get_logger("gemini")


class GeminiProvider:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        temperature: float = 0.0,
        client: genai.Client | None = None,
    ) -> None:
        self._client = client if client is not None else genai.Client(api_key=api_key)
        self._model = model
        self._temperature = temperature

    async def generate(self, prompt: str, max_tokens: int = 256) -> str:
        try:
            config = types.GenerateContentConfig(
                temperature=self._temperature,
                max_output_tokens=max_tokens,
            )
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=config,
            )
            text = response.text or ""
            logger.debug("generation_complete", model=self._model, chars=len(text))
            return text
        except Exception as e:
            raise GenerationError(f"Gemini generation failed: {e}") from e
