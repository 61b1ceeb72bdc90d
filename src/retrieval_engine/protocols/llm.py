"""Protocol for text generation providers."""

from __future__ import annotations

from typing import Protocol


class LLMProvider(Protocol):
    async def generate(self, prompt: str, max_tokens: int = 256) -> str: ...
