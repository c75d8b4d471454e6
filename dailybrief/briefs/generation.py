"""Text-generation service boundary (OpenAI-compatible chat completions).

The base URL is configurable so any OpenAI-compatible endpoint (OpenRouter,
a local gateway) can serve the model. Generation is *not* retried here: a
failed call fails the run and the digest is marked failed.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import openai

from dailybrief.errors import BriefGenerationError

logger = logging.getLogger(__name__)


class TextGenerator:
    def complete(self, system: str, user: str) -> str:
        raise NotImplementedError


class OpenAITextGenerator(TextGenerator):
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o",
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        temperature: float = 0.4,
        max_tokens: int = 4000,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.json_mode = not (base_url and "openrouter.ai" in base_url)
        self.client = openai.OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    def complete(self, system: str, user: str) -> str:
        kwargs = {}
        if self.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.info(f"Request model: {self.model}")
        logger.info(f"Prompt length: {len(user)} characters")
        start_time = time.time()
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                **kwargs,
            )
        except openai.OpenAIError as e:
            raise BriefGenerationError(f"generation request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise BriefGenerationError("empty response from generation model")
        logger.info(f"Generation completed in {time.time() - start_time:.1f}s ({len(content)} chars)")
        return content
