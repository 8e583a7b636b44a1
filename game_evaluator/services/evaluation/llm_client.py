"""Thin wrapper around the OpenAI-compatible chat completion API."""
from typing import Optional

from openai import AsyncOpenAI

from game_evaluator.core.config import settings as default_settings
from game_evaluator.core.logging import get_logger

logger = get_logger(__name__)


class LLMClient:
    """
    JSON-mode chat completions for the scoring oracle.

    Args:
        settings: Settings providing OPENAI_* and EVALUATION_* values
        client: Preconfigured AsyncOpenAI client
    """

    def __init__(self, settings=None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or default_settings
        self.model = self.settings.EVALUATION_MODEL
        self.temperature = self.settings.EVALUATION_TEMPERATURE
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.settings.OPENAI_API_KEY)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.OPENAI_API_KEY,
                base_url=self.settings.OPENAI_BASE_URL,
                timeout=self.settings.EVALUATION_TIMEOUT,
            )
        return self._client

    async def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        """
        Request a JSON object completion and return the raw message content.

        Raises:
            openai.OpenAIError: On API, timeout or connection failures
        """
        logger.debug(f"Calling LLM [{self.model}]")
        response = await self._get_client().chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=self.temperature,
        )
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
