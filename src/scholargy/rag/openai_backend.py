from __future__ import annotations

from typing import AsyncIterator, Dict, List
import logging

from openai import AsyncAzureOpenAI, AsyncStream, OpenAIError
from openai.types.chat import ChatCompletionChunk

from scholargy.config.settings import GenerationConfig
from scholargy.errors import GenerationUnavailable


logger = logging.getLogger("scholargy.generation")


class AzureOpenAIChatBackend:
    """
    Streaming chat completions from an Azure OpenAI deployment.
    """

    def __init__(
        self,
        *,
        client: AsyncAzureOpenAI | None,
        deployment: str | None,
        config: GenerationConfig | None = None,
    ) -> None:
        self.client = client
        self.deployment = deployment
        self.config = config or GenerationConfig()

    @property
    def configured(self) -> bool:
        return self.client is not None and bool(self.deployment)

    async def open_stream(
        self,
        messages: List[Dict[str, str]],
    ) -> AsyncIterator[str]:
        if not self.configured:
            raise GenerationUnavailable("completion capability is not configured")

        try:
            stream = await self.client.chat.completions.create(
                model=self.deployment,
                messages=messages,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                stream=True,
            )
        except OpenAIError as exc:
            raise GenerationUnavailable(
                f"chat deployment {self.deployment!r} failed: {exc}"
            ) from exc

        return self._fragments(stream)

    @staticmethod
    async def _fragments(stream: AsyncStream[ChatCompletionChunk]) -> AsyncIterator[str]:
        try:
            async for chunk in stream:
                # Azure sends prompt-filter chunks with no choices.
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        finally:
            await stream.close()
