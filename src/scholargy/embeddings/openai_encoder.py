from __future__ import annotations

import logging
import time

import numpy as np
from openai import AsyncAzureOpenAI, OpenAIError

from scholargy.embeddings.encoder import EmbeddingEncoder
from scholargy.errors import EmbeddingUnavailable


logger = logging.getLogger("scholargy.embeddings")


class AzureOpenAIEmbeddingEncoder(EmbeddingEncoder):
    """
    Hosted embedding capability backed by an Azure OpenAI deployment.
    """

    def __init__(
        self,
        *,
        client: AsyncAzureOpenAI,
        deployment: str,
        dimension: int | None = None,
        cache_size: int = 1024,
    ) -> None:
        super().__init__(dimension=dimension, cache_size=cache_size)
        self.client = client
        self.deployment = deployment

    async def _embed_one(self, text: str) -> np.ndarray:
        t0 = time.perf_counter()
        try:
            response = await self.client.embeddings.create(
                model=self.deployment,
                input=[text],
            )
        except OpenAIError as exc:
            raise EmbeddingUnavailable(
                f"embedding deployment {self.deployment!r} failed: {exc}"
            ) from exc

        if not response.data:
            raise EmbeddingUnavailable("embedding response contained no vectors")

        logger.info(
            "embedding via %s in %.2f ms",
            self.deployment,
            (time.perf_counter() - t0) * 1000.0,
        )
        return np.asarray(response.data[0].embedding, dtype=float)
