from __future__ import annotations

import asyncio

import numpy as np
import torch
from transformers import AutoModel, AutoTokenizer

from scholargy.embeddings.encoder import EmbeddingEncoder


class HuggingFaceEmbeddingEncoder(EmbeddingEncoder):
    """
    Local HuggingFace sentence encoder.

    Only useful against indexes built with the same model. Inference
    runs in a worker thread so the event loop keeps serving requests.
    """

    def __init__(
        self,
        *,
        model_name: str,
        device: str = "cpu",
        normalize: bool = True,
        cache_size: int = 1024,
    ) -> None:
        self.model_name = model_name
        self.device = device
        self.normalize = normalize

        self.tokenizer = AutoTokenizer.from_pretrained(model_name)
        self.model = AutoModel.from_pretrained(model_name)
        self.model.to(device)
        self.model.eval()

        super().__init__(
            dimension=int(self.model.config.hidden_size),
            cache_size=cache_size,
        )

    async def _embed_one(self, text: str) -> np.ndarray:
        return await asyncio.to_thread(self._encode_sync, text)

    def _encode_sync(self, text: str) -> np.ndarray:
        inputs = self.tokenizer(
            text,
            return_tensors="pt",
            truncation=True,
            padding=True,
        ).to(self.device)

        with torch.no_grad():
            outputs = self.model(**inputs)
            pooled = self._mean_pool(outputs.last_hidden_state, inputs["attention_mask"])

        vector = pooled.squeeze(0).cpu().numpy()
        if self.normalize:
            norm = np.linalg.norm(vector)
            if norm > 0:
                vector = vector / norm
        return vector

    @staticmethod
    def _mean_pool(hidden: torch.Tensor, attention_mask: torch.Tensor) -> torch.Tensor:
        # Padding positions carry no weight.
        weights = attention_mask.unsqueeze(-1).to(hidden.dtype)
        return (hidden * weights).sum(dim=1) / weights.sum(dim=1).clamp(min=1e-9)
