import asyncio
from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError

from scholargy.config.settings import GenerationConfig
from scholargy.errors import GenerationUnavailable
from scholargy.rag.generator import RelayState, StreamingRelay
from scholargy.rag.openai_backend import AzureOpenAIChatBackend


def _chunk(content):
    if content is None:
        return SimpleNamespace(choices=[])
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class _FakeStream:
    def __init__(self, chunks):
        self.chunks = list(chunks)
        self.closed = False

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for chunk in self.chunks:
            yield chunk

    async def close(self):
        self.closed = True


class _FakeCompletions:
    def __init__(self, stream=None, error=None):
        self.stream = stream
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.stream


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_backend_streams_delta_content_through_relay():
    stream = _FakeStream([_chunk(None), _chunk("Hello"), _chunk(""), _chunk(" world")])
    completions = _FakeCompletions(stream=stream)
    backend = AzureOpenAIChatBackend(
        client=_client(completions),
        deployment="gpt-4o",
        config=GenerationConfig(max_tokens=800, temperature=0.7),
    )
    messages = [{"role": "user", "content": "hi"}]

    async def _run():
        relay = await StreamingRelay(backend).open(messages)
        return relay, [f async for f in relay.fragments()]

    relay, fragments = asyncio.run(_run())

    assert fragments == ["Hello", " world"]
    assert relay.state is RelayState.COMPLETED
    assert stream.closed
    assert completions.kwargs == {
        "model": "gpt-4o",
        "messages": messages,
        "max_tokens": 800,
        "temperature": 0.7,
        "stream": True,
    }


def test_unconfigured_backend_cannot_open():
    backend = AzureOpenAIChatBackend(client=None, deployment=None)

    assert backend.configured is False
    with pytest.raises(GenerationUnavailable):
        asyncio.run(backend.open_stream([]))


def test_connection_error_on_open_is_generation_unavailable():
    request = httpx.Request("POST", "https://example.openai.azure.com")
    completions = _FakeCompletions(error=APIConnectionError(request=request))
    backend = AzureOpenAIChatBackend(client=_client(completions), deployment="gpt-4o")

    with pytest.raises(GenerationUnavailable):
        asyncio.run(backend.open_stream([{"role": "user", "content": "hi"}]))
