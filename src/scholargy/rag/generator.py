from __future__ import annotations

from enum import Enum
from typing import AsyncIterator, Dict, List, Protocol
import asyncio
import json
import logging
import time

from scholargy.errors import GenerationUnavailable, UpstreamGenerationError
from scholargy.utils.cancel import CancellationToken


logger = logging.getLogger("scholargy.relay")


class CompletionBackend(Protocol):
    """
    Hosted streaming completion capability.

    Awaiting open_stream() establishes the upstream call, so connection
    and configuration errors surface there. Iterating the returned
    iterator yields text fragments in generation order.
    """

    @property
    def configured(self) -> bool: ...

    async def open_stream(
        self,
        messages: List[Dict[str, str]],
    ) -> AsyncIterator[str]: ...


class RelayState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def encode_frame(fragment: str) -> str:
    """
    One server-sent event carrying one fragment.
    """
    return f"data: {json.dumps({'content': fragment})}\n\n"


class StreamingRelay:
    """
    Forwards upstream fragments to the caller as they arrive.

    Idle -> Streaming      open(): upstream call established, first
                           fragment received
    Streaming -> Completed upstream exhausted
    Streaming -> Failed    upstream raised mid-stream; the stream just ends
    Streaming -> Cancelled caller went away; upstream is released

    Errors raised by open() happen before response headers are sent and
    may be reported conventionally. Anything after that can only close
    the stream.
    """

    def __init__(
        self,
        backend: CompletionBackend,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        self.backend = backend
        self.cancel = cancel or CancellationToken()
        self.state = RelayState.IDLE
        self.error: UpstreamGenerationError | None = None
        self.fragments_sent = 0
        self._upstream: AsyncIterator[str] | None = None
        self._pending: List[str] = []

    # ------------------------------------------------------------------
    # Idle -> Streaming
    # ------------------------------------------------------------------

    async def open(self, messages: List[Dict[str, str]]) -> "StreamingRelay":
        if self.state is not RelayState.IDLE:
            raise RuntimeError(f"relay already {self.state.value}")

        try:
            self._upstream = await self.backend.open_stream(messages)
            # The first read is where most connection and auth errors show up.
            self._pending = [await self._upstream.__anext__()]
        except StopAsyncIteration:
            self._pending = []
        except asyncio.CancelledError:
            self.state = RelayState.CANCELLED
            await self._release()
            raise
        except Exception as exc:
            self.state = RelayState.FAILED
            await self._release()
            if isinstance(exc, GenerationUnavailable):
                raise
            raise GenerationUnavailable(f"could not open completion stream: {exc}") from exc

        self.state = RelayState.STREAMING
        logger.info("completion stream opened (%s messages)", len(messages))
        return self

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def fragments(self) -> AsyncIterator[str]:
        """
        Yield upstream fragments unchanged and in order.
        """
        if self.state is not RelayState.STREAMING or self._upstream is None:
            raise RuntimeError("relay is not streaming; call open() first")

        upstream = self._upstream
        t0 = time.perf_counter()
        try:
            while True:
                if self._pending:
                    fragment = self._pending.pop(0)
                else:
                    try:
                        fragment = await upstream.__anext__()
                    except StopAsyncIteration:
                        break
                if self.cancel.cancelled:
                    self.state = RelayState.CANCELLED
                    break
                if not fragment:
                    continue
                self.fragments_sent += 1
                yield fragment
        except (asyncio.CancelledError, GeneratorExit):
            self.state = RelayState.CANCELLED
            raise
        except Exception as exc:
            self.state = RelayState.FAILED
            self.error = UpstreamGenerationError(str(exc))
            logger.warning(
                "upstream generation failed after %s fragments: %s",
                self.fragments_sent,
                exc,
            )
        else:
            if self.state is RelayState.STREAMING:
                self.state = RelayState.COMPLETED
        finally:
            await self._release()
            logger.info(
                "relay %s: %s fragments in %.2f ms",
                self.state.value,
                self.fragments_sent,
                (time.perf_counter() - t0) * 1000.0,
            )

    async def frames(self) -> AsyncIterator[str]:
        """
        Server-sent event frames, one per fragment. No terminal frame;
        closing the stream signals completion.
        """
        fragments = self.fragments()
        try:
            async for fragment in fragments:
                yield encode_frame(fragment)
        finally:
            await fragments.aclose()

    async def _release(self) -> None:
        upstream, self._upstream = self._upstream, None
        close = getattr(upstream, "aclose", None)
        if close is None:
            return
        try:
            await close()
        except Exception as exc:
            logger.debug("error while closing upstream stream: %s", exc)
