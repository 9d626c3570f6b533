import asyncio
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import StreamingResponse

from scholargy.utils.cancel import CancellationToken
from scholargy.utils.time import iso_timestamp

from backend.app.api.schemas import QueryRequest, HealthResponse
from backend.app.dependencies import get_answer_service
from backend.app.services.answer_service import AnswerService

router = APIRouter()

logger = logging.getLogger("scholargy.api")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Seconds between disconnect checks while retrieval is still running.
DISCONNECT_POLL_SECONDS = 0.25

# Not a registered HTTP status; nginx logs it for "client closed request".
CLIENT_CLOSED_REQUEST = 499


async def watch_disconnect(request: Request, cancel: CancellationToken) -> None:
    """
    Fire the token if the caller goes away before streaming starts.
    """
    while not cancel.cancelled:
        if await request.is_disconnected():
            cancel.cancel("client disconnected")
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.post("/query")
async def rag_query(
    payload: QueryRequest,
    request: Request,
    service: AnswerService = Depends(get_answer_service),
):
    query = service.validate(payload.question, payload.history)
    logger.info(
        "rag query: %s chars, %s history turns",
        len(query.text),
        len(query.history),
    )

    cancel = CancellationToken()
    watcher = asyncio.create_task(watch_disconnect(request, cancel))
    try:
        relay = await service.prepare(query, cancel)
    except asyncio.CancelledError:
        if not cancel.cancelled:
            raise
        logger.info("query abandoned before streaming: %s", cancel.reason)
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    finally:
        watcher.cancel()

    async def event_stream():
        frames = relay.frames()
        try:
            async for frame in frames:
                if await request.is_disconnected():
                    cancel.cancel("client disconnected")
                    break
                yield frame
        finally:
            await frames.aclose()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/health", response_model=HealthResponse)
def rag_health(service: AnswerService = Depends(get_answer_service)):
    capabilities = service.capabilities()
    return HealthResponse(
        status="healthy" if all(capabilities.values()) else "degraded",
        timestamp=iso_timestamp(),
        capabilities=capabilities,
    )
