import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, TypeVar, cast
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from genrelay.schemas.generate import Envelope, GenerateData, GenerateRequest
from genrelay.api.deps import get_caller, get_generation_service
from genrelay.core.errors import ClientDisconnected
from genrelay.providers.base import GenerationResult, StreamEvent
from genrelay.services.generation import GenerationService
from genrelay.services.relay import format_sse

router = APIRouter(tags=["generate"])
logger = logging.getLogger(__name__)

T = TypeVar("T")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _wait_for_disconnect(request: Request) -> None:
    # the body is already consumed, so the next message the server delivers is the disconnect
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def until_disconnected(request: Request, work: Awaitable[T]) -> T:
    """Await work, cancelling it if the client goes away first."""
    task = asyncio.ensure_future(work)
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        done, _ = await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        watcher.cancel()
        if not task.done():
            task.cancel()
    if task not in done:
        # let the cancellation unwind (closes the upstream connection) before answering
        await asyncio.gather(task, return_exceptions=True)
        logger.info("client disconnected, upstream call cancelled")
        raise ClientDisconnected("client disconnected")
    return task.result()


@router.post("/generate")
async def generate(
    req: GenerateRequest,
    request: Request,
    caller: str = Depends(get_caller),
    service: GenerationService = Depends(get_generation_service),
):
    # validation, lookup and the enabled check raise here and become an envelope;
    # a non-stream upstream call is abandoned as soon as the client disconnects
    result = await until_disconnected(request, service.generate(caller, req))

    # Non-stream path
    if isinstance(result, GenerationResult):
        data = GenerateData(content=result.content, usage=result.usage.model_dump(exclude_none=True))
        return Envelope(code=0, message="generation succeeded", data=data)

    # Stream path
    events = cast(AsyncIterator[StreamEvent], result)

    async def streamer() -> AsyncIterator[str]:
        async with aclosing(events) as stream:
            async for event in stream:
                if await request.is_disconnected():
                    logger.info("client disconnected, stopping stream")
                    break
                yield format_sse(event)

    return StreamingResponse(streamer(), media_type="text/event-stream", headers=SSE_HEADERS)
