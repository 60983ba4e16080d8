import json
import logging
from contextlib import aclosing
from typing import AsyncIterator

import httpx

from genrelay.core.logs import redact
from genrelay.providers.base import Dialect, ProviderProfile, StreamEvent

logger = logging.getLogger(__name__)

INCOMPLETE_STREAM = "upstream stream ended without a completion marker"


def format_sse(event: StreamEvent) -> str:
    return f"data: {json.dumps(event.payload(), ensure_ascii=False)}\n\n"


async def relay(dialect: Dialect, profile: ProviderProfile, lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
    """
    Forward a dialect's events and guarantee exactly one terminal event.

    - events are passed through in upstream order, nothing after the terminal one
    - a read failure ends the relay with an error event (no retry)
    - an upstream that closes without a done marker also ends with an error event
    """
    try:
        async with aclosing(dialect.relay_stream(profile, lines)) as events:
            async for event in events:
                yield event
                if event.done:
                    return
    except (httpx.TransportError, httpx.StreamError) as e:
        message = redact(f"failed to read upstream stream: {e}", profile.credential)
        logger.error("%s (provider_id=%s)", message, profile.id)
        yield StreamEvent.failure(message)
        return
    logger.warning("upstream closed without completion marker (provider_id=%s)", profile.id)
    yield StreamEvent.failure(INCOMPLETE_STREAM)
