import json
import logging
from typing import Any, AsyncIterator, Dict

from genrelay.core.errors import ParseError
from genrelay.providers.base import (
    JSON_HEADERS,
    Dialect,
    GenerationResult,
    ProviderProfile,
    StreamEvent,
    UpstreamRequest,
    Usage,
    encode_body,
    strip_tags,
)
from genrelay.providers.openai_compat import OpenAICompatDialect

logger = logging.getLogger(__name__)


def _count(data: Dict[str, Any], key: str):
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


class OllamaNativeDialect(Dialect):
    # /api/generate: flat body, no auth, NDJSON stream
    name = "ollama"

    def build_request(
        self,
        profile: ProviderProfile,
        *,
        model: str,
        prompt: str,
        temperature: float,
        max_tokens: int,
        stream: bool,
    ) -> UpstreamRequest:
        payload = {
            "model": model,
            "prompt": prompt,
            "temperature": temperature,
            "stream": stream,
        }
        return UpstreamRequest(
            url=f"{profile.root_url}/api/generate",
            headers=dict(JSON_HEADERS),
            body=encode_body(payload),
        )

    def parse_response(self, profile: ProviderProfile, raw: bytes) -> GenerationResult:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ParseError(f"could not decode Ollama response: {e}", reason=ParseError.MALFORMED) from e
        if not isinstance(data, dict):
            raise ParseError("Ollama response is not a JSON object", reason=ParseError.MALFORMED)

        err = data.get("error")
        if isinstance(err, str) and err:
            raise ParseError(f"Ollama error: {err}", reason=ParseError.UPSTREAM)
        reply = data.get("response")
        if not isinstance(reply, str) or not reply:
            logger.warning("Ollama returned no content, keys=%s", sorted(data))
            raise ParseError("upstream returned no content")

        # Ollama reports eval counts instead of OpenAI usage; best effort
        prompt_tokens = _count(data, "prompt_eval_count")
        completion_tokens = _count(data, "eval_count")
        total = None
        if prompt_tokens is not None and completion_tokens is not None:
            total = prompt_tokens + completion_tokens
        return GenerationResult(
            content=strip_tags(reply),
            usage=Usage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens, total_tokens=total),
        )

    async def relay_stream(self, profile: ProviderProfile, lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
        chunks = 0
        async for line in lines:
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("skipping undecodable Ollama line (%d bytes)", len(line))
                continue
            if not isinstance(data, dict):
                continue
            if isinstance(data.get("response"), str) and data["response"]:
                clean = strip_tags(data["response"])
                if clean:
                    chunks += 1
                    yield StreamEvent.chunk(clean)
            if data.get("error"):
                yield StreamEvent.failure(f"Ollama error: {data['error']}")
                return
            if data.get("done") is True:
                logger.info("Ollama stream finished after %d chunks", chunks)
                yield StreamEvent.finished()
                return


class OllamaDialect(Dialect):
    """Ollama speaks its native API, or the OpenAI one when the base URL has /v1."""

    name = "ollama"

    def __init__(self) -> None:
        self.native = OllamaNativeDialect()
        self.openai = OpenAICompatDialect()

    def select(self, profile: ProviderProfile) -> Dialect:
        return self.openai if profile.openai_mode else self.native

    def build_request(self, profile: ProviderProfile, **kwargs) -> UpstreamRequest:
        return self.select(profile).build_request(profile, **kwargs)

    def parse_response(self, profile: ProviderProfile, raw: bytes) -> GenerationResult:
        return self.select(profile).parse_response(profile, raw)

    def relay_stream(self, profile: ProviderProfile, lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
        return self.select(profile).relay_stream(profile, lines)
