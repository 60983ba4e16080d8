"""
OpenAI-compatible chat completions dialect.

Also the base for every kind that reuses the /chat/completions body and
response shapes (Anthropic, Google Gemini, Ollama in /v1 mode); those only
override the URL and the auth headers.
"""
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

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

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


def _error_text(err: Any) -> str:
    if isinstance(err, dict):
        return str(err.get("message") or err)
    return str(err)


def _sse_payload(line: str) -> Optional[str]:
    # only "data:" lines carry a payload; comments and event: lines are ignored
    if not line.startswith("data:"):
        return None
    data = line[5:]
    if data.startswith(" "):
        data = data[1:]
    return data.strip()


class OpenAICompatDialect(Dialect):
    name = "openai"

    def url(self, profile: ProviderProfile, model: str) -> str:
        return f"{profile.root_url}/chat/completions"

    def headers(self, profile: ProviderProfile) -> Dict[str, str]:
        return {**JSON_HEADERS, "Authorization": f"Bearer {profile.credential}"}

    def params(self, profile: ProviderProfile) -> Dict[str, str]:
        return {}

    def body(self, *, model: str, prompt: str, temperature: float, max_tokens: int, stream: bool) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": stream,
        }

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
        body = self.body(model=model, prompt=prompt, temperature=temperature, max_tokens=max_tokens, stream=stream)
        return UpstreamRequest(
            url=self.url(profile, model),
            headers=self.headers(profile),
            body=encode_body(body),
            params=self.params(profile),
        )

    def parse_response(self, profile: ProviderProfile, raw: bytes) -> GenerationResult:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ParseError(f"could not decode upstream response: {e}", reason=ParseError.MALFORMED) from e
        if not isinstance(data, dict):
            raise ParseError("upstream response is not a JSON object", reason=ParseError.MALFORMED)

        choices = data.get("choices") or []
        if not isinstance(choices, list) or not choices:
            logger.warning("upstream returned no choices (%s)", self.name)
            raise ParseError("upstream returned no content")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise ParseError("upstream choice has no message", reason=ParseError.MALFORMED)
        content = message.get("content") or ""
        if not isinstance(content, str):
            raise ParseError("unexpected content type in upstream response", reason=ParseError.MALFORMED)

        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        return GenerationResult(
            content=strip_tags(content),
            usage=Usage(
                prompt_tokens=usage.get("prompt_tokens") or 0,
                completion_tokens=usage.get("completion_tokens") or 0,
                total_tokens=usage.get("total_tokens") or 0,
            ),
        )

    async def relay_stream(self, profile: ProviderProfile, lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
        chunks = 0
        async for line in lines:
            if not line:
                continue
            data = _sse_payload(line)
            if not data:
                continue
            if data == DONE_SENTINEL:
                logger.info("stream finished with [DONE] after %d chunks", chunks)
                yield StreamEvent.finished()
                return
            try:
                payload = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("skipping undecodable stream payload (%d bytes)", len(data))
                continue
            if not isinstance(payload, dict):
                continue
            if payload.get("error"):
                yield StreamEvent.failure(f"upstream error: {_error_text(payload['error'])}")
                return

            choices = payload.get("choices") or []
            if not choices or not isinstance(choices[0], dict):
                continue
            choice = choices[0]
            delta = choice.get("delta")
            if delta is not None and not isinstance(delta, dict):
                logger.warning("skipping stream payload with non-object delta")
                continue
            content = (delta or {}).get("content")
            if isinstance(content, str) and content:
                clean = strip_tags(content)
                if clean:
                    chunks += 1
                    yield StreamEvent.chunk(clean)
            if choice.get("finish_reason"):
                logger.info("stream finished (%s) after %d chunks", choice["finish_reason"], chunks)
                yield StreamEvent.finished()
                return
