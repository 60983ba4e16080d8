import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Union

import httpx

from genrelay.core.errors import BuildError, InvalidParams, TransportError, UpstreamError
from genrelay.core.logs import preview, redact
from genrelay.providers.base import Dialect, GenerationResult, ProviderProfile, StreamEvent, UpstreamRequest
from genrelay.providers.factory import DialectTable, default_dialects, get_dialect
from genrelay.schemas.generate import GenerateRequest
from genrelay.services.directory import ProviderDirectory
from genrelay.services.relay import relay

logger = logging.getLogger(__name__)

# When stream=False -> a single normalized result
# When stream=True  -> an async iterator of stream events
GenerateReturn = Union[GenerationResult, AsyncIterator[StreamEvent]]

NOT_FOUND_HINT = (
    "upstream returned 404; check that the service is running and supports the "
    "OpenAI-compatible mode, and that the model name is correct. Request URL: {url}"
)


@dataclass(frozen=True)
class GenerationSettings:
    default_temperature: float = 0.7
    default_max_tokens: int = 2000
    timeout_seconds: float = 60.0
    connect_timeout_seconds: float = 10.0


@dataclass(frozen=True)
class GenerationPlan:
    """A validated request with defaults applied, bound to its provider."""

    profile: ProviderProfile
    dialect: Dialect
    model: str
    prompt: str
    temperature: float
    max_tokens: int
    stream: bool


def _describe(e: Exception) -> str:
    text = str(e)
    return f"{type(e).__name__}: {text}" if text else type(e).__name__


class GenerationService:
    def __init__(
        self,
        *,
        directory: ProviderDirectory,
        client: httpx.AsyncClient,
        dialects: Optional[DialectTable] = None,
        settings: Optional[GenerationSettings] = None,
    ) -> None:
        self._directory = directory
        self._client = client
        self._dialects = dialects if dialects is not None else default_dialects()
        self.settings = settings or GenerationSettings()
        self._timeout = httpx.Timeout(self.settings.timeout_seconds, connect=self.settings.connect_timeout_seconds)

    async def generate(self, caller: str, req: GenerateRequest) -> GenerateReturn:
        plan = await self.prepare(caller, req)
        if plan.stream:
            return self.stream(plan)
        return await self.complete(plan)

    async def prepare(self, caller: str, req: GenerateRequest) -> GenerationPlan:
        # everything here fails before any upstream call is made
        if req.provider_id is None:
            raise InvalidParams("provider_id is required")
        if not req.prompt or not req.prompt.strip():
            raise InvalidParams("prompt must not be empty")
        if req.temperature is not None and not 0 <= req.temperature <= 2:
            raise InvalidParams("temperature must be between 0 and 2")
        if req.max_tokens is not None and req.max_tokens < 0:
            raise InvalidParams("max_tokens must be positive")

        logger.info(
            "generate request provider_id=%s prompt=%r temperature=%s max_tokens=%s stream=%s",
            req.provider_id, preview(req.prompt), req.temperature, req.max_tokens, req.stream,
        )

        profile = await self._directory.lookup(caller, req.provider_id)
        if not profile.enabled:
            logger.warning("provider %s is disabled", profile.id)
            raise InvalidParams("provider is not enabled")

        model = req.model.strip() if req.model and req.model.strip() else profile.model
        plan = GenerationPlan(
            profile=profile,
            dialect=get_dialect(profile, self._dialects),
            model=model,
            prompt=req.prompt,
            temperature=req.temperature or self.settings.default_temperature,
            max_tokens=req.max_tokens or self.settings.default_max_tokens,
            stream=True if req.stream is None else req.stream,
        )
        logger.info(
            "resolved provider_id=%s kind=%s dialect=%s model=%s stream=%s",
            profile.id, profile.kind.value, plan.dialect.name, model, plan.stream,
        )
        return plan

    def build(self, plan: GenerationPlan) -> UpstreamRequest:
        return plan.dialect.build_request(
            plan.profile,
            model=plan.model,
            prompt=plan.prompt,
            temperature=plan.temperature,
            max_tokens=plan.max_tokens,
            stream=plan.stream,
        )

    def _request(self, upstream: UpstreamRequest) -> httpx.Request:
        return self._client.build_request(
            "POST",
            upstream.url,
            headers=upstream.headers,
            params=upstream.params,
            content=upstream.body,
            timeout=self._timeout,
        )

    def _status_error(self, plan: GenerationPlan, upstream: UpstreamRequest, response: httpx.Response) -> UpstreamError:
        status = response.status_code
        body = redact(preview(response.text, 500), plan.profile.credential)
        logger.error("upstream returned %d url=%s body=%s", status, upstream.url, body)
        if status == 404:
            message = NOT_FOUND_HINT.format(url=upstream.url)
        else:
            message = f"upstream returned error: {status}"
        return UpstreamError(message, status_code=status, url=upstream.url)

    def _transport_error(self, plan: GenerationPlan, upstream: UpstreamRequest, e: Exception) -> TransportError:
        message = redact(f"upstream request failed: {_describe(e)}", plan.profile.credential)
        logger.error("%s url=%s", message, upstream.url)
        return TransportError(message)

    async def complete(self, plan: GenerationPlan) -> GenerationResult:
        upstream = self.build(plan)
        logger.info("calling upstream url=%s", upstream.url)
        try:
            response = await self._client.send(self._request(upstream))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise self._transport_error(plan, upstream, e) from e

        if not response.is_success:
            raise self._status_error(plan, upstream, response)
        result = plan.dialect.parse_response(plan.profile, response.content)
        logger.info(
            "generation complete content_length=%d usage=%s",
            len(result.content), result.usage.model_dump(exclude_none=True),
        )
        return result

    async def stream(self, plan: GenerationPlan) -> AsyncIterator[StreamEvent]:
        try:
            upstream = self.build(plan)
        except BuildError as e:
            logger.error("could not build upstream request: %s", e)
            yield StreamEvent.failure("could not build upstream request")
            return

        logger.info("opening upstream stream url=%s", upstream.url)
        try:
            response = await self._client.send(self._request(upstream), stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            yield StreamEvent.failure(self._transport_error(plan, upstream, e).message)
            return

        terminated = False
        try:
            if not response.is_success:
                await response.aread()
                terminated = True
                yield StreamEvent.failure(self._status_error(plan, upstream, response).message)
                return
            async with aclosing(relay(plan.dialect, plan.profile, response.aiter_lines())) as events:
                async for event in events:
                    terminated = event.done
                    yield event
        except httpx.HTTPError as e:
            if not terminated:
                yield StreamEvent.failure(self._transport_error(plan, upstream, e).message)
        except Exception:
            logger.exception("stream relay failed (provider_id=%s)", plan.profile.id)
            if not terminated:
                yield StreamEvent.failure("internal error while relaying the stream")
        finally:
            # closing the upstream body is the only cleanup a cancelled stream needs
            await response.aclose()
