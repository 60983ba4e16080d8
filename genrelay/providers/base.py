# lets us swap/add provider kinds without touching the orchestrator
# declares the dialect contract (build_request / parse_response / relay_stream)
# every provider kind implements, plus the types flowing through it

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional

from pydantic import BaseModel, Field

from genrelay.core.errors import BuildError

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")

JSON_HEADERS = {"Content-Type": "application/json"}


def strip_tags(text: str) -> str:
    # upstream content may embed markup that must not reach the client raw
    return _TAG_RE.sub("", text)


def encode_body(body: Dict[str, Any]) -> bytes:
    try:
        return json.dumps(body, ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise BuildError(f"could not serialize request body: {e}") from e


class ProviderKind(str, Enum):
    OPENAI_COMPATIBLE = "OpenAI"
    OLLAMA = "Ollama"
    GOOGLE_GEMINI = "Google Gemini"
    ANTHROPIC = "Anthropic"

    @classmethod
    def parse(cls, value: str) -> "ProviderKind":
        # accepts wire values ("Google Gemini") and enum-style names ("GoogleGemini", "google_gemini")
        key = _kind_key(value)
        kind = _KIND_ALIASES.get(key)
        if kind is None:
            # unknown kinds speak the OpenAI-compatible dialect
            logger.warning("unknown provider kind %r, using the OpenAI-compatible dialect", value)
            return cls.OPENAI_COMPATIBLE
        return kind


def _kind_key(value: str) -> str:
    return re.sub(r"[\s_\-]", "", (value or "")).lower()


_KIND_ALIASES: Dict[str, ProviderKind] = {
    **{_kind_key(k.value): k for k in ProviderKind},
    **{_kind_key(k.name): k for k in ProviderKind},
    "gemini": ProviderKind.GOOGLE_GEMINI,
}


@dataclass(frozen=True)
class ProviderProfile:
    id: int
    owner: str
    kind: ProviderKind
    base_url: str
    model: str
    credential: str = field(default="", repr=False)
    name: str = ""
    enabled: bool = True
    public: bool = False

    @property
    def openai_mode(self) -> bool:
        # Ollama also serves an OpenAI-compatible API under /v1
        return "/v1" in self.base_url

    @property
    def root_url(self) -> str:
        return self.base_url.rstrip("/")


@dataclass(frozen=True)
class UpstreamRequest:
    url: str
    headers: Dict[str, str]
    body: bytes
    # query parameters are kept apart from url so credentials never show up in it
    params: Dict[str, str] = field(default_factory=dict, repr=False)


class Usage(BaseModel):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class GenerationResult(BaseModel):
    content: str
    usage: Usage = Field(default_factory=Usage)


class StreamEvent(BaseModel):
    content: Optional[str] = None
    error: Optional[str] = None
    done: bool = False

    @classmethod
    def chunk(cls, content: str) -> "StreamEvent":
        return cls(content=content, done=False)

    @classmethod
    def finished(cls) -> "StreamEvent":
        return cls(done=True)

    @classmethod
    def failure(cls, message: str) -> "StreamEvent":
        return cls(error=message, done=True)

    def payload(self) -> Dict[str, object]:
        return self.model_dump(exclude_none=True)


class Dialect:
    """Wire protocol of one provider kind."""

    name = "abstract"

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
        raise NotImplementedError

    def parse_response(self, profile: ProviderProfile, raw: bytes) -> GenerationResult:
        raise NotImplementedError

    def relay_stream(self, profile: ProviderProfile, lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
        raise NotImplementedError
