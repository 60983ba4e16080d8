from typing import Dict, Mapping, Optional

from genrelay.providers.anthropic import AnthropicDialect
from genrelay.providers.base import Dialect, ProviderKind, ProviderProfile
from genrelay.providers.gemini import GeminiDialect
from genrelay.providers.ollama import OllamaDialect
from genrelay.providers.openai_compat import OpenAICompatDialect

# one entry per provider kind; a new kind is a new dialect plus a line here
DialectTable = Mapping[ProviderKind, Dialect]


def default_dialects() -> Dict[ProviderKind, Dialect]:
    return {
        ProviderKind.OPENAI_COMPATIBLE: OpenAICompatDialect(),
        ProviderKind.OLLAMA: OllamaDialect(),
        ProviderKind.GOOGLE_GEMINI: GeminiDialect(),
        ProviderKind.ANTHROPIC: AnthropicDialect(),
    }


def get_dialect(profile: ProviderProfile, table: Optional[DialectTable] = None) -> Dialect:
    dialects = table if table is not None else default_dialects()
    dialect = dialects.get(profile.kind)
    if dialect is None:
        return dialects.get(ProviderKind.OPENAI_COMPATIBLE) or OpenAICompatDialect()
    return dialect
