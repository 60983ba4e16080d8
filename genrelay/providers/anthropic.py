from typing import Dict

from genrelay.providers.base import JSON_HEADERS, ProviderProfile
from genrelay.providers.openai_compat import OpenAICompatDialect

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicDialect(OpenAICompatDialect):
    # Anthropic's OpenAI-compatible endpoint; only authentication differs
    name = "anthropic"

    def headers(self, profile: ProviderProfile) -> Dict[str, str]:
        return {
            **JSON_HEADERS,
            "x-api-key": profile.credential,
            "anthropic-version": ANTHROPIC_VERSION,
        }
