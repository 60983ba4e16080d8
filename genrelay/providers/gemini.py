from typing import Dict

from genrelay.providers.base import JSON_HEADERS, ProviderProfile
from genrelay.providers.openai_compat import OpenAICompatDialect


class GeminiDialect(OpenAICompatDialect):
    """
    Google Gemini: model-scoped endpoint, key passed as the `key` query parameter.
    Body and response handling stay on the OpenAI-compatible shapes.
    """

    name = "gemini"

    def url(self, profile: ProviderProfile, model: str) -> str:
        return f"{profile.root_url}/models/{model}:generateContent"

    def headers(self, profile: ProviderProfile) -> Dict[str, str]:
        return dict(JSON_HEADERS)

    def params(self, profile: ProviderProfile) -> Dict[str, str]:
        return {"key": profile.credential}
