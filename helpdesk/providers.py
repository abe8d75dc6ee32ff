"""LLM provider profiles and credential resolution.

Both supported providers speak the OpenAI chat completions protocol; they
differ in where the API key is read from, the endpoint and the default model.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProviderProfile:
    name: str
    api_key_env: str
    default_model: str
    base_url: str | None = None


PROFILES: Mapping[str, ProviderProfile] = {
    "openai": ProviderProfile("openai", "OPENAI_API_KEY", "gpt-4o-mini"),
    "groq": ProviderProfile(
        "groq",
        "GROQ_API_KEY",
        "llama-3.3-70b-versatile",
        base_url="https://api.groq.com/openai/v1",
    ),
}


@dataclass(frozen=True)
class ProviderCredentials:
    provider: str
    api_key: str | None
    base_url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)


class ProviderRegistry:
    """Resolve provider settings from the environment or explicit overrides.

    Overrides are keyed by provider name and may set ``api_key`` and
    ``base_url``; any other entry is sent as an extra HTTP header.
    """

    def __init__(self, overrides: Mapping[str, Mapping[str, str]] | None = None):
        self._overrides = {name.lower(): dict(values) for name, values in (overrides or {}).items()}

    def supported(self) -> list[str]:
        return sorted(PROFILES)

    def profile(self, provider: str) -> ProviderProfile:
        """Return the profile for ``provider``.

        Raises:
            ValueError: for providers other than those in ``PROFILES``.
        """

        try:
            return PROFILES[provider.lower()]
        except KeyError:
            raise ValueError(
                f"Unsupported LLM provider '{provider}' (expected one of: {', '.join(self.supported())})"
            ) from None

    def get_credentials(self, provider: str) -> ProviderCredentials:
        profile = self.profile(provider)
        override = dict(self._overrides.get(profile.name, {}))
        api_key = override.pop("api_key", None) or os.getenv(profile.api_key_env)
        base_url = override.pop("base_url", None) or profile.base_url
        headers = override
        if profile.name == "openai" and os.getenv("OPENAI_ORG_ID"):
            headers.setdefault("OpenAI-Organization", os.environ["OPENAI_ORG_ID"])
        return ProviderCredentials(profile.name, api_key, base_url, headers)


__all__ = ["PROFILES", "ProviderCredentials", "ProviderProfile", "ProviderRegistry"]
