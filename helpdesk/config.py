"""Runtime configuration resolved from environment variables.

Settings are read once at process start (``load_settings``) and handed to the
service objects that need them. Every value has a default suitable for local
development so the demo server boots without any configuration.

Environment variables: DATABASE_URL, LLM_PROVIDER, LLM_API_KEY, LLM_BASE_URL,
ROUTER_MODEL, AGENT_MODEL, SUMMARY_MODEL, CONTEXT_MAX_TOKENS,
CONTEXT_KEEP_RECENT, ROUTING_CONFIDENCE_THRESHOLD, MAX_TOOL_STEPS,
SUMMARY_TIMEOUT, HEALTH_CHECK_TIMEOUT, CHAT_MAX_MESSAGE_LENGTH.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .providers import ProviderRegistry


@dataclass(frozen=True)
class Settings:
    """Immutable snapshot of the service configuration."""

    database_url: str | None = None
    llm_provider: str = "openai"
    llm_api_key: str | None = None
    llm_base_url: str | None = None
    router_model: str = "gpt-4o-mini"
    agent_model: str = "gpt-4o-mini"
    summary_model: str = "gpt-4o-mini"
    context_max_tokens: int = 8000
    context_keep_recent: int = 10
    routing_confidence_threshold: float = 0.6
    max_tool_steps: int = 5
    summary_timeout: float = 15.0
    health_check_timeout: float = 3.0
    chat_max_message_length: int = 10000


def load_settings(providers: ProviderRegistry | None = None) -> Settings:
    """Build :class:`Settings` from the current environment.

    ``LLM_API_KEY`` and ``LLM_BASE_URL`` win over the provider's own key
    variable and endpoint.

    Raises:
        ValueError: if ``LLM_PROVIDER`` names an unsupported provider.
    """

    registry = providers or ProviderRegistry()
    profile = registry.profile(os.getenv("LLM_PROVIDER", "openai"))
    credentials = registry.get_credentials(profile.name)
    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        llm_provider=profile.name,
        llm_api_key=os.getenv("LLM_API_KEY") or credentials.api_key,
        llm_base_url=os.getenv("LLM_BASE_URL") or credentials.base_url,
        router_model=os.getenv("ROUTER_MODEL", profile.default_model),
        agent_model=os.getenv("AGENT_MODEL", profile.default_model),
        summary_model=os.getenv("SUMMARY_MODEL", profile.default_model),
        context_max_tokens=int(os.getenv("CONTEXT_MAX_TOKENS", "8000")),
        context_keep_recent=int(os.getenv("CONTEXT_KEEP_RECENT", "10")),
        routing_confidence_threshold=float(
            os.getenv("ROUTING_CONFIDENCE_THRESHOLD", "0.6")
        ),
        max_tool_steps=int(os.getenv("MAX_TOOL_STEPS", "5")),
        summary_timeout=float(os.getenv("SUMMARY_TIMEOUT", "15")),
        health_check_timeout=float(os.getenv("HEALTH_CHECK_TIMEOUT", "3")),
        chat_max_message_length=int(os.getenv("CHAT_MAX_MESSAGE_LENGTH", "10000")),
    )
