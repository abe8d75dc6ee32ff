"""Generation parameter defaults per call purpose."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class ResponseParameterStore:
    """Maintain generation parameters for routing, summarising and answering."""

    _DEFAULTS: Mapping[str, dict[str, Any]] = {
        "router": {"temperature": 0.3, "max_tokens": 512},
        "summary": {"temperature": 0.3, "max_tokens": 500},
        "agent": {"temperature": 0.7, "max_tokens": 2048},
    }

    def __init__(self, overrides: Mapping[str, Mapping[str, Any]] | None = None):
        self._defaults: dict[str, dict[str, Any]] = {
            purpose: dict(params) for purpose, params in self._DEFAULTS.items()
        }
        if overrides:
            for purpose, params in overrides.items():
                merged = self._defaults.setdefault(purpose.lower(), {})
                merged.update(params)

    def defaults_for(self, purpose: str) -> dict[str, Any]:
        """Return defaults for ``purpose``."""

        return dict(self._defaults.get(purpose.lower(), {"temperature": 0.5}))

    def merge(self, purpose: str, *overrides: dict[str, Any] | None) -> dict[str, Any]:
        """Merge multiple overrides on top of the purpose defaults."""

        params = self.defaults_for(purpose)
        for override in overrides:
            if override:
                params.update(override)
        return params
