"""Tool declarations shared by the specialist agents.

A tool is a named function the model may call mid-generation. Parameters are
declared with one of four primitive kinds. Whether a parameter is optional is
taken from its explicit ``optional`` flag; declarations that leave the flag
unset fall back to the older convention of writing "optional" somewhere in
the description.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from ..errors import ToolArgumentError

PARAMETER_KINDS = ("string", "number", "boolean", "array")

ToolExecutor = Callable[[dict[str, Any], str], Any]

_TRUE_STRINGS = {"true", "yes", "1"}
_FALSE_STRINGS = {"false", "no", "0"}


@dataclass(frozen=True)
class ToolParameter:
    kind: str
    description: str
    optional: bool | None = None

    def __post_init__(self) -> None:
        if self.kind not in PARAMETER_KINDS:
            raise ValueError(f"Unsupported parameter kind: {self.kind}")

    @property
    def is_optional(self) -> bool:
        if self.optional is not None:
            return self.optional
        return "optional" in self.description.lower()

    def json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.kind, "description": self.description}
        if self.kind == "array":
            schema["items"] = {}
        return schema

    def coerce(self, name: str, value: Any) -> Any:
        """Return ``value`` converted to this parameter's kind.

        Models occasionally send numbers and booleans as strings; those are
        converted. Anything else that does not fit raises ToolArgumentError.
        """

        if self.kind == "string":
            if isinstance(value, str):
                return value
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return str(value)
        elif self.kind == "number":
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            number = None
            if isinstance(value, float):
                number = value
            elif isinstance(value, str):
                try:
                    number = float(value)
                except ValueError:
                    pass
            if number is not None:
                if not math.isfinite(number):
                    raise ToolArgumentError(f"Parameter '{name}' must be a finite number")
                if isinstance(value, str) and number.is_integer():
                    return int(number)
                return number
        elif self.kind == "boolean":
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS | _FALSE_STRINGS:
                return value.strip().lower() in _TRUE_STRINGS
        elif self.kind == "array":
            if isinstance(value, (list, tuple)):
                return list(value)
        raise ToolArgumentError(f"Parameter '{name}' expects {self.kind}, got {type(value).__name__}")


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    execute: ToolExecutor
    parameters: Mapping[str, ToolParameter] = field(default_factory=dict)

    def required_parameters(self) -> list[str]:
        return [key for key, param in self.parameters.items() if not param.is_optional]

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {key: param.json_schema() for key, param in self.parameters.items()},
            "required": self.required_parameters(),
        }

    def as_function_schema(self) -> dict[str, Any]:
        """Flattened function-call declaration (OpenAI/Groq ``tools`` entry)."""

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }

    def as_input_schema(self) -> dict[str, Any]:
        """JSON-schema-object declaration (``name``/``description``/``input_schema``)."""

        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters_schema(),
        }

    def coerce_arguments(self, arguments: Mapping[str, Any] | None) -> dict[str, Any]:
        """Validate ``arguments`` against the declared parameters.

        Unknown keys are dropped and ``None`` values are treated as absent.
        """

        arguments = arguments or {}
        coerced: dict[str, Any] = {}
        missing: list[str] = []
        for key, param in self.parameters.items():
            value = arguments.get(key)
            if value is None:
                if not param.is_optional:
                    missing.append(key)
                continue
            coerced[key] = param.coerce(key, value)
        if missing:
            raise ToolArgumentError(
                f"Tool '{self.name}' missing required parameters: {', '.join(missing)}"
            )
        return coerced


# ---------------------------------------------------------------------------
# Result helpers; tool results must be JSON-serialisable.


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def money(value: Decimal | float | int | None) -> str | None:
    if value is None:
        return None
    return str(Decimal(str(value)).quantize(Decimal("0.01")))


__all__ = ["PARAMETER_KINDS", "Tool", "ToolExecutor", "ToolParameter", "isoformat", "money"]
