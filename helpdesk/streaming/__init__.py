"""Event streaming for agent turns."""

from .events import GENERIC_ERROR_MESSAGE, StreamEvent, StreamEventType
from .orchestrator import StreamOrchestrator

__all__ = ["GENERIC_ERROR_MESSAGE", "StreamEvent", "StreamEventType", "StreamOrchestrator"]
