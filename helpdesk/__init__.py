"""Helpdesk agent router: routing, context management and streaming tool orchestration."""

from .__version__ import __version__

__all__ = ["__version__"]
