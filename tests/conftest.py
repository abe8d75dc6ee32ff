import asyncio
import json
import logging
import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from helpdesk.app_logging import ACCESS_LOGGER_NAME, APP_LOGGER_NAME
from helpdesk.commerce.seed import seed_demo_data
from helpdesk.commerce.store import InMemoryCommerceStore
from helpdesk.config import Settings
from helpdesk.container import build_container
from helpdesk.conversations.repository import InMemoryConversationRepository
from helpdesk.llm import RoundResult, TextDelta, ToolCallRequest, Usage


class ScriptedGeneration:
    """Generation service double replaying scripted replies in order.

    ``completions`` feed ``complete`` (routing and summaries); ``rounds`` feed
    ``stream_round``, one list of items per round. Exceptions placed in either
    script are raised at that point.
    """

    def __init__(self, completions=None, rounds=None):
        self.completions = list(completions or [])
        self.rounds = list(rounds or [])
        self.complete_calls = []
        self.round_calls = []

    async def complete(self, messages, **params):
        self.complete_calls.append({"messages": list(messages), "params": params})
        if not self.completions:
            raise RuntimeError("no scripted completion left")
        reply = self.completions.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def stream_round(self, messages, tools=(), **params):
        self.round_calls.append(
            {"messages": list(messages), "tools": list(tools), "params": params}
        )
        if not self.rounds:
            raise RuntimeError("no scripted round left")
        for item in self.rounds.pop(0):
            if isinstance(item, BaseException):
                raise item
            yield item


def routing_reply(agent, confidence=0.9, reasoning="", entities=()):
    return json.dumps(
        {
            "agent": agent,
            "confidence": confidence,
            "reasoning": reasoning,
            "entities": list(entities),
        }
    )


def text_round(*chunks, prompt_tokens=10, completion_tokens=5):
    return [TextDelta(chunk) for chunk in chunks] + [
        RoundResult(
            text="".join(chunks),
            usage=Usage(prompt_tokens, completion_tokens),
            finish_reason="stop",
        )
    ]


def tool_round(*calls, prompt_tokens=20, completion_tokens=8):
    requests = [
        ToolCallRequest(
            id=f"call_{index}",
            name=name,
            arguments=arguments,
            raw_arguments=json.dumps(arguments),
        )
        for index, (name, arguments) in enumerate(calls)
    ]
    return [
        RoundResult(
            tool_calls=requests,
            usage=Usage(prompt_tokens, completion_tokens),
            finish_reason="tool_calls",
        )
    ]


def collect(events):
    """Drain an async event stream on a fresh event loop."""

    async def _drain():
        return [event async for event in events]

    return asyncio.run(_drain())


def event_types(events):
    return [event.type.value for event in events]


@pytest.fixture
def store():
    commerce = InMemoryCommerceStore()
    seed_demo_data(commerce)
    return commerce


@pytest.fixture
def repository():
    return InMemoryConversationRepository()


@pytest.fixture
def generation():
    return ScriptedGeneration()


@pytest.fixture
def container(generation, repository, store):
    return build_container(
        Settings(), generation=generation, repository=repository, store=store
    )


@pytest.fixture
def log_dir(monkeypatch, tmp_path):
    """Point LOG_DIR at a temp dir; drop the file handlers afterwards."""

    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    loggers = [logging.getLogger(name) for name in (APP_LOGGER_NAME, ACCESS_LOGGER_NAME)]
    for logger in loggers:
        logger.handlers.clear()
    yield tmp_path
    for logger in loggers:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
