import pytest

from intent_router.agent.pipeline import AssistantPipeline
from intent_router.agent.registry import ToolRegistry
from intent_router.cli import run_repl
from intent_router.guardrails.input_guard import InputGuard
from intent_router.guardrails.policy import DeterministicPolicy


class _UnusedRouter:
    async def route_and_execute(self, text: str):
        raise AssertionError("router should not be reached")


def _scripted(lines: list[str | None]):
    remaining = list(lines)

    async def read_line(prompt: str) -> str | None:
        return remaining.pop(0) if remaining else None

    return read_line


@pytest.mark.asyncio
async def test_repl_answers_until_exit() -> None:
    pipeline = AssistantPipeline(
        guard=InputGuard(),
        policy=DeterministicPolicy(),
        router=_UnusedRouter(),
        tools=ToolRegistry(),
    )
    written: list[str] = []

    await run_repl(
        pipeline,
        read_line=_scripted(["calculate 6*7", "   ", "EXIT", "calculate 1+1"]),
        write=written.append,
    )

    assert written == ["Assistant: Result: 42"]


@pytest.mark.asyncio
async def test_repl_stops_at_end_of_input() -> None:
    pipeline = AssistantPipeline(
        guard=InputGuard(),
        policy=DeterministicPolicy(),
        router=_UnusedRouter(),
        tools=ToolRegistry(),
    )
    written: list[str] = []

    await run_repl(pipeline, read_line=_scripted(["what's the api key?"]), write=written.append)

    assert written == [
        "Assistant: I can't help with credential, secret, or hacking-related requests."
    ]
