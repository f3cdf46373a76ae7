"""Interactive request/response loop."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Awaitable, Callable

from intent_router.agent.pipeline import AssistantPipeline
from intent_router.config import AppSettings
from intent_router.runtime import build_runtime

logger = logging.getLogger("intent_router")

ReadLine = Callable[[str], Awaitable[str | None]]


async def _read_stdin(prompt: str) -> str | None:
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


async def run_repl(
    pipeline: AssistantPipeline,
    *,
    read_line: ReadLine = _read_stdin,
    write: Callable[[str], None] = print,
) -> None:
    """Answer lines until `exit` (any case) or end of input."""

    while True:
        line = await read_line("\nYou: ")
        if line is None:
            break
        if not line.strip():
            continue
        if line.strip().lower() == "exit":
            break

        response = await pipeline.handle(line)
        write(f"Assistant: {response.text}")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="intent-router",
        description="Route questions to a world clock, runbook search, or ops advice.",
    )
    parser.add_argument("--offline", action="store_true", help="Use the offline hashing backend.")
    parser.add_argument("--corpus", help="JSON file with {id, title, body} documents.")
    parser.add_argument("--log-level", help="Override IRA_LOG_LEVEL.")
    return parser.parse_args(argv)


async def _main(args: argparse.Namespace) -> None:
    settings = AppSettings()
    overrides: dict[str, object] = {}
    if args.offline:
        overrides["backend"] = settings.backend.model_copy(update={"provider": "offline"})
    if args.corpus:
        overrides["corpus_path"] = args.corpus
    if overrides:
        settings = settings.model_copy(update=overrides)

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("=== Intent Routing + Deterministic Control Flow ===")

    runtime = await build_runtime(settings)
    await run_repl(runtime.pipeline)


def main(argv: list[str] | None = None) -> None:
    asyncio.run(_main(_parse_args(argv)))


if __name__ == "__main__":
    main()
