"""
Command-line entry point: stream a chat completion to stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

from .config import Configuration
from .llm.client import OpenAIClient
from .llm.models import ChatCompletionChunk
from .logging_utils import ContextualLogger, setup_logging

logger = ContextualLogger({"component": "cli"})


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="openai-sse",
        description="Stream a chat completion from an OpenAI-compatible API.",
    )
    parser.add_argument("prompt", help="User message to send")
    parser.add_argument("--model", help="Model name (defaults to client.model)")
    parser.add_argument("--system", help="Optional system message")
    parser.add_argument("--config", help="Path to an alternative config.yaml")
    return parser.parse_args(argv)


def build_params(args: argparse.Namespace, default_model: str) -> dict:
    messages = []
    if args.system:
        messages.append({"role": "system", "content": args.system})
    messages.append({"role": "user", "content": args.prompt})
    return {"model": args.model or default_model, "messages": messages}


async def main(argv: list[str] | None = None) -> int:
    """Stream one completion; returns the process exit code."""
    args = parse_args(argv)
    config = Configuration(args.config)
    setup_logging(config.get_logging_config().get("level", "INFO"))

    params = build_params(args, config.get_client_config().get("model", ""))
    failures: list[BaseException] = []

    def on_data(chunk: ChatCompletionChunk) -> None:
        sys.stdout.write(chunk.content)
        sys.stdout.flush()

    def on_error(error: BaseException) -> None:
        failures.append(error)

    def on_done() -> None:
        sys.stdout.write("\n")

    async with OpenAIClient.from_config(config) as client:
        session = client.chat.completions.stream(
            params, on_data, on_error=on_error, on_done=on_done
        )

        def signal_handler() -> None:
            """Cancel the in-flight stream on SIGINT/SIGTERM."""
            logger.info("Received shutdown signal, cancelling stream")
            session.cancel()

        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, signal_handler)

        await session.wait_closed()

    if failures:
        logger.error("Streaming failed", error_message=str(failures[0]))
        return 1
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
