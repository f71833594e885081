# src/rtm_client/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState (client + saved user), runs one command
through the registry and prints its reply.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..logging_setup import setup_logging
from .commands import registry

logger = logging.getLogger(__name__)


def _emit(text: str) -> None:
    print(text, flush=True)


async def run(argv: list[str], *, settings=None) -> int:
    settings = settings or get_settings()
    try:
        state = create_initial_state(settings=settings)
    except RuntimeError as e:
        # missing API key/secret
        print(str(e), file=sys.stderr)
        return 2

    try:
        reply = await registry.handle(state, argv, emit=_emit)
    finally:
        await state.client.aclose()

    print(reply)
    return 1 if reply.startswith("ERROR") else 0


def main(argv: list[str] | None = None) -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.debug("Starting %s...", getattr(settings, "app_name", "rtm"))

    args = sys.argv[1:] if argv is None else argv
    try:
        code = asyncio.run(run(args, settings=settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
