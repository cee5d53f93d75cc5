# src/daily_flow/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the alert scheduler on an
asyncio loop until SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _serve(state: AppState) -> None:
    stop_main = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _handle_signal(signum: int) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handle_signal, sig)
        except (NotImplementedError, RuntimeError):
            # Some platforms (Windows) do not support loop signal handlers.
            pass

    if state.settings.scheduler_enabled:
        state.scheduler.start()
    else:
        logger.info("Alert scheduler disabled by settings.")

    try:
        await stop_main.wait()
    finally:
        await state.scheduler.stop()


def main() -> None:
    settings = get_settings()

    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_serve(state))
    except KeyboardInterrupt:
        pass
    finally:
        state.task_store.close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
