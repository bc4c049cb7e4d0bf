# src/cadence/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either runs a single command
(`cadence schedule`, `cadence week next`, ...) or starts the console REPL.
"""

from __future__ import annotations

import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..cli.commands import registry as command_registry
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.ports import TaskStoreError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    store = getattr(state, "task_store", None)
    close = getattr(store, "close", None)
    if callable(close):
        try:
            close()
        except Exception:
            logger.debug("Task store close failed.", exc_info=True)


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    args = list(sys.argv[1:] if argv is None else argv)

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    try:
        state = create_initial_state(settings=settings)
    except RuntimeError as e:
        logger.error("%s", e)
        return 2

    try:
        if args:
            try:
                reply = command_registry.handle(state, "/" + " ".join(args).lstrip("/"))
            except TaskStoreError as e:
                logger.error("Task store error: %s", e)
                print(f"Task store error: {e}")
                return 1
            print(reply)
        else:
            run_console_loop(state)
    finally:
        _shutdown(state)
        logger.info("Bye.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
