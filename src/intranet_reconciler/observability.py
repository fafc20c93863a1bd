"""
Logging Utilities.

Configures the loguru sink used by every command and provides timing helpers.
The reconciliation report is written to stdout, so log records go to stderr to
keep the report greppable.
"""

import sys
import time
from contextlib import contextmanager
from typing import Any

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss,SSS} - {level} - {message}"


def configure_logging(level: str = "INFO", sink: Any = None) -> None:
    """
    Replace loguru's default handler with a single formatted sink.

    Args:
        level: Minimum level to emit (e.g. "INFO", "DEBUG")
        sink: Destination for log records, defaults to stderr
    """
    logger.remove()
    logger.add(
        sink if sink is not None else sys.stderr,
        format=LOG_FORMAT,
        level=level,
    )


@contextmanager
def log_execution_time(logger_instance: Any, operation: str, **context):
    """
    Context manager to log execution time of an operation.

    Args:
        logger_instance: Logger instance (loguru logger or a bound child)
        operation: Name of the operation being timed
        **context: Additional context to include in log messages
    """
    context_str = " | ".join(f"{k}={v}" for k, v in context.items()) if context else ""
    full_context = f" | {context_str}" if context_str else ""

    start_time = time.time()
    logger_instance.info(f"Starting: {operation}{full_context}")

    try:
        yield
    except Exception as e:
        elapsed = time.time() - start_time
        logger_instance.opt(exception=True).error(
            f"Failed: {operation} | duration={elapsed:.2f}s{full_context} | error={e}"
        )
        raise
    else:
        elapsed = time.time() - start_time
        logger_instance.info(
            f"Completed: {operation} | duration={elapsed:.2f}s{full_context}"
        )
