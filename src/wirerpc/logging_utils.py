"""Runtime logging helpers."""

from __future__ import annotations

import inspect
import logging
import os
import sys

from loguru import logger

_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {message}"
_CONFIGURED = False


class InterceptHandler(logging.Handler):
    """Handler that forwards stdlib logging messages (httpx, asyncio) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame:
            filename = frame.f_code.co_filename
            is_logging = filename == logging.__file__
            is_frozen = "importlib" in filename and "_bootstrap" in filename
            if depth > 0 and not (is_logging or is_frozen):
                break
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def parse_log_filter(value: str | None = None) -> tuple[str, dict[str | None, str | int | bool]]:
    """Parse a WIRERPC_LOG_FILTER value.

    Format: "level" or "level,module=level,..."
    Examples:
        - "warning" - global WARNING level
        - "info,wirerpc.transport=debug" - wire logging at DEBUG
        - "info,wirerpc.client=false" - client logging disabled

    Returns:
        (global_level, module_filter_dict)
    """
    filter_env = (value if value is not None else os.getenv("WIRERPC_LOG_FILTER", "warning")).lower()
    parts = [p.strip() for p in filter_env.split(",") if p.strip()]

    filter_dict: dict[str | None, str | int | bool] = {}
    global_level = "warning"

    for part in parts:
        if "=" in part:
            module, level = part.split("=", 1)
            module = module.strip()
            level = level.strip()
            filter_dict[module] = False if level == "false" else level.upper()
        else:
            global_level = part

    return global_level, filter_dict


def configure_logging(verbose: bool = False) -> None:
    """Configure process-level logging once.

    ``verbose`` forces DEBUG regardless of WIRERPC_LOG_FILTER.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    global_level, module_filter = parse_log_filter()
    if verbose:
        global_level = "debug"

    # Per-module levels may be lower than the global one, so the sink
    # accepts everything and the filter decides.
    module_filter.setdefault("", global_level.upper())

    logger.remove()
    logger.add(
        sys.stderr,
        level=0,
        format=_FORMAT,
        backtrace=False,
        diagnose=False,
        filter=module_filter,
    )
    logging.getLogger().addHandler(InterceptHandler())
    logger.enable("wirerpc")

    _CONFIGURED = True
