"""Logging configuration for ifsync.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Timing decorators for intent and tool calls

Environment Variables:
    IFSYNC_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    IFSYNC_LOG_FILE: Path to log file (default: ~/.ifsync/ifsync.log)
    IFSYNC_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    IFSYNC_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from mcp_ifsync.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("discover_interfaces")
    async def discover_interfaces(self, node_id):
        ...

    async with timed_section("intent", device_id="R1", intent="interface.enable"):
        ...
"""
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("ifsync.perf")
main_logger = logging.getLogger("ifsync")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("IFSYNC_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".ifsync" / "ifsync.log"
    path_str = os.environ.get("IFSYNC_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging() -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects IFSYNC_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger for timing metrics

    Safe to call more than once; handlers are only attached the first time.
    """
    if getattr(main_logger, "_ifsync_configured", False):
        return

    log_level = get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("IFSYNC_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("IFSYNC_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-25s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Console goes to stderr; stdout belongs to the MCP stdio transport
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    perf_log_file = log_file.parent / "ifsync-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    main_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    main_logger.addHandler(console_handler)
    main_logger.addHandler(file_handler)

    # Package modules log under mcp_ifsync.*
    pkg_logger = logging.getLogger("mcp_ifsync")
    pkg_logger.setLevel(logging.DEBUG)
    pkg_logger.addHandler(console_handler)
    pkg_logger.addHandler(file_handler)

    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(perf_handler)
    perf_logger.propagate = False

    main_logger._ifsync_configured = True  # type: ignore[attr-defined]

    main_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")
    perf_logger.info(f"Performance logging to: {perf_log_file}")


def _perf_line(operation: str, device_id: Optional[str], elapsed: float, status: str) -> str:
    return f"{operation:20s} | {device_id or 'N/A':15s} | {elapsed:8.2f}ms | {status}"


def timed(operation: str, device_id: Optional[str] = None):
    """Decorator to log execution time of a coroutine function.

    Args:
        operation: Name of the operation (e.g., "discover_interfaces")
        device_id: Optional node identifier (defaults to the first string
            argument after self, such as the node id of discover_interfaces)
    """
    def decorator(func: Callable) -> Callable:
        def resolve_device(args: tuple) -> Optional[str]:
            if device_id is None and len(args) > 1 and isinstance(args[1], str):
                return args[1]
            return device_id

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            dev_id = resolve_device(args)
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000  # ms
                perf_logger.info(_perf_line(operation, dev_id, elapsed, "OK"))
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(_perf_line(operation, dev_id, elapsed, f"FAIL: {e}"))
                raise

        return wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, device_id: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Usage:
        async with timed_section("intent", device_id="R1", intent="interface.enable"):
            await executor.execute(...)
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
        elapsed = (time.perf_counter() - start) * 1000
        msg = _perf_line(operation, device_id, elapsed, "OK")
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.info(msg)
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        msg = _perf_line(operation, device_id, elapsed, f"FAIL: {e}")
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.warning(msg)
        raise
