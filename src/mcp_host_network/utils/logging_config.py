"""Logging configuration for ifcraft.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing for commits and tool calls

Environment Variables:
    IFCRAFT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    IFCRAFT_LOG_FILE: Path to log file (default: ~/.ifcraft/ifcraft.log)
    IFCRAFT_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    IFCRAFT_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from mcp_host_network.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("netplan_commit")
    def commit(self, document):
        ...

    # Or use a context manager for sections:
    with timed_section_sync("apply", subject="eth0"):
        ...
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import asynccontextmanager, contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("ifcraft.perf")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("IFCRAFT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".ifcraft" / "ifcraft.log"
    path_str = os.environ.get("IFCRAFT_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging(console: bool = True) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (respects IFCRAFT_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger for timing metrics

    Args:
        console: Attach the console handler. The MCP server talks over
            stdio, so it logs to stderr only through this handler.
    """
    log_level = get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("IFCRAFT_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("IFCRAFT_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-25s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    handlers: list[logging.Handler] = []

    if console:
        # StreamHandler writes to stderr, never to the stdio protocol stream
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(main_format)
        handlers.append(console_handler)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)
    handlers.append(file_handler)

    perf_log_file = log_file.parent / "ifcraft-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    package_logger = logging.getLogger("mcp_host_network")
    package_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    for handler in handlers:
        package_logger.addHandler(handler)

    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(perf_handler)
    perf_logger.propagate = False

    package_logger.info(
        f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}"
    )


def _record(
    operation: str,
    subject: Optional[str],
    start: float,
    error: Optional[BaseException] = None,
    extra: Optional[dict] = None,
) -> None:
    """Write one perf line: OK at INFO, FAIL at WARNING."""
    elapsed = (time.perf_counter() - start) * 1000
    outcome = "OK" if error is None else f"FAIL: {error}"
    msg = f"{operation:20s} | {subject or 'N/A':15s} | {elapsed:8.2f}ms | {outcome}"
    if extra:
        msg += " | " + " | ".join(f"{k}={v}" for k, v in extra.items())
    perf_logger.log(logging.INFO if error is None else logging.WARNING, msg)


def timed(operation: str, subject: Optional[str] = None):
    """Decorator to log execution time of sync/async functions.

    Args:
        operation: Name of the operation (e.g., "netplan_commit")
        subject: What the operation acts on (e.g., an interface name)
    """
    def decorator(func: Callable) -> Callable:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                async with timed_section(operation, subject):
                    return await func(*args, **kwargs)
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            with timed_section_sync(operation, subject):
                return func(*args, **kwargs)
        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, subject: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Usage:
        async with timed_section("tool:set_interface", subject="eth0"):
            ...
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        _record(operation, subject, start, e, extra)
        raise
    _record(operation, subject, start, extra=extra)


@contextmanager
def timed_section_sync(operation: str, subject: Optional[str] = None, **extra):
    """Sync context manager for timing code sections."""
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        _record(operation, subject, start, e, extra)
        raise
    _record(operation, subject, start, extra=extra)
