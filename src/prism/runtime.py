"""Taichi runtime and logging setup.

Example:
    >>> from prism.runtime import init_runtime, setup_logging
    >>> setup_logging("INFO")
    >>> init_runtime(num_threads=8)
    >>> from prism.core.integrator import render  # fields allocate here
"""

import logging

import taichi as ti

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def init_runtime(
    num_threads: int | None = None,
    debug: bool = False,
    random_seed: int = 0,
    log_level: str = "warn",
) -> None:
    """Initialize Taichi on the CPU backend.

    Each pixel of a render pass is processed by exactly one of the
    ``num_threads`` workers that Taichi spawns for the outermost kernel loop.

    Args:
        num_threads: Worker thread count. None lets Taichi use every core.
        debug: Enable Taichi's bounds checking (slow).
        random_seed: Seed for ``ti.random``. The renderer does not use it,
            it only affects user kernels.
        log_level: Taichi's own log level ("trace" to "error").

    Raises:
        ValueError: If num_threads is not positive.
    """
    kwargs = {
        "arch": ti.cpu,
        "debug": debug,
        "random_seed": random_seed,
        "log_level": log_level,
    }
    if num_threads is not None:
        if num_threads <= 0:
            raise ValueError(f"num_threads must be positive, got {num_threads}")
        kwargs["cpu_max_num_threads"] = num_threads

    ti.init(**kwargs)
    logger.info("Taichi initialized on CPU (threads=%s)", num_threads or "auto")


def setup_logging(level: str = "INFO", name: str = "prism") -> logging.Logger:
    """Attach a console handler to the package logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        name: Logger to configure.

    Returns:
        The configured logger.
    """
    log = logging.getLogger(name)
    log.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not any(isinstance(h, logging.StreamHandler) for h in log.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)

    return log
