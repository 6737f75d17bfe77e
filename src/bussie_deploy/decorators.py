"""
Decorators for deployment steps: start/finish logging with timing, and retry.
"""

import functools
import logging
import time
from collections.abc import Callable
from typing import TypeVar, cast

T = TypeVar("T")


def log_step(
    label: str | None = None,
    level: int = logging.INFO,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Log the start, the end and the duration of a step.

    Usage:
        @log_step("build")
        def build_image(config, service, runner): ...

    Args:
        label: Name shown in the log (defaults to the function name)
        level: Log level of the start/finish messages
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        logger = logging.getLogger(func.__module__)
        step_name = label or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            logger.log(level, "Step %s started", step_name)
            start = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = time.monotonic() - start
                logger.error("Step %s failed after %.1fs: %s", step_name, elapsed, e)
                raise
            logger.log(level, "Step %s finished in %.1fs", step_name, time.monotonic() - start)
            return result

        return cast("Callable[..., T]", wrapper)

    return decorator


def retry(
    attempts: int = 3,
    initial_delay: float = 1.0,
    backoff: float = 1.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Retry a function when it raises one of ``exceptions``.

    The last error is re-raised once every attempt has failed.

    Args:
        attempts: Total number of attempts, at least 1
        initial_delay: Delay before the second attempt, in seconds
        backoff: Delay multiplier applied after each attempt
        exceptions: Exception types that trigger a retry
        sleep: Sleep function (injectable for tests)
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        logger = logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delay = initial_delay
            for attempt in range(1, attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    logger.warning(
                        "Attempt %s/%s of %s failed: %s. Retrying in %.1fs",
                        attempt,
                        attempts,
                        func.__name__,
                        e,
                        delay,
                    )
                    sleep(delay)
                    delay *= backoff
            return func(*args, **kwargs)

        return cast("Callable[..., T]", wrapper)

    return decorator


__all__ = ["log_step", "retry"]
