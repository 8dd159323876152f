import asyncio
import functools
import time
from typing import Any, Callable, Optional, TypeVar

from loguru import logger

C = TypeVar("C", bound=Callable[..., Any])


def log_execution(enabled: bool = True, level: str = "DEBUG") -> Callable[[C], C]:
    """
    Decorator factory that logs how long the decorated callable ran and how it ended.

    Args:
        enabled (bool): Flag to enable or disable logging.
        level (str): Loguru level used for the log record.

    Returns:
        Callable: A decorator that wraps the target function or method.
    """

    def decorator(func: C) -> C:
        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                error: Optional[BaseException] = None
                try:
                    return await func(*args, **kwargs)
                except BaseException as exc:
                    error = exc
                    raise
                finally:
                    if enabled:
                        _log_execution_details(func, start_time, args, error, level)

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            error: Optional[BaseException] = None
            try:
                return func(*args, **kwargs)
            except BaseException as exc:
                error = exc
                raise
            finally:
                if enabled:
                    _log_execution_details(func, start_time, args, error, level)

        return sync_wrapper  # type: ignore

    return decorator


def _log_execution_details(
    f: Callable[..., Any],
    start: float,
    args: tuple,
    error: Optional[BaseException],
    level: str,
) -> None:
    """
    Logs execution details of the function or method.

    Args:
        f (Callable): The function or method whose details are to be logged.
        start (float): Start time of the function execution.
        args (tuple): Positional arguments; a leading instance names the owner class.
        error (Optional[BaseException]): Exception that ended the call, if any.
        level (str): Loguru level used for the log record.
    """
    elapsed = time.perf_counter() - start
    owner = f"{args[0].__class__.__name__}." if args and hasattr(args[0], f.__name__) else ""
    outcome = "ok" if error is None else f"failed with {error.__class__.__name__}"
    logger.log(level, f"{owner}{f.__name__} {outcome} in {elapsed:f} seconds")
