"""Run blocking store calls off the event loop under a timeout."""

import asyncio
import logging
from collections.abc import Callable
from typing import TypeVar

from intake_tracker.domain.errors import DependencyError, IntakeError

T = TypeVar("T")

_logger = logging.getLogger(__name__)


async def run_blocking(
    func: Callable[..., T],
    *args: object,
    timeout_seconds: float,
    operation: str,
) -> T:
    """Await a blocking call in a worker thread.

    Domain errors pass through unchanged. Timeouts and any other failure
    surface as DependencyError tagged with the operation name.
    """
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args), timeout=timeout_seconds
        )
    except IntakeError:
        raise
    except TimeoutError as exc:
        raise DependencyError("Persistence timed out", operation=operation) from exc
    except Exception as exc:
        _logger.exception("Persistence call failed: operation=%s", operation)
        raise DependencyError("Persistence unavailable", operation=operation) from exc
