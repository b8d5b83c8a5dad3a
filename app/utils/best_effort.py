"""
Best-effort operations: side paths whose failure is logged, never raised.

Voice isolation, persistence and delivery go through run_best_effort() so the
orchestrator cannot accidentally let one of their errors fail a request.
Critical-path adapter calls are awaited directly and raise.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union


@dataclass(frozen=True)
class BestEffortOutcome:
    name: str
    succeeded: bool
    value: Any = None
    error: Optional[str] = None


async def run_best_effort(
    name: str,
    operation: Callable[[], Awaitable[Any]],
    logger: Union[logging.Logger, logging.LoggerAdapter],
) -> BestEffortOutcome:
    """Await operation(); log and capture any exception instead of raising it."""
    try:
        value = await operation()
    except Exception as e:
        logger.warning(f"{name} failed (continuing): {e}")
        return BestEffortOutcome(name=name, succeeded=False, error=str(e))

    logger.info(f"{name} succeeded")
    return BestEffortOutcome(name=name, succeeded=True, value=value)
