"""Sequential multi-step operations with best-effort compensation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Compensation = Callable[[Any], Awaitable[None]]


@dataclass
class CompletedStep:
    """A step that ran successfully, with the result its compensation receives."""

    name: str
    result: Any
    compensation: Compensation | None


class Saga:
    """
    Run steps in order and undo completed ones when a later step fails.

    Use as an async context manager::

        async with Saga("create-opportunity") as saga:
            path = await saga.run("upload-image", upload, compensate=remove)
            repository.insert(...)

    When the body raises, compensations of completed steps run in reverse
    order.  A failing compensation is logged and skipped; the original
    exception always propagates.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.completed: list[CompletedStep] = []

    async def run(
        self,
        name: str,
        action: Callable[[], Awaitable[Any]],
        compensate: Compensation | None = None,
    ) -> Any:
        """
        Execute one step and record it.

        Args:
            name: Step name used in logs
            action: Coroutine factory performing the step
            compensate: Coroutine function undoing the step, given its result

        Returns:
            The step's result
        """
        result = await action()
        self.completed.append(CompletedStep(name=name, result=result, compensation=compensate))
        return result

    async def compensate(self) -> None:
        """Undo completed steps in reverse order, logging compensation failures."""
        while self.completed:
            step = self.completed.pop()
            if step.compensation is None:
                continue
            try:
                await step.compensation(step.result)
                logger.info("%s: compensated step %s", self.name, step.name)
            except Exception as exc:
                logger.warning("%s: compensation for step %s failed: %s", self.name, step.name, exc)

    async def __aenter__(self) -> "Saga":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            logger.info("%s failed at %s; compensating %d step(s)", self.name, exc_type.__name__, len(self.completed))
            await self.compensate()
        return False
