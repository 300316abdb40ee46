"""Structured fan-out/join for model votes and matcher tasks.

Every join absorbs per-task failures (logged, contributing nothing) but never
absorbs an interruption: cancellation of the awaiting task, or a
UserInterruptedError raised by any child, is recorded on the scope and
re-raised by the owner once the current detection attempt has finished.
"""
import asyncio
import logging
from typing import Awaitable, Iterable, TypeVar

from ..errors import UserInterruptedError

log = logging.getLogger(__name__)

T = TypeVar("T")


class InterruptionScope:
    """Per-call collector for an interruption seen at any join point."""

    def __init__(self):
        self.error: BaseException | None = None

    @property
    def interrupted(self) -> bool:
        return self.error is not None

    def record(self, error: BaseException):
        if self.error is None:
            log.warning(f"Execution interrupted: {type(error).__name__}")
            self.error = error

    def raise_if_interrupted(self):
        if self.error is not None:
            raise self.error

    async def gather(self, aws: Iterable[Awaitable[T]], description: str) -> list[T]:
        """Run all awaitables concurrently and return the successful results.

        After an interruption no new work is started: the awaitables are
        closed and an empty list is returned.
        """
        aws = list(aws)
        if self.interrupted:
            for aw in aws:
                if asyncio.iscoroutine(aw):
                    aw.close()
            return []
        if not aws:
            return []

        tasks = [asyncio.ensure_future(aw) for aw in aws]
        pending = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
                if any(_is_user_interruption(t) for t in done):
                    break
        except asyncio.CancelledError as e:
            self.record(e)
        finally:
            if pending:
                for t in pending:
                    t.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

        results = []
        for t in tasks:
            if t.cancelled():
                continue
            error = t.exception()
            if error is None:
                results.append(t.result())
            elif isinstance(error, UserInterruptedError):
                self.record(error)
            else:
                log.warning(f"{description} task failed: {type(error).__name__}: {error}")
        return results


def _is_user_interruption(task: asyncio.Future) -> bool:
    return not task.cancelled() and isinstance(task.exception(), UserInterruptedError)
