"""Helpers for joining independent coroutines."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Iterable, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def gather_all_or_nothing(awaitables: Iterable[Awaitable[T]]) -> List[T]:
    """Run every awaitable concurrently and return results in input order.

    The first failure is raised as soon as it happens and the remaining tasks
    are cancelled. Cancellation is best effort: a request already handed to a
    worker thread or to the node cannot be recalled, only its result dropped.
    """

    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    if not tasks:
        return []
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    failed = [task for task in tasks if task in done and task.exception() is not None]
    if failed:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
            for task in pending:
                if not task.cancelled():
                    task.exception()
            logger.debug("Cancelled %d sibling tasks after a failure", len(pending))
        raise failed[0].exception()  # type: ignore[misc]
    return [task.result() for task in tasks]
