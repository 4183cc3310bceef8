# services/notifications.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

log = logging.getLogger(__name__)

# (event, payload) -> None. Event names: schedule_generated, result_recorded,
# competition_reset.
Notifier = Callable[[str, Mapping[str, Any]], Awaitable[None]]

SCHEDULE_GENERATED = "schedule_generated"
RESULT_RECORDED = "result_recorded"
COMPETITION_RESET = "competition_reset"

# strong refs so pending tasks are not garbage collected mid-flight
_pending: set[asyncio.Task] = set()


async def _deliver(notifier: Notifier, event: str, payload: Mapping[str, Any]) -> None:
    try:
        await notifier(event, payload)
    except Exception:
        log.exception("Notification %s failed (payload=%r)", event, dict(payload))


def fire_and_forget(
    notifier: Optional[Notifier], event: str, payload: Mapping[str, Any]
) -> Optional[asyncio.Task]:
    """
    Schedule `notifier(event, payload)` without awaiting it. Only call after
    the transaction has committed; failures are logged, never raised.
    """
    if notifier is None:
        return None
    task = asyncio.get_running_loop().create_task(_deliver(notifier, event, dict(payload)))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task
