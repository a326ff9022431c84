import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Deque, List

from .enums import Severity
from .models import Notification

log = logging.getLogger("ByteSession")


class NotificationQueue:
    """
    Очередь коротких уведомлений для UI.

    Каждое ``push`` ставит таймер на ``lifetime`` секунд; по таймеру
    удаляется САМОЕ СТАРОЕ оставшееся сообщение, а не то, что таймер
    поставило. Дубликаты не схлопываются.
    """

    def __init__(self, lifetime: float = 6.0):
        self.lifetime = lifetime
        self._items: Deque[Notification] = deque()
        self._timers: List[asyncio.TimerHandle] = []

    def push(self, severity: Severity, message: str) -> Notification:
        item = Notification(severity=Severity(severity), message=message,
                            enqueued_at=datetime.now())
        self._items.append(item)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None                 # без event loop – только tick()
        if loop is not None:
            now = loop.time()
            self._timers = [t for t in self._timers if t.when() > now]
            self._timers.append(loop.call_later(self.lifetime, self.tick))
        return item

    def tick(self) -> None:
        if self._items:
            expired = self._items.popleft()
            log.debug("notification expired: %s", expired.message)

    def items(self) -> List[Notification]:
        return list(self._items)

    def clear(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
