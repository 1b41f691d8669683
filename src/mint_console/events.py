"""Notification channel between the console core and its presentation layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .base import Presenter
from .types import MessageLevel, Notification, Topic

logger = logging.getLogger(__name__)

Listener = Callable[[Notification], None]


class NotificationChannel:
    """Fan notifications out to the presenter and any extra listeners."""

    def __init__(self, presenter: Presenter | None = None) -> None:
        self._presenter = presenter
        self._listeners: list[Listener] = []

    @property
    def presenter(self) -> Presenter | None:
        return self._presenter

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def emit(self, notification: Notification) -> None:
        if self._presenter is not None:
            self._presenter.notify(notification)
        for listener in self._listeners:
            listener(notification)

    def state(self, topic: Topic, message: str = "", **data: Any) -> None:
        self.emit(Notification(topic=topic, message=message, data=data))

    def message(self, level: MessageLevel, message: str, **data: Any) -> None:
        self.emit(Notification(topic=Topic.MESSAGE, message=message, level=level, data=data))

    def info(self, message: str, **data: Any) -> None:
        self.message(MessageLevel.INFO, message, **data)

    def success(self, message: str, **data: Any) -> None:
        self.message(MessageLevel.SUCCESS, message, **data)

    def warning(self, message: str, **data: Any) -> None:
        self.message(MessageLevel.WARNING, message, **data)

    def error(self, message: str, **data: Any) -> None:
        self.message(MessageLevel.ERROR, message, **data)

    async def confirm(self, prompt: str) -> bool:
        """Ask the presenter for a yes/no answer; no presenter means no."""

        if self._presenter is None:
            logger.warning("Confirmation requested without a presenter; declining")
            return False
        return bool(await self._presenter.confirm(prompt))
