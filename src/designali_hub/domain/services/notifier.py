"""Toast notifier.

Keeps a bounded history of the toasts shown to the user and forwards each
one to the session's hook registry so a presentation layer can render it.
"""

from collections import deque
from typing import Callable

from designali_hub.core.hooks import HookEvent, HookRegistry
from designali_hub.core.logging import get_logger
from designali_hub.domain.entities.toast import Toast, ToastLevel

logger = get_logger(__name__)


class Notifier:
    """Produces user-visible toasts.

    Example:
        notifier = Notifier(history_size=10)
        notifier.success("Tool created", collection="tools")
        notifier.history[-1].message  # "Tool created"
    """

    def __init__(self, history_size: int = 50, hooks: HookRegistry | None = None) -> None:
        self.hooks = hooks or HookRegistry()
        self._history: deque[Toast] = deque(maxlen=history_size)

    def notify(self, level: ToastLevel, message: str, collection: str | None = None) -> Toast:
        """Record a toast and dispatch it to TOAST_CREATED listeners."""
        toast = Toast(level=level, message=message, collection=collection)
        self._history.append(toast)

        if level is ToastLevel.ERROR:
            logger.warning("Error toast shown", message=message, collection=collection)
        else:
            logger.debug("Toast shown", level=level.value, message=message, collection=collection)

        self.hooks.emit(HookEvent.TOAST_CREATED, toast, filters={"level": level.value})
        return toast

    def success(self, message: str, collection: str | None = None) -> Toast:
        return self.notify(ToastLevel.SUCCESS, message, collection)

    def error(self, message: str, collection: str | None = None) -> Toast:
        return self.notify(ToastLevel.ERROR, message, collection)

    def info(self, message: str, collection: str | None = None) -> Toast:
        return self.notify(ToastLevel.INFO, message, collection)

    def warning(self, message: str, collection: str | None = None) -> Toast:
        return self.notify(ToastLevel.WARNING, message, collection)

    def on_toast(self, listener: Callable[[Toast], None]) -> Callable[[], None]:
        """Call listener with every new toast. Returns an unsubscribe callable."""
        hook_id = self.hooks.register(
            HookEvent.TOAST_CREATED,
            lambda event, toast: listener(toast),
        )
        return lambda: self.hooks.unregister(hook_id)

    @property
    def history(self) -> list[Toast]:
        """Toasts shown so far, oldest first, bounded by history_size."""
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()
