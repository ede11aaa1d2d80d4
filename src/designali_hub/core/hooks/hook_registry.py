"""Hook registry - listener registration and dispatch.

The HookRegistry provides:
- Registration of listeners with filters and priority
- Dispatch in priority order, FIFO within the same priority
- Tag-based filtering (e.g. only events of the "tools" collection)
- Error isolation: a failing listener is logged and the rest still run

Dispatch is synchronous because it happens inside change application,
which must complete within one event-loop callback. Coroutine listeners
are scheduled as tasks on the running loop.
"""

import asyncio
import inspect
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from designali_hub.core.hooks.hook_events import HookEvent
from designali_hub.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RegisteredHook:
    """Internal representation of a registered listener.

    Attributes:
        id: Unique identifier for this registration.
        event: The event this hook is registered for (or HookEvent.ANY).
        callback: Callable invoked as callback(event, data).
        filters: Tag-based filters (e.g., {"collection": "tools"}).
        priority: Execution priority (higher = earlier).
        registration_order: Order in which this hook was registered.
    """

    id: str
    event: str
    callback: Callable
    filters: dict[str, Any] = field(default_factory=dict)
    priority: int = 0
    registration_order: int = 0


class HookRegistry:
    """Listener registration and dispatch engine.

    Example:
        registry = HookRegistry()
        hook_id = registry.register(
            event=HookEvent.RECORD_UPDATED,
            callback=lambda event, data: print(data["record"]),
            filters={"collection": "tools"},
        )
        registry.emit(HookEvent.RECORD_UPDATED, {"record": record}, filters={"collection": "tools"})
        registry.unregister(hook_id)
    """

    def __init__(self) -> None:
        """Initialize the hook registry."""
        self._hooks: dict[str, list[RegisteredHook]] = {}
        self._registration_counter: int = 0
        self._hook_map: dict[str, RegisteredHook] = {}
        self._tasks: set[asyncio.Task] = set()

    def register(
        self,
        event: str,
        callback: Callable,
        filters: Optional[dict[str, Any]] = None,
        priority: int = 0,
    ) -> str:
        """Register a listener for an event.

        Args:
            event: Hook event name, or HookEvent.ANY for every event.
            callback: Callable accepting (event, data).
            filters: Optional tag-based filters. The hook only fires if all
                     filter conditions match the emit-time filters.
            priority: Execution priority. Higher priority hooks run first.

        Returns:
            Unique hook_id string for later removal.
        """
        hook_id = f"hook_{uuid.uuid4().hex[:12]}"
        self._registration_counter += 1

        hook = RegisteredHook(
            id=hook_id,
            event=event,
            callback=callback,
            filters=filters or {},
            priority=priority,
            registration_order=self._registration_counter,
        )

        self._hooks.setdefault(event, []).append(hook)
        self._hook_map[hook_id] = hook

        logger.debug(
            "Hook registered",
            hook_id=hook_id,
            hook_event=event,
            priority=priority,
            filters=filters,
        )
        return hook_id

    def unregister(self, hook_id: str) -> bool:
        """Remove a registered listener.

        Args:
            hook_id: The unique ID returned from register().

        Returns:
            True if the hook was removed, False if not found.
        """
        hook = self._hook_map.pop(hook_id, None)
        if hook is None:
            logger.debug("Hook not found for unregister", hook_id=hook_id)
            return False

        remaining = [h for h in self._hooks.get(hook.event, []) if h.id != hook_id]
        if remaining:
            self._hooks[hook.event] = remaining
        else:
            self._hooks.pop(hook.event, None)

        logger.debug("Hook unregistered", hook_id=hook_id, hook_event=hook.event)
        return True

    def emit(
        self,
        event: str,
        data: Any = None,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[str]:
        """Dispatch an event to all matching listeners.

        Listeners run in priority order (higher first), FIFO within equal
        priority. Wildcard listeners take part in the same ordering.

        Args:
            event: Hook event name.
            data: Payload passed to every listener.
            filters: Emit-time tags matched against each hook's filters.

        Returns:
            Error messages of listeners that raised (empty on success).
        """
        hooks = list(self._hooks.get(event, []))
        if event != HookEvent.ANY:
            hooks.extend(self._hooks.get(HookEvent.ANY, []))
        if not hooks:
            return []

        matching = self._filter_hooks(hooks, filters)
        ordered = sorted(matching, key=lambda h: (-h.priority, h.registration_order))

        errors: list[str] = []
        for hook in ordered:
            try:
                result = hook.callback(event, data)
                if inspect.isawaitable(result):
                    self._schedule(hook, event, result)
            except Exception as e:
                logger.error(
                    "Hook execution failed",
                    hook_id=hook.id,
                    hook_event=event,
                    error=str(e),
                )
                errors.append(f"Hook {hook.id} failed: {e}")
        return errors

    def _schedule(self, hook: RegisteredHook, event: str, awaitable: Any) -> None:
        """Run a coroutine listener as a task on the running loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "Coroutine hook dropped outside an event loop",
                hook_id=hook.id,
                hook_event=event,
            )
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = loop.create_task(awaitable)
        self._tasks.add(task)

        def _done(finished: asyncio.Task) -> None:
            self._tasks.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                logger.error(
                    "Hook execution failed",
                    hook_id=hook.id,
                    hook_event=event,
                    error=str(finished.exception()),
                )

        task.add_done_callback(_done)

    def _filter_hooks(
        self,
        hooks: list[RegisteredHook],
        filters: Optional[dict[str, Any]],
    ) -> list[RegisteredHook]:
        """Keep hooks whose filters are all satisfied by the emit-time filters.

        A hook without filters always matches; an emit without filters
        reaches every hook.
        """
        if not filters:
            return hooks

        matching = []
        for hook in hooks:
            if all(filters.get(key) == value for key, value in hook.filters.items()):
                matching.append(hook)
        return matching

    def get_hooks_for_event(self, event: str) -> list[RegisteredHook]:
        """Get all hooks registered for a specific event."""
        return list(self._hooks.get(event, []))

    def get_hook_count(self, event: Optional[str] = None) -> int:
        """Get the number of registered hooks, optionally for one event."""
        if event is not None:
            return len(self._hooks.get(event, []))
        return len(self._hook_map)

    def clear(self) -> None:
        """Remove every registered hook."""
        self._hooks.clear()
        self._hook_map.clear()
        logger.debug("All hooks cleared")
