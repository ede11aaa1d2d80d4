"""Listener hooks for store, search and notification events.

Views register callbacks here to re-render when mirrored data changes.

Example usage:
    from designali_hub.core.hooks import HookEvent, HookRegistry

    registry = HookRegistry()

    def rerender(event, data):
        print(event, data)

    hook_id = registry.register(HookEvent.RECORD_INSERTED, rerender, filters={"collection": "tools"})
    registry.unregister(hook_id)
"""

from designali_hub.core.hooks.hook_events import (
    EVENT_CATEGORIES,
    HookCategory,
    HookEvent,
    get_all_events,
    is_record_event,
)
from designali_hub.core.hooks.hook_registry import HookRegistry, RegisteredHook

__all__ = [
    "EVENT_CATEGORIES",
    "HookCategory",
    "HookEvent",
    "HookRegistry",
    "RegisteredHook",
    "get_all_events",
    "is_record_event",
]
