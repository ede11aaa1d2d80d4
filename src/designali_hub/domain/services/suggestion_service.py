"""Tool suggestions: the local half of the AI suggestion flow.

A suggestion provider answers with ``{"tools": [{name, description,
category, url}, ...]}``. This service validates that answer, drops tools
the user already has and adds the chosen ones to the tools store.
"""

import json
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from designali_hub.core.exceptions import MalformedEvent, SyncError
from designali_hub.core.logging import get_logger
from designali_hub.domain.entities.record import Record
from designali_hub.domain.services.collection_store import CollectionStore

logger = get_logger(__name__)


class ToolSuggestion(BaseModel):
    """One suggested tool."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(..., min_length=1)
    description: str = ""
    category: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class SuggestionResponse(BaseModel):
    """Provider answer."""

    tools: list[ToolSuggestion] = Field(default_factory=list)


def parse_suggestions(payload: str | bytes | dict[str, Any]) -> list[ToolSuggestion]:
    """Validate a provider answer.

    Raises:
        MalformedEvent: If the answer is not valid JSON of the expected shape.
    """
    try:
        if isinstance(payload, (str, bytes)):
            payload = json.loads(payload)
        return SuggestionResponse.model_validate(payload).tools
    except (ValueError, ValidationError) as e:
        raise MalformedEvent(f"Invalid suggestion response: {e}", collection="tools") from e


class SuggestionService:
    """Filters and adds suggested tools."""

    def __init__(self, store: CollectionStore) -> None:
        self.store = store

    def filter_new(self, suggestions: Iterable[ToolSuggestion]) -> list[ToolSuggestion]:
        """Drop suggestions whose name the user already has or that repeat."""
        seen = {
            str(record.get("name") or "").casefold()
            for record in self.store.query()
        }
        fresh: list[ToolSuggestion] = []
        for suggestion in suggestions:
            key = suggestion.name.casefold()
            if key in seen:
                continue
            seen.add(key)
            fresh.append(suggestion)
        return fresh

    async def add_suggestions(self, suggestions: Iterable[ToolSuggestion]) -> list[Record]:
        """Create the suggested tools with a single summary toast.

        Raises:
            SyncError: If a create failed. Tools created before it are kept
                and the remaining suggestions are not sent.
        """
        suggestions = list(suggestions)
        if not suggestions:
            self.store.notifier.info("All suggestions were already added", collection=self.store.spec.name)
            return []

        created: list[Record] = []
        for suggestion in suggestions:
            values = {
                "name": suggestion.name,
                "url": suggestion.url,
                "category": suggestion.category,
                "description": suggestion.description,
                "image_url": None,
            }
            try:
                created.append(await self.store.create(values, notify=False))
            except (SyncError, ValueError) as e:
                logger.warning(
                    "Could not add suggested tool",
                    name=suggestion.name,
                    added=len(created),
                    error=str(e),
                )
                self.store.notifier.error("Could not add tools", collection=self.store.spec.name)
                raise

        if len(created) == 1:
            message = f"{suggestions[0].name} added to your list"
        else:
            message = f"{len(created)} tools added"
        self.store.notifier.success(message, collection=self.store.spec.name)
        return created
