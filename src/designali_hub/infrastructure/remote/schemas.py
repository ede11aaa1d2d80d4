"""Pydantic schemas for backend responses and realtime frames."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# Realtime operation suffix -> change kind
OPERATION_KINDS = {
    "create": "inserted",
    "update": "updated",
    "delete": "deleted",
}


class RecordListPage(BaseModel):
    """One page of GET /records/{collection}."""

    items: list[dict[str, Any]] = Field(default_factory=list)
    total: int = Field(0, ge=0)
    skip: int = Field(0, ge=0)
    limit: int = Field(0, ge=0)


class RealtimeMessage(BaseModel):
    """A frame received on the realtime websocket.

    Data events carry ``type="<collection>.<operation>"`` and the record in
    ``data``; control frames carry ``status`` (subscription acks), ``error``
    or ``type`` heartbeat/pong.
    """

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    status: Optional[str] = None
    collection: Optional[str] = None
    error: Optional[str] = None
    timestamp: Optional[str] = None
    data: Optional[dict[str, Any]] = None

    @property
    def is_keepalive(self) -> bool:
        return self.type in ("heartbeat", "pong")

    def change(self) -> tuple[str, dict[str, Any]] | None:
        """Split a data event into (collection, normalized change payload).

        Returns None if the frame is not a data event.
        """
        if not self.type or "." not in self.type:
            return None
        collection, _, operation = self.type.rpartition(".")
        kind = OPERATION_KINDS.get(operation)
        if not collection or kind is None:
            return None
        return collection, {"kind": kind, "record": self.data}
