"""Designali Hub - realtime-synchronized collections for the Designali dashboard.

Keeps the user's tools, videos, notes, courses, tutorials and resources
mirrored from a managed backend and serves search, statistics and
notifications on top of the mirrored data.
"""

__version__ = "0.1.0"

from designali_hub.application.services.hub_session import HubSession
from designali_hub.domain.services.collection_store import CollectionStore, WritePolicy

__all__ = ["CollectionStore", "HubSession", "WritePolicy", "__version__"]
