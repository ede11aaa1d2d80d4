"""Theme preference stored on the user's profile row."""

from designali_hub.core.exceptions import SyncError
from designali_hub.core.logging import get_logger
from designali_hub.domain.entities.record import Record
from designali_hub.domain.services.collection_store import CollectionStore

logger = get_logger(__name__)


class PreferencesService:
    """Reads and toggles dark mode on the user_profiles collection."""

    def __init__(self, store: CollectionStore, default_dark_mode: bool = False) -> None:
        self.store = store
        self.default_dark_mode = default_dark_mode

    @property
    def profile(self) -> Record | None:
        return next(self.store.query(lambda record: not record.is_provisional), None)

    @property
    def dark_mode(self) -> bool:
        profile = self.profile
        if profile is None or profile.get("dark_mode") is None:
            return self.default_dark_mode
        return bool(profile.get("dark_mode"))

    async def load(self) -> bool:
        """Load the profile; keep the default when it cannot be read."""
        try:
            await self.store.load()
        except SyncError as e:
            logger.warning("Theme preference not loaded, using default", error=e.message)
        return self.dark_mode

    async def set_dark_mode(self, enabled: bool) -> bool:
        """Persist the theme. Creates the profile row on first use.

        Raises:
            SyncError: If the preference could not be saved (after one error toast).
        """
        profile = self.profile
        if profile is None:
            try:
                record = await self.store.create({"dark_mode": enabled}, notify=False)
            except SyncError as e:
                self.store.notifier.error(f"Could not save theme: {e.message}", collection=self.store.spec.name)
                raise
        else:
            record = await self.store.set_field(profile.id, "dark_mode", enabled)
        logger.info("Theme preference saved", dark_mode=enabled)
        return bool(record.get("dark_mode"))

    async def toggle_dark_mode(self) -> bool:
        return await self.set_dark_mode(not self.dark_mode)
