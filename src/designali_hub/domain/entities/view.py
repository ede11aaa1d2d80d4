"""Views (pages) of the dashboard that records and results point to."""

from enum import Enum


class View(str, Enum):
    """Dashboard pages."""

    DASHBOARD = "dashboard"
    TOOLS = "tools"
    VIDEOS = "videos"
    NOTES = "notes"
    STUDY = "study"
    RESOURCES = "resources"
    SETTINGS = "settings"


# Link slugs stored on notifications by the backend.
LINK_SLUGS: dict[str, View] = {
    "ferramentas": View.TOOLS,
    "videos": View.VIDEOS,
    "notas": View.NOTES,
    "estudo": View.STUDY,
    "recursos": View.RESOURCES,
    "configuracoes": View.SETTINGS,
}
