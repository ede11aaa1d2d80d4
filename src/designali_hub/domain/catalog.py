"""Collections of the Designali dashboard.

One CollectionSpec per entity type. The six content collections take part
in search and statistics; notifications and user profiles are synced but
kept out of both.
"""

from designali_hub.domain.entities.collection_spec import CollectionSpec
from designali_hub.domain.entities.view import View

COURSE_STATUSES = ("Not Started", "In Progress", "Completed")

TOOLS = CollectionSpec(
    name="tools",
    label="tool",
    view=View.TOOLS,
    fields=("name", "url", "category", "description", "image_url"),
    column_map={"image_url": "icon"},
    title_field="name",
    snippet_field="description",
    search_fields=("name", "category", "description"),
    required=("name", "url", "category"),
)

VIDEOS = CollectionSpec(
    name="videos",
    label="video",
    view=View.VIDEOS,
    fields=(
        "title",
        "url",
        "platform",
        "channel",
        "thumbnail_url",
        "source",
        "duration",
        "description",
    ),
    title_field="title",
    snippet_field="description",
    search_fields=("title", "channel", "description"),
    defaults={"platform": "YouTube"},
    choices={"platform": ("YouTube", "Vimeo", "Other")},
    required=("title", "url"),
)

NOTES = CollectionSpec(
    name="notes",
    label="note",
    view=View.NOTES,
    fields=("title", "content", "tags"),
    title_field="title",
    snippet_field="content",
    search_fields=("title", "content"),
    defaults={"tags": []},
    required=("title",),
    default_sort=("updated_at", True),
)

COURSES = CollectionSpec(
    name="courses",
    label="course",
    view=View.STUDY,
    fields=("title", "platform", "progress", "status", "description", "url"),
    title_field="title",
    snippet_field="description",
    search_fields=("title", "platform", "description"),
    defaults={"progress": 0, "status": "Not Started"},
    choices={"status": COURSE_STATUSES},
    required=("title", "platform"),
)

TUTORIALS = CollectionSpec(
    name="tutorials",
    label="tutorial",
    view=View.STUDY,
    fields=("title", "url", "source", "description"),
    title_field="title",
    snippet_field="description",
    search_fields=("title", "source", "description"),
    required=("title", "url"),
)

RESOURCES = CollectionSpec(
    name="resources",
    label="resource",
    view=View.RESOURCES,
    fields=("title", "url", "type", "description", "author"),
    column_map={"type": "resource_type"},
    title_field="title",
    snippet_field="description",
    search_fields=("title", "description", "author"),
    defaults={"type": "Article"},
    choices={"type": ("Article", "Book", "Podcast", "Other")},
    required=("title", "url"),
)

NOTIFICATIONS = CollectionSpec(
    name="notifications",
    label="notification",
    view=None,
    fields=("title", "message", "type", "is_read", "link"),
    title_field="title",
    snippet_field="message",
    favorite_column=None,
    defaults={"type": "info", "is_read": False},
    choices={"type": ("info", "success", "warning", "error")},
    required=("title",),
    default_sort=("created_at", True),
)

USER_PROFILES = CollectionSpec(
    name="user_profiles",
    label="profile",
    view=View.SETTINGS,
    fields=("dark_mode",),
    title_field="dark_mode",
    favorite_column=None,
)

# Content collections in the order the global search lists them.
CONTENT_COLLECTIONS: tuple[CollectionSpec, ...] = (
    TOOLS,
    VIDEOS,
    NOTES,
    COURSES,
    TUTORIALS,
    RESOURCES,
)

# Group-by breakdowns the dashboard needs.
DEFAULT_GROUPINGS: dict[str, tuple[str, ...]] = {
    "tools": ("category",),
    "videos": ("platform",),
    "notes": ("tags",),
    "courses": ("status",),
    "resources": ("type",),
}


def get_spec(name: str) -> CollectionSpec:
    """Look up a spec by collection name.

    Raises:
        KeyError: If the collection is unknown.
    """
    for spec in CONTENT_COLLECTIONS + (NOTIFICATIONS, USER_PROFILES):
        if spec.name == name:
            return spec
    raise KeyError(f"Unknown collection '{name}'")
